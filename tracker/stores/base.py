"""Persistence gateway shared by the local and cloud stores."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable

from tracker.errors import ValidationError
from tracker.models import ENTITY_KINDS, Identifier

Snapshot = list[dict]
Unsubscribe = Callable[[], None]


def check_kind(kind: str) -> str:
    if kind not in ENTITY_KINDS:
        raise ValidationError(f"Unknown entity kind '{kind}'.")
    return kind


class Store(ABC):
    """
    CRUD + change notification over documents (camelCase dicts).

    Identifiers are always assigned by the store. Failures raise
    PersistenceError.
    """

    name: str = "store"
    supports_binary: bool = False

    @abstractmethod
    def list(self, kind: str) -> Snapshot:
        """Current snapshot of every document of `kind`, each with its `id`."""

    @abstractmethod
    def create(self, kind: str, doc: dict) -> Identifier:
        """Insert a document and return the identifier the store assigned."""

    @abstractmethod
    def update(self, kind: str, doc_id: Identifier, partial: dict) -> None:
        """Merge `partial` into an existing document."""

    @abstractmethod
    def delete(self, kind: str, doc_id: Identifier) -> None:
        """Remove a document."""

    @abstractmethod
    def watch(self, kind: str, callback: Callable[[Snapshot], None]) -> Unsubscribe:
        """Call `callback` with a fresh snapshot whenever `kind` changes."""
