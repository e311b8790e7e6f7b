"""Cloud document store backed by Google Cloud Firestore."""

from __future__ import annotations

from typing import Callable, Optional

from google.api_core import exceptions as gexc
from google.auth.exceptions import GoogleAuthError
from google.cloud import firestore

from tracker.errors import PersistenceError
from tracker.logging import get_logger
from tracker.models import Identifier
from tracker.stores.base import Snapshot, Store, Unsubscribe, check_kind

logger = get_logger(__name__)


def _find_binary(doc: dict, path: str = "") -> Optional[str]:
    for k, v in doc.items():
        here = f"{path}.{k}" if path else k
        if isinstance(v, (bytes, bytearray, memoryview)):
            return here
        if isinstance(v, dict):
            found = _find_binary(v, here)
            if found:
                return found
    return None


def _reject_binary(doc: dict) -> None:
    # Attachments must arrive pre-encoded as text (data URLs).
    field = _find_binary(doc)
    if field:
        raise PersistenceError(f"Field '{field}' holds binary data; encode it as text before saving to the cloud.")


class CloudStore(Store):
    name = "cloud"
    supports_binary = False

    def __init__(self, client: firestore.Client):
        self.client = client

    @classmethod
    def connect(cls, project: Optional[str] = None, credentials_path=None) -> "CloudStore":
        kwargs = {}
        if project:
            kwargs["project"] = project
        try:
            if credentials_path:
                client = firestore.Client.from_service_account_json(str(credentials_path), **kwargs)
            else:
                client = firestore.Client(**kwargs)
        except (GoogleAuthError, gexc.GoogleAPIError, OSError, ValueError) as e:
            logger.error("cloud_connect_failed", project=project, error=str(e))
            raise PersistenceError(f"Could not connect to Firestore: {e}") from e
        return cls(client)

    def list(self, kind: str) -> Snapshot:
        check_kind(kind)
        try:
            return [{**snap.to_dict(), "id": snap.id} for snap in self.client.collection(kind).stream()]
        except gexc.GoogleAPIError as e:
            raise PersistenceError(f"Could not read {kind}: {e}") from e

    def create(self, kind: str, doc: dict) -> str:
        check_kind(kind)
        payload = {k: v for k, v in doc.items() if k != "id"}
        _reject_binary(payload)
        try:
            _, ref = self.client.collection(kind).add(payload)
        except gexc.GoogleAPIError as e:
            raise PersistenceError(f"Could not create {kind[:-1]}: {e}") from e
        logger.info("record_created", store=self.name, kind=kind, id=ref.id)
        return ref.id

    def update(self, kind: str, doc_id: Identifier, partial: dict) -> None:
        check_kind(kind)
        payload = {k: v for k, v in partial.items() if k != "id"}
        _reject_binary(payload)
        try:
            self.client.collection(kind).document(str(doc_id)).update(payload)
        except gexc.NotFound as e:
            raise PersistenceError(f"{kind[:-1].capitalize()} {doc_id} not found.") from e
        except gexc.GoogleAPIError as e:
            raise PersistenceError(f"Could not update {kind[:-1]} {doc_id}: {e}") from e
        logger.info("record_updated", store=self.name, kind=kind, id=doc_id)

    def delete(self, kind: str, doc_id: Identifier) -> None:
        check_kind(kind)
        try:
            self.client.collection(kind).document(str(doc_id)).delete()
        except gexc.GoogleAPIError as e:
            raise PersistenceError(f"Could not delete {kind[:-1]} {doc_id}: {e}") from e
        logger.info("record_deleted", store=self.name, kind=kind, id=doc_id)

    def watch(self, kind: str, callback: Callable[[Snapshot], None]) -> Unsubscribe:
        check_kind(kind)

        def on_snapshot(docs, changes, read_time) -> None:
            callback([{**snap.to_dict(), "id": snap.id} for snap in docs])

        watch = self.client.collection(kind).on_snapshot(on_snapshot)
        return watch.unsubscribe
