from __future__ import annotations

import streamlit as st

from tracker.config import Settings
from tracker.db import get_conn
from tracker.stores.base import Store
from tracker.stores.local import LocalStore


@st.cache_resource
def get_local_store(db_path) -> LocalStore:
    return LocalStore(get_conn(db_path))


@st.cache_resource
def _get_cloud_store(project, credentials_path) -> Store:
    # Imported lazily so a local-only install never touches the Firestore client.
    from tracker.stores.cloud import CloudStore

    return CloudStore.connect(project, credentials_path)


def get_cloud_store(settings: Settings) -> Store:
    return _get_cloud_store(settings.firestore_project, settings.credentials_path)


def get_store(settings: Settings) -> Store:
    """The store the pages read and write, picked by `settings.backend`."""
    if settings.backend == "cloud":
        return get_cloud_store(settings)
    return get_local_store(settings.db_path)
