from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

import streamlit as st

CONFIG_FILE_NAME = "settings.json"
ENV_DATA_DIR = "TRACKER_DATA_DIR"
ENV_BACKEND = "TRACKER_BACKEND"
ENV_FIRESTORE_PROJECT = "TRACKER_FIRESTORE_PROJECT"
ENV_CREDENTIALS = "GOOGLE_APPLICATION_CREDENTIALS"
ENV_AUTH_REQUIRED = "TRACKER_AUTH_REQUIRED"
ENV_LOG_LEVEL = "TRACKER_LOG_LEVEL"
ENV_ENVIRONMENT = "TRACKER_ENV"

BACKENDS = ("local", "cloud")
SESSION_KEY = "tracker_settings"


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    db_path: Path
    backend: str = "local"
    firestore_project: Optional[str] = None
    credentials_path: Optional[Path] = None
    auth_required: bool = False
    currency: str = "₹"
    log_level: str = "INFO"
    environment: str = "development"


def _default_data_dir() -> Path:
    return Path.home() / ".batch_tracker"


def _load_persisted_settings(data_dir: Path) -> dict:
    cfg = data_dir / CONFIG_FILE_NAME
    if cfg.exists():
        try:
            return json.loads(cfg.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return {}
    return {}


def _as_bool(v, default: bool) -> bool:
    if v is None or v == "":
        return default
    if isinstance(v, bool):
        return v
    return str(v).strip().lower() in {"1", "true", "yes", "on"}


def _normalize_backend(v: Optional[str]) -> str:
    b = str(v or "local").strip().lower()
    if b not in BACKENDS:
        raise ValueError(f"Invalid backend '{v}'. Use one of: {', '.join(BACKENDS)}.")
    return b


def load_settings(
    overrides: Optional[Mapping] = None,
    env: Optional[Mapping[str, str]] = None,
) -> Settings:
    # Priority order:
    # 1) Overrides (session state, set via Data Management page)
    # 2) Environment variables
    # 3) Persisted settings.json in the data folder
    # 4) Defaults
    overrides = dict(overrides or {})
    env = os.environ if env is None else env

    if overrides.get("data_dir"):
        data_dir = Path(overrides["data_dir"]).expanduser().resolve()
    elif env.get(ENV_DATA_DIR):
        data_dir = Path(env[ENV_DATA_DIR]).expanduser().resolve()
    else:
        default_dir = _default_data_dir()
        persisted_default = _load_persisted_settings(default_dir)
        data_dir = Path(persisted_default.get("data_dir", default_dir)).expanduser().resolve()

    persisted = _load_persisted_settings(data_dir)

    def pick(key: str, env_key: str, default=None):
        if overrides.get(key) not in (None, ""):
            return overrides[key]
        if env.get(env_key):
            return env[env_key]
        if persisted.get(key) not in (None, ""):
            return persisted[key]
        return default

    backend = _normalize_backend(pick("backend", ENV_BACKEND, "local"))
    credentials = pick("credentials_path", ENV_CREDENTIALS)

    data_dir.mkdir(parents=True, exist_ok=True)
    return Settings(
        data_dir=data_dir,
        db_path=data_dir / "app.db",
        backend=backend,
        firestore_project=pick("firestore_project", ENV_FIRESTORE_PROJECT),
        credentials_path=Path(credentials).expanduser() if credentials else None,
        # Cloud data is shared, so it is locked behind sign-in unless told otherwise.
        auth_required=_as_bool(pick("auth_required", ENV_AUTH_REQUIRED), backend == "cloud"),
        log_level=str(pick("log_level", ENV_LOG_LEVEL, "INFO")).upper(),
        environment=str(pick("environment", ENV_ENVIRONMENT, "development")).lower(),
    )


def persist_settings(data_dir_str: str, **values) -> Path:
    data_dir = Path(data_dir_str).expanduser().resolve()
    data_dir.mkdir(parents=True, exist_ok=True)

    if "backend" in values:
        values["backend"] = _normalize_backend(values["backend"])

    cfg = data_dir / CONFIG_FILE_NAME
    payload = _load_persisted_settings(data_dir)
    payload.update({k: v for k, v in values.items() if v is not None})
    payload["data_dir"] = str(data_dir)
    cfg.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    return cfg


def remember_in_session(**values) -> None:
    # Update session for immediate effect
    current = dict(st.session_state.get(SESSION_KEY, {}))
    current.update(values)
    st.session_state[SESSION_KEY] = current


@st.cache_resource
def _cached_settings(frozen_overrides: tuple) -> Settings:
    return load_settings(dict(frozen_overrides))


def get_settings() -> Settings:
    overrides = st.session_state.get(SESSION_KEY, {})
    return _cached_settings(tuple(sorted(overrides.items())))
