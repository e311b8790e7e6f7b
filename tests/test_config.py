from __future__ import annotations

import pytest

from tracker.config import load_settings, persist_settings


def test_env_data_dir(tmp_path):
    settings = load_settings(env={"TRACKER_DATA_DIR": str(tmp_path / "data")})
    assert settings.data_dir == (tmp_path / "data").resolve()
    assert settings.db_path.name == "app.db"
    assert settings.data_dir.is_dir()
    assert settings.backend == "local"
    assert settings.auth_required is False


def test_cloud_backend_requires_sign_in_by_default(tmp_path):
    env = {"TRACKER_DATA_DIR": str(tmp_path), "TRACKER_BACKEND": "cloud", "TRACKER_FIRESTORE_PROJECT": "shop"}
    settings = load_settings(env=env)
    assert settings.backend == "cloud"
    assert settings.firestore_project == "shop"
    assert settings.auth_required is True


def test_sign_in_can_be_turned_off(tmp_path):
    env = {"TRACKER_DATA_DIR": str(tmp_path), "TRACKER_BACKEND": "cloud", "TRACKER_AUTH_REQUIRED": "0"}
    assert load_settings(env=env).auth_required is False


def test_invalid_backend(tmp_path):
    with pytest.raises(ValueError):
        load_settings(env={"TRACKER_DATA_DIR": str(tmp_path), "TRACKER_BACKEND": "postgres"})


def test_persisted_file_then_env_then_overrides(tmp_path):
    persist_settings(str(tmp_path), backend="cloud", log_level="debug")
    env = {"TRACKER_DATA_DIR": str(tmp_path)}

    assert load_settings(env=env).backend == "cloud"
    assert load_settings(env=env).log_level == "DEBUG"
    assert load_settings(env={**env, "TRACKER_BACKEND": "local"}).backend == "local"
    assert load_settings({"backend": "local"}, env=env).backend == "local"


def test_override_data_dir_wins(tmp_path):
    settings = load_settings({"data_dir": str(tmp_path / "a")}, env={"TRACKER_DATA_DIR": str(tmp_path / "b")})
    assert settings.data_dir == (tmp_path / "a").resolve()
