from pathlib import Path

import pytest
from fastapi.testclient import TestClient

import config
from db import database
from main import app


@pytest.fixture
def db_path(tmp_path, monkeypatch) -> Path:
    config_dir = tmp_path / ".curio"
    config_dir.mkdir()
    monkeypatch.setattr(config, "CONFIG_DIR", config_dir)
    monkeypatch.setattr(config, "CONFIG_PATH", config_dir / "config.toml")
    path = config_dir / "curio.db"
    monkeypatch.setattr(database, "DB_PATH", path)
    database.init_db()
    return path


@pytest.fixture
def api(db_path):
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()
