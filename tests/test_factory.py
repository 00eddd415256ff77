"""Unit tests for config loading and runner construction."""
import logging
import os
from pathlib import Path

import pytest
import yaml

ROOT = Path(__file__).resolve().parents[1]
os.environ["PROJECT_ROOT"] = str(ROOT)


@pytest.fixture(autouse=True)
def _no_db_env(monkeypatch):
    for key in ("DB_URL", "DB_TYPE", "DB_PATH"):
        monkeypatch.delenv(key, raising=False)


def _write_config(tmp_path, database: dict) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({
        "database": database,
        "logging": {"level": "DEBUG"},
    }), encoding="utf-8")
    return path


def test_default_config_loads():
    from src.dbrunner.factory import load_config
    config = load_config()
    assert "database" in config
    assert config["database"]["dsn"].startswith("sqlite:///")


def test_missing_config_file(tmp_path):
    from src.dbrunner.factory import load_config
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.yaml")


def test_runner_from_config_lazy(tmp_path):
    from src.dbrunner.factory import runner_from_config
    db_path = tmp_path / "cfg.db"
    path = _write_config(tmp_path, {"dsn": f"sqlite:///{db_path}", "connect_on_init": False})
    runner = runner_from_config(path)
    try:
        assert runner.connection is None
        assert runner.settings.database == str(db_path)
        assert runner.fetch_first("SELECT 1 AS one").execute() == {"one": 1}
    finally:
        runner.close()
    assert logging.getLogger("dbrunner").handlers


def test_structured_config_and_env_override(tmp_path, monkeypatch):
    from src.dbrunner.factory import settings_from_config
    config = {"database": {"driver": "postgres", "host": "pg", "port": 5433, "database": "app", "connect_on_init": True}}
    s = settings_from_config(config)
    assert (s.driver, s.host, s.port) == ("postgresql", "pg", 5433)

    monkeypatch.setenv("DB_URL", "sqlite:///:memory:")
    assert settings_from_config(config).driver == "sqlite"


def test_config_without_database_section():
    from src.dbrunner.factory import settings_from_config
    with pytest.raises(ValueError):
        settings_from_config({"paths": {}})
