"""
Build a QueryRunner from src/config/config.yaml, with environment variables taking precedence.
"""
import os
from pathlib import Path

import yaml

from src.dbrunner.runner import QueryRunner
from src.utils.db_connector import ConnectionSettings, settings_from_env
from src.utils.logger import configure_logging

_PROJECT_ROOT = os.getenv("PROJECT_ROOT") or Path(__file__).resolve().parents[2]


def _default_config_path() -> Path:
    return Path(os.getenv("PROJECT_ROOT") or _PROJECT_ROOT) / "src" / "config" / "config.yaml"


def load_config(config_path: str | Path | None = None) -> dict:
    config_path = Path(config_path) if config_path else _default_config_path()
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")
    with open(config_path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def settings_from_config(config: dict) -> ConnectionSettings:
    """Env (DB_URL / DB_TYPE ...) first, then the 'database' section of the config."""
    env_settings = settings_from_env()
    if env_settings is not None:
        return env_settings
    db = dict(config.get("database") or {})
    db.pop("connect_on_init", None)
    if not db:
        raise ValueError("Config has no 'database' section and no DB_URL / DB_TYPE is set")
    return ConnectionSettings.from_mapping(db)


def runner_from_config(config_path: str | Path | None = None, connect: bool | None = None) -> QueryRunner:
    """Load config, set up logging and return a QueryRunner. connect=None follows database.connect_on_init."""
    config = load_config(config_path)
    root = Path(os.getenv("PROJECT_ROOT") or _PROJECT_ROOT)
    logger = configure_logging(config, project_root=root)
    settings = settings_from_config(config)
    if connect is None:
        connect = bool((config.get("database") or {}).get("connect_on_init", True))
    logger.info("Creating query runner for %s (connect_on_init=%s)", settings.driver, connect)
    return QueryRunner(settings, connect=connect)
