"""Centralized logging for the query runner."""
import logging
import sys
from datetime import datetime
from pathlib import Path

LOGGER_NAME = "dbrunner"


def get_logger(
    name: str = LOGGER_NAME,
    log_dir: str | Path | None = None,
    level: int | str = logging.INFO,
) -> logging.Logger:
    """Create and return a configured logger with optional file handler. Handlers are attached once per name."""
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    logger.setLevel(level.upper() if isinstance(level, str) else level)
    formatter = logging.Formatter(
        "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    ch = logging.StreamHandler(sys.stdout)
    ch.setFormatter(formatter)
    logger.addHandler(ch)

    if log_dir:
        Path(log_dir).mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(
            Path(log_dir) / f"{name.replace('.', '_')}_{datetime.now().strftime('%Y%m%d')}.log",
            encoding="utf-8",
        )
        fh.setFormatter(formatter)
        logger.addHandler(fh)

    return logger


def configure_logging(config: dict, project_root: str | Path | None = None) -> logging.Logger:
    """Attach handlers to the runner logger from the 'logging' / 'paths' config sections."""
    log_dir = (config.get("paths") or {}).get("logs_dir")
    if log_dir and project_root is not None:
        log_dir = Path(project_root) / log_dir
    level = (config.get("logging") or {}).get("level", "INFO")
    return get_logger(LOGGER_NAME, log_dir=log_dir, level=level)
