"""
Logging configuration for ArbGuard.

Local runs log in a human-readable format; anything else logs one
JSON-ish object per line. config/logging.yaml takes precedence when present.
"""

import logging
import logging.config
import os
import sys
from pathlib import Path
from typing import Optional

import yaml

# Third-party loggers that flood DEBUG output during cycle runs
NOISY_LOGGERS = ("apscheduler", "sqlalchemy.engine", "sqlalchemy.pool")

HUMAN_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
JSON_FORMAT = (
    '{"time": "%(asctime)s", "level": "%(levelname)s", '
    '"logger": "%(name)s", "message": "%(message)s"}'
)


def setup_logging(
    config_path: Optional[str] = None,
    log_level: Optional[str] = None,
) -> None:
    """
    Setup logging configuration.

    Args:
        config_path: Path to logging.yaml. Auto-detected if not provided.
        log_level: Override log level from environment.
    """
    env = os.getenv("ARBGUARD_ENV", "local")
    level = (log_level or os.getenv("LOG_LEVEL", "INFO")).upper()

    if config_path is None:
        config_path = _find_logging_yaml()

    if config_path and Path(config_path).exists():
        with open(config_path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)

        for handler in config.get("handlers", {}).values():
            if "filename" in handler:
                Path(handler["filename"]).parent.mkdir(parents=True, exist_ok=True)

        logging.config.dictConfig(config)
    else:
        logging.basicConfig(
            level=getattr(logging, level),
            format=HUMAN_FORMAT if env == "local" else JSON_FORMAT,
            datefmt="%Y-%m-%d %H:%M:%S",
            handlers=[logging.StreamHandler(sys.stdout)],
        )

    logging.getLogger("arbguard").setLevel(getattr(logging, level))
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def _find_logging_yaml() -> Optional[str]:
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / "pyproject.toml").exists():
            return str(parent / "config" / "logging.yaml")
    return None


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger namespaced under 'arbguard.'.

    Args:
        name: Logger name, e.g. "ledger" or "arbguard.ledger"
    """
    if not name.startswith("arbguard"):
        name = f"arbguard.{name}"
    return logging.getLogger(name)


class LoggerMixin:
    """Mixin class to add logging capability to any class."""

    @property
    def logger(self) -> logging.Logger:
        """Get logger for this class."""
        if not hasattr(self, "_logger"):
            self._logger = get_logger(self.__class__.__name__)
        return self._logger
