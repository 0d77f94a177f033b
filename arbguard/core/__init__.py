"""
Core module - Engineering foundation

Contains configuration, logging, errors and fixed-point helpers.
"""

from arbguard.core.config import (
    DetectionConfig,
    Settings,
    get_settings,
    load_detection_config,
    load_yaml_config,
)
from arbguard.core.errors import (
    ArbGuardError,
    ConfigurationError,
    DataNotAvailableError,
    DuplicateHeightError,
    InsufficientHistoryError,
    InvalidIdError,
    InvalidIndexError,
    InvalidObservationError,
    LedgerStoreError,
)
from arbguard.core.fixedpoint import WAD, format_wad, from_wad, to_wad
from arbguard.core.logging import setup_logging, get_logger

__all__ = [
    "DetectionConfig",
    "Settings",
    "get_settings",
    "load_detection_config",
    "load_yaml_config",
    "ArbGuardError",
    "ConfigurationError",
    "DataNotAvailableError",
    "DuplicateHeightError",
    "InsufficientHistoryError",
    "InvalidIdError",
    "InvalidIndexError",
    "InvalidObservationError",
    "LedgerStoreError",
    "WAD",
    "format_wad",
    "from_wad",
    "to_wad",
    "setup_logging",
    "get_logger",
]
