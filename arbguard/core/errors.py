"""
Unified exception definitions for ArbGuard.

All custom exceptions inherit from ArbGuardError for easy catching.
Every error is a local validation failure: it is raised synchronously,
never retried internally, and leaves engine state untouched.
"""

from typing import Any, Optional


class ArbGuardError(Exception):
    """Base exception for all ArbGuard errors."""

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or "ARBGUARD_ERROR"
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for logging/serialization."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(ArbGuardError):
    """Configuration-related errors."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, code="CONFIG_ERROR", **kwargs)


class InvalidObservationError(ArbGuardError):
    """Malformed observation or observation history."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, code="INVALID_OBSERVATION", **kwargs)


class InvalidIndexError(ArbGuardError):
    """Source index or source id outside the valid set."""

    def __init__(self, message: str, *, index: Any, **kwargs):
        details = kwargs.pop("details", {})
        details["index"] = index
        super().__init__(message, code="INVALID_INDEX", details=details, **kwargs)
        self.index = index


class InvalidIdError(ArbGuardError):
    """Opportunity id outside the ledger range."""

    def __init__(self, message: str, *, opportunity_id: int, count: int, **kwargs):
        details = kwargs.pop("details", {})
        details["opportunity_id"] = opportunity_id
        details["count"] = count
        super().__init__(message, code="INVALID_ID", details=details, **kwargs)
        self.opportunity_id = opportunity_id
        self.count = count


class DuplicateHeightError(ArbGuardError):
    """Second acceptance attempt within one logical height."""

    def __init__(self, message: str, *, height: int, **kwargs):
        details = kwargs.pop("details", {})
        details["height"] = height
        super().__init__(message, code="DUPLICATE_HEIGHT", details=details, **kwargs)
        self.height = height


class InsufficientHistoryError(ArbGuardError):
    """Fewer observations than the persistence window requires."""

    def __init__(self, message: str, *, required: int, supplied: int, **kwargs):
        details = kwargs.pop("details", {})
        details["required"] = required
        details["supplied"] = supplied
        super().__init__(message, code="INSUFFICIENT_HISTORY", details=details, **kwargs)
        self.required = required
        self.supplied = supplied


class DataNotAvailableError(ArbGuardError):
    """A price source has no observation to hand out."""

    def __init__(self, message: str, *, source: str, **kwargs):
        details = kwargs.pop("details", {})
        details["source"] = source
        super().__init__(message, code="DATA_NOT_AVAILABLE", details=details, **kwargs)
        self.source = source


class LedgerStoreError(ArbGuardError):
    """Durable ledger store failures (database errors, corrupt rows)."""

    def __init__(self, message: str, *, cause: Optional[Exception] = None, **kwargs):
        details = kwargs.pop("details", {})
        if cause:
            details["cause"] = str(cause)
        super().__init__(message, code="LEDGER_STORE_ERROR", details=details, **kwargs)
        self.cause = cause
