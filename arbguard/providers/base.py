"""
Base class for price sources.

A price source is the collector side of a detection cycle:
- collect() returns one Observation of all three sources
- collect() has no side effects visible to the engine
- Sources are injected into the engine, never looked up globally
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from arbguard.core.logging import LoggerMixin
from arbguard.domain.models import Observation


class ProviderStatus(str, Enum):
    """Price source health status."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNAVAILABLE = "unavailable"


@dataclass
class HealthCheckResult:
    """Result of a price source health check."""
    status: ProviderStatus
    message: str
    details: Optional[dict[str, Any]] = None


class PriceSource(ABC, LoggerMixin):
    """
    Abstract base class for all price sources.

    Subclasses must implement:
    - name: Source identifier
    - collect(): Produce the next Observation
    - healthcheck(): Report availability
    """

    name: str = "base"

    @abstractmethod
    def collect(self) -> Observation:
        """
        Produce the next observation.

        Raises:
            DataNotAvailableError: Nothing left to observe
        """
        pass

    @abstractmethod
    def healthcheck(self) -> HealthCheckResult:
        pass
