"""
Providers module - Price sources

Each source produces three-source Observations for the engine.
All sources inherit from PriceSource for a consistent interface.
"""

from arbguard.providers.base import HealthCheckResult, PriceSource, ProviderStatus
from arbguard.providers.mock import MockPriceSource, ScriptedPriceSource, make_observation

__all__ = [
    "HealthCheckResult",
    "PriceSource",
    "ProviderStatus",
    "MockPriceSource",
    "ScriptedPriceSource",
    "make_observation",
]
