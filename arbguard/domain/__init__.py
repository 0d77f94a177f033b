"""
Domain module - Business models

Contains pure value types without external dependencies.
All models are JSON-serializable via to_dict().
"""

from arbguard.domain.models import (
    SOURCES_PER_OBSERVATION,
    Evaluation,
    Observation,
    OpportunityRecord,
    PairIdentity,
    PerformanceMetrics,
    PersistenceEntry,
    PriceSnapshot,
)

__all__ = [
    "SOURCES_PER_OBSERVATION",
    "Evaluation",
    "Observation",
    "OpportunityRecord",
    "PairIdentity",
    "PerformanceMetrics",
    "PersistenceEntry",
    "PriceSnapshot",
]
