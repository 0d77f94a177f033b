"""
Core data models for ArbGuard.

All models are dataclasses and provide to_dict() for JSON serialization.
Prices, reserves and liquidity are 18-decimal fixed-point integers
(see arbguard.core.fixedpoint), so every comparison stays exact.
"""

from dataclasses import dataclass, field, asdict, replace
from typing import Any, Optional

from arbguard.core.errors import InvalidIndexError, InvalidObservationError

SOURCES_PER_OBSERVATION = 3


@dataclass(frozen=True)
class PriceSnapshot:
    """
    One source's market state at a logical height.

    Example: a WETH/USDC pool on one DEX.
    """
    source_id: int
    display_name: str
    reference_asset: str    # e.g., "WETH"
    price: int              # fixed-point, quote per reference asset
    reserve_base: int       # base-side reserve valued in whole quote units
    reserve_quote: int      # quote-side reserve, fixed-point
    total_liquidity: int    # fixed-point
    last_update_height: int
    volatility_factor: int = 0  # bps of per-cycle price noise

    def __post_init__(self):
        if self.price <= 0:
            raise InvalidObservationError(
                f"Source {self.source_id} has non-positive price {self.price}",
                details={"source_id": self.source_id, "price": self.price},
            )
        for name in ("reserve_base", "reserve_quote", "total_liquidity"):
            value = getattr(self, name)
            if value < 0:
                raise InvalidObservationError(
                    f"Source {self.source_id} has negative {name} {value}",
                    details={"source_id": self.source_id, name: value},
                )

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PriceSnapshot":
        """Create from dict."""
        return cls(**data)


@dataclass(frozen=True)
class PairIdentity:
    """
    Unordered pair of source ids with the widest price divergence.

    Normalized so the lower id comes first; (2, 0) and (0, 2) compare equal.
    """
    low: int
    high: int

    @classmethod
    def of(cls, a: int, b: int) -> "PairIdentity":
        return cls(min(a, b), max(a, b))

    @property
    def key(self) -> str:
        return f"{self.low}-{self.high}"

    def __str__(self) -> str:
        return self.key


@dataclass(frozen=True)
class Observation:
    """
    Snapshot of all three sources for one detection cycle.

    Immutable once produced by a price source.
    """
    sources: tuple[PriceSnapshot, ...]
    logical_height: int
    gas_price_hint: int     # wei per gas unit

    def __post_init__(self):
        # Accept any sequence but store a tuple
        object.__setattr__(self, "sources", tuple(self.sources))
        if len(self.sources) != SOURCES_PER_OBSERVATION:
            raise InvalidObservationError(
                f"Observation needs {SOURCES_PER_OBSERVATION} sources, "
                f"got {len(self.sources)}",
                details={"height": self.logical_height, "count": len(self.sources)},
            )
        ids = [s.source_id for s in self.sources]
        if len(set(ids)) != len(ids):
            raise InvalidObservationError(
                f"Duplicate source ids in observation: {ids}",
                details={"height": self.logical_height, "source_ids": ids},
            )

    def source(self, index: int) -> PriceSnapshot:
        """Get source by position (0..2)."""
        if not 0 <= index < SOURCES_PER_OBSERVATION:
            raise InvalidIndexError(
                f"Source index {index} out of range 0..{SOURCES_PER_OBSERVATION - 1}",
                index=index,
            )
        return self.sources[index]

    def source_by_id(self, source_id: int) -> PriceSnapshot:
        """Get source by its stable source_id."""
        for snapshot in self.sources:
            if snapshot.source_id == source_id:
                return snapshot
        raise InvalidIndexError(f"Unknown source id {source_id}", index=source_id)

    @property
    def prices(self) -> list[int]:
        return [s.price for s in self.sources]

    def cheapest(self) -> PriceSnapshot:
        """Lowest-priced source (first one wins on ties)."""
        return min(self.sources, key=lambda s: s.price)

    def richest(self) -> PriceSnapshot:
        """Highest-priced source (first one wins on ties)."""
        return max(self.sources, key=lambda s: s.price)

    def pair_identity(self) -> PairIdentity:
        """Identity of the max-divergence pair."""
        return PairIdentity.of(self.cheapest().source_id, self.richest().source_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "sources": [s.to_dict() for s in self.sources],
            "logical_height": self.logical_height,
            "gas_price_hint": self.gas_price_hint,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Observation":
        return cls(
            sources=tuple(PriceSnapshot.from_dict(s) for s in data["sources"]),
            logical_height=data["logical_height"],
            gas_price_hint=data["gas_price_hint"],
        )


@dataclass(frozen=True)
class PersistenceEntry:
    """First sighting of a pair identity."""
    pair_identity: PairIdentity
    first_seen_height: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "pair_identity": self.pair_identity.key,
            "first_seen_height": self.first_seen_height,
        }


@dataclass(frozen=True)
class OpportunityRecord:
    """
    An accepted opportunity in the ledger.

    Only `executed` (and the observational `actual_profit`) ever change,
    via OpportunityLedger.mark_executed().
    """
    id: int
    buy_source: int
    sell_source: int
    token: str
    price_difference_bps: int
    profit_potential: int   # fixed-point
    detected_height: int
    detector: str
    executed: bool = False
    actual_profit: Optional[int] = None

    def with_execution(self, actual_profit: int) -> "OpportunityRecord":
        return replace(self, executed=True, actual_profit=actual_profit)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OpportunityRecord":
        return cls(**data)


@dataclass(frozen=True)
class PerformanceMetrics:
    """Aggregate ledger metrics."""
    count: int
    total_profit_potential: int
    average_profit_potential: int
    last_recorded_height: Optional[int]
    last_detector: Optional[str]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class Evaluation:
    """
    Outcome of one pass of the condition chain.

    `flags` names each failed check; an accepted evaluation has none.
    """
    accepted: bool
    height: Optional[int] = None
    flags: list[str] = field(default_factory=list)
    price_gap_bps: Optional[int] = None
    max_profit: Optional[int] = None
    gas_cost: Optional[int] = None
    pair_identity: Optional[PairIdentity] = None
    buy_source: Optional[int] = None
    sell_source: Optional[int] = None
    token: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        result = asdict(self)
        result["pair_identity"] = self.pair_identity.key if self.pair_identity else None
        return result
