"""
Opportunity ledger.

Append-only record of accepted opportunities with running aggregates.

Rules:
- At most one record per logical height (checked against the last one)
- Ids are dense and start at 0
- Only the `executed` flag changes after creation
- With a store attached, every change is written through first, so a
  store failure leaves the in-memory ledger untouched
"""

from typing import Iterator, Optional

from arbguard.core.errors import DuplicateHeightError, InvalidIdError, LedgerStoreError
from arbguard.core.logging import LoggerMixin
from arbguard.domain.models import OpportunityRecord, PerformanceMetrics
from arbguard.services.persistence import LedgerStore


class OpportunityLedger(LoggerMixin):
    """Single-writer ledger of OpportunityRecords."""

    def __init__(self, store: Optional[LedgerStore] = None):
        """
        Args:
            store: Durable store to write through to (optional)
        """
        self.store = store
        self._records: list[OpportunityRecord] = []
        self._total_profit_potential = 0
        self._last_recorded_height: Optional[int] = None
        self._last_detector: Optional[str] = None

    @classmethod
    def load(cls, store: LedgerStore) -> "OpportunityLedger":
        """
        Rebuild a ledger (records and aggregates) from a store.

        Raises:
            LedgerStoreError: If stored ids are not dense from 0
        """
        ledger = cls(store=store)
        for expected_id, record in enumerate(store.load_records()):
            if record.id != expected_id:
                raise LedgerStoreError(
                    f"Stored ledger has gap: expected id {expected_id}, got {record.id}",
                    details={"expected": expected_id, "found": record.id},
                )
            ledger._apply(record)

        ledger.logger.info(f"Loaded {len(ledger)} opportunities from store")
        return ledger

    def append(
        self,
        buy_source: int,
        sell_source: int,
        token: str,
        price_diff_bps: int,
        profit_potential: int,
        detector: str,
        height: int,
    ) -> int:
        """
        Record an accepted opportunity.

        Returns:
            The new record's id

        Raises:
            DuplicateHeightError: A record already exists for this height
            LedgerStoreError: Write-through failed (nothing recorded)
        """
        if self._last_recorded_height is not None and height == self._last_recorded_height:
            raise DuplicateHeightError(
                f"Opportunity already recorded at height {height}",
                height=height,
            )

        record = OpportunityRecord(
            id=len(self._records),
            buy_source=buy_source,
            sell_source=sell_source,
            token=token,
            price_difference_bps=price_diff_bps,
            profit_potential=profit_potential,
            detected_height=height,
            detector=detector,
        )

        if self.store is not None:
            self.store.save_record(record)

        self._apply(record)
        self.logger.info(
            f"Recorded opportunity #{record.id} at height {height}: "
            f"buy={buy_source} sell={sell_source} {token} "
            f"gap={price_diff_bps}bps profit={profit_potential}"
        )
        return record.id

    def _apply(self, record: OpportunityRecord) -> None:
        self._records.append(record)
        self._total_profit_potential += record.profit_potential
        self._last_recorded_height = record.detected_height
        self._last_detector = record.detector

    def mark_executed(self, opportunity_id: int, actual_profit: int) -> OpportunityRecord:
        """
        Flag an opportunity as executed.

        actual_profit is kept for observability and never feeds the
        aggregates. Marking an already executed record is a no-op.

        Raises:
            InvalidIdError: Unknown id
            LedgerStoreError: Write-through failed (record unchanged)
        """
        record = self.get_opportunity(opportunity_id)
        if record.executed:
            self.logger.warning(f"Opportunity #{opportunity_id} already executed")
            return record

        updated = record.with_execution(actual_profit)
        if self.store is not None:
            self.store.mark_executed(opportunity_id, actual_profit)

        self._records[opportunity_id] = updated
        self.logger.info(
            f"Opportunity #{opportunity_id} executed, actual profit={actual_profit}"
        )
        return updated

    def get_opportunity(self, opportunity_id: int) -> OpportunityRecord:
        """
        Raises:
            InvalidIdError: Unknown id
        """
        if not 0 <= opportunity_id < len(self._records):
            raise InvalidIdError(
                f"Opportunity id {opportunity_id} out of range "
                f"(ledger holds {len(self._records)})",
                opportunity_id=opportunity_id,
                count=len(self._records),
            )
        return self._records[opportunity_id]

    def get_recent_opportunities(self, n: int) -> list[OpportunityRecord]:
        """Last min(n, count) records, oldest first."""
        if n <= 0:
            return []
        return list(self._records[-n:])

    def get_performance_metrics(self) -> PerformanceMetrics:
        count = len(self._records)
        average = self._total_profit_potential // count if count else 0
        return PerformanceMetrics(
            count=count,
            total_profit_potential=self._total_profit_potential,
            average_profit_potential=average,
            last_recorded_height=self._last_recorded_height,
            last_detector=self._last_detector,
        )

    @property
    def total_profit_potential(self) -> int:
        return self._total_profit_potential

    @property
    def last_recorded_height(self) -> Optional[int]:
        return self._last_recorded_height

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[OpportunityRecord]:
        return iter(list(self._records))
