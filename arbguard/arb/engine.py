"""
Arbitrage Detection Engine.

Drives one detection cycle per logical height:

1. Collect: Ask the injected price source for an Observation
2. Remember: Push it onto a bounded rolling history
3. Evaluate: Run the condition chain over the history
4. Record: On acceptance, append a derived record to the ledger

The engine owns no global state; source, evaluator and ledger are passed
in, so every piece can be swapped for a hand-built one in tests.
"""

from collections import deque
from dataclasses import dataclass, field
from typing import Any, Optional

from arbguard.arb.evaluator import ConditionEvaluator
from arbguard.arb.ledger import OpportunityLedger
from arbguard.core.config import DetectionConfig, Settings, get_settings
from arbguard.core.errors import DuplicateHeightError
from arbguard.core.logging import LoggerMixin
from arbguard.domain.models import Evaluation, Observation
from arbguard.providers.base import PriceSource


@dataclass
class CycleResult:
    """Summary of one detection cycle."""
    height: int
    accepted: bool
    evaluation: Evaluation
    opportunity_id: Optional[int] = None
    errors: list[str] = field(default_factory=list)

    @property
    def recorded(self) -> bool:
        return self.opportunity_id is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "height": self.height,
            "accepted": self.accepted,
            "opportunity_id": self.opportunity_id,
            "flags": list(self.evaluation.flags),
            "errors": list(self.errors),
        }


class ArbEngine(LoggerMixin):
    """
    Cross-source arbitrage detection engine.

    Single-threaded: run_cycle() must not be called concurrently.
    """

    def __init__(
        self,
        source: PriceSource,
        evaluator: Optional[ConditionEvaluator] = None,
        ledger: Optional[OpportunityLedger] = None,
        *,
        config: Optional[DetectionConfig] = None,
        settings: Optional[Settings] = None,
        history_size: Optional[int] = None,
        detector: Optional[str] = None,
    ):
        """
        Initialize arbitrage engine.

        Args:
            source: Price source to collect from
            evaluator: Condition evaluator (built from config if omitted)
            ledger: Opportunity ledger (in-memory if omitted)
            config: Detection thresholds for a default evaluator
            settings: Application settings (history size, detector name)
            history_size: Override rolling history length
            detector: Override detector name recorded on opportunities
        """
        settings = settings or get_settings()

        self.source = source
        self.evaluator = evaluator or ConditionEvaluator(config)
        self.ledger = ledger if ledger is not None else OpportunityLedger()
        self.detector = detector or settings.detector_name

        size = history_size or settings.history_size
        if size < self.evaluator.config.persistence_window:
            self.logger.warning(
                f"History size {size} below persistence window "
                f"{self.evaluator.config.persistence_window}; nothing can be accepted"
            )
        self._history: deque[Observation] = deque(maxlen=size)

    @property
    def history(self) -> list[Observation]:
        return list(self._history)

    def run_cycle(self) -> CycleResult:
        """
        Run one collect -> evaluate -> record cycle.

        Errors from the source or evaluator propagate and leave the history
        untouched. A re-polled height is a no-op cycle, and a duplicate
        height on record is reported in the result.
        """
        observation = self.source.collect()

        if self._history and observation.logical_height == self._history[-1].logical_height:
            self.logger.debug(f"Height {observation.logical_height} already seen, skipping")
            return CycleResult(
                height=observation.logical_height,
                accepted=False,
                evaluation=Evaluation(
                    accepted=False,
                    height=observation.logical_height,
                    flags=["REPEATED_HEIGHT"],
                ),
            )

        candidate = deque(self._history, maxlen=self._history.maxlen)
        candidate.append(observation)

        evaluation = self.evaluator.assess(candidate)
        self._history = candidate

        result = CycleResult(
            height=observation.logical_height,
            accepted=evaluation.accepted,
            evaluation=evaluation,
        )

        if evaluation.accepted:
            try:
                result.opportunity_id = self.record_opportunity(
                    buy_source=evaluation.buy_source,
                    sell_source=evaluation.sell_source,
                    token=evaluation.token,
                    price_diff_bps=evaluation.price_gap_bps,
                    profit_potential=evaluation.max_profit,
                    height=observation.logical_height,
                )
            except DuplicateHeightError as e:
                self.logger.warning(f"Skipped recording: {e.message}")
                result.errors.append(e.code)

        self.logger.info(
            f"Cycle at height {result.height}: "
            f"{'ACCEPTED' if result.accepted else 'rejected'}"
            + (f" -> opportunity #{result.opportunity_id}" if result.recorded else "")
        )
        return result

    def run_cycles(self, count: int) -> list[CycleResult]:
        """Run count cycles back to back."""
        return [self.run_cycle() for _ in range(count)]

    def record_opportunity(
        self,
        buy_source: int,
        sell_source: int,
        token: str,
        price_diff_bps: int,
        profit_potential: int,
        height: int,
        detector: Optional[str] = None,
    ) -> int:
        """
        Append an accepted opportunity to the ledger.

        Raises:
            DuplicateHeightError: Already recorded at this height
        """
        return self.ledger.append(
            buy_source=buy_source,
            sell_source=sell_source,
            token=token,
            price_diff_bps=price_diff_bps,
            profit_potential=profit_potential,
            detector=detector or self.detector,
            height=height,
        )

    def get_status(self) -> dict[str, Any]:
        """Engine status for display."""
        metrics = self.ledger.get_performance_metrics()
        health = self.source.healthcheck()
        return {
            "source": self.source.name,
            "source_status": health.status.value,
            "history_length": len(self._history),
            "history_capacity": self._history.maxlen,
            "tracked_pairs": len(self.evaluator.tracker),
            "metrics": metrics.to_dict(),
        }
