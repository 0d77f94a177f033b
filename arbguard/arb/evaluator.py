"""
Condition evaluator.

Runs the safety chain against the most recent observation in a history:

1. Price gap >= min_price_gap_bps
2. Every source has >= min_liquidity
3. Best pairwise profit beats estimated gas and the max_gas_cost floor
4. Every pool's reserve ratio sits inside the configured bounds
5. The max-divergence pair has persisted for persistence_window heights

Checks run in that order and stop at the first failure, so only
observations that clear checks 1-4 reach the persistence tracker.
"""

from typing import Optional, Sequence

from arbguard.arb import conditions
from arbguard.arb.tracker import PersistenceTracker
from arbguard.core.config import DetectionConfig
from arbguard.core.errors import (
    ConfigurationError,
    InsufficientHistoryError,
    InvalidObservationError,
)
from arbguard.core.logging import LoggerMixin
from arbguard.domain.models import Evaluation, Observation


class ConditionEvaluator(LoggerMixin):
    """
    Accept/reject decision over an observation history.

    Not idempotent: the persistence check records first sightings in the
    tracker, so a repeated call with the same history can flip from
    reject to accept once the pair matures.
    """

    def __init__(
        self,
        config: Optional[DetectionConfig] = None,
        tracker: Optional[PersistenceTracker] = None,
    ):
        """
        Args:
            config: Detection thresholds (defaults if not provided)
            tracker: Shared persistence tracker; one is created if omitted

        Raises:
            ConfigurationError: Tracker threshold differs from persistence_window
        """
        self.config = config or DetectionConfig()
        self.tracker = tracker if tracker is not None else PersistenceTracker(
            threshold=self.config.persistence_window,
            max_entries=self.config.max_tracked_pairs,
        )

        if self.tracker.threshold != self.config.persistence_window:
            raise ConfigurationError(
                f"Tracker threshold {self.tracker.threshold} does not match "
                f"persistence_window {self.config.persistence_window}",
                details={
                    "tracker_threshold": self.tracker.threshold,
                    "persistence_window": self.config.persistence_window,
                },
            )

    def evaluate(self, history: Sequence[Observation]) -> bool:
        """Return True iff all five conditions pass for history[-1]."""
        return self.assess(history).accepted

    def assess(self, history: Sequence[Observation]) -> Evaluation:
        """
        Evaluate with per-check details.

        Args:
            history: Observations, oldest first

        Returns:
            Evaluation; rejected ones carry a flag naming the failed check

        Raises:
            InvalidObservationError: Heights not strictly increasing, or
                source ids changing between observations
        """
        history = list(history)

        try:
            self.require_history(history)
        except InsufficientHistoryError as e:
            self.logger.debug(e.message)
            return Evaluation(
                accepted=False,
                height=history[-1].logical_height if history else None,
                flags=["INSUFFICIENT_HISTORY"],
            )

        self._validate_history(history)

        # Any exception past this point undoes tracker inserts
        with self.tracker.transaction():
            evaluation = self._run_checks(history[-1])

        if evaluation.accepted:
            self.logger.info(
                f"Opportunity accepted at height {evaluation.height}: "
                f"pair={evaluation.pair_identity}, gap={evaluation.price_gap_bps}bps, "
                f"profit={evaluation.max_profit}"
            )
        else:
            self.logger.debug(
                f"Rejected at height {evaluation.height}: {evaluation.flags}"
            )
        return evaluation

    def require_history(self, history: Sequence[Observation]) -> None:
        """
        Raises:
            InsufficientHistoryError: Fewer observations than the window
        """
        required = self.config.persistence_window
        if len(history) < required:
            raise InsufficientHistoryError(
                f"Need {required} observations, got {len(history)}",
                required=required,
                supplied=len(history),
            )

    def _validate_history(self, history: list[Observation]) -> None:
        expected_ids = sorted(s.source_id for s in history[0].sources)

        for previous, current in zip(history, history[1:]):
            if current.logical_height <= previous.logical_height:
                raise InvalidObservationError(
                    f"History out of order: height {current.logical_height} "
                    f"follows {previous.logical_height}",
                    details={
                        "previous": previous.logical_height,
                        "current": current.logical_height,
                    },
                )
            ids = sorted(s.source_id for s in current.sources)
            if ids != expected_ids:
                raise InvalidObservationError(
                    f"Source ids changed at height {current.logical_height}: "
                    f"{ids} != {expected_ids}",
                    details={"height": current.logical_height, "source_ids": ids},
                )

    def _run_checks(self, current: Observation) -> Evaluation:
        cfg = self.config
        cheapest = current.cheapest()
        richest = current.richest()

        result = Evaluation(
            accepted=False,
            height=current.logical_height,
            buy_source=cheapest.source_id,
            sell_source=richest.source_id,
            token=cheapest.reference_asset,
        )

        # 1. Price gap
        result.price_gap_bps = conditions.price_gap_bps(current)
        if result.price_gap_bps < cfg.min_price_gap_bps:
            result.flags.append(
                f"PRICE_GAP:{result.price_gap_bps}bps<{cfg.min_price_gap_bps}bps"
            )
            return result

        # 2. Liquidity
        if not conditions.check_liquidity(current, cfg):
            shallow = [
                s.source_id for s in current.sources
                if s.total_liquidity < cfg.min_liquidity
            ]
            result.flags.append(f"LOW_LIQUIDITY:{shallow}")
            return result

        # 3. Profitability
        result.max_profit = conditions.estimate_max_profit(current)
        result.gas_cost = conditions.estimate_gas_cost(current, cfg)
        if not conditions.check_profitability(
            current, cfg, max_profit=result.max_profit, gas_cost=result.gas_cost
        ):
            result.flags.append(
                f"UNPROFITABLE:profit={result.max_profit},gas={result.gas_cost},"
                f"floor={cfg.max_gas_cost}"
            )
            return result

        # 4. Balance / slippage
        if not conditions.check_balance(current, cfg):
            ratios = {
                s.source_id: conditions.reserve_ratio(s, cfg.reserve_unit)
                for s in current.sources
            }
            result.flags.append(f"IMBALANCED_RESERVES:{ratios}")
            return result

        # 5. Persistence
        result.pair_identity = current.pair_identity()
        if not self.tracker.observe(result.pair_identity, current.logical_height):
            first_seen = self.tracker.first_seen(result.pair_identity)
            result.flags.append(
                f"NOT_PERSISTENT:{result.pair_identity}:first_seen={first_seen}"
            )
            return result

        result.accepted = True
        return result
