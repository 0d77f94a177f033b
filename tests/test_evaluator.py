"""Tests for ConditionEvaluator."""

import pytest

from arbguard.arb.evaluator import ConditionEvaluator
from arbguard.arb.tracker import PersistenceTracker
from arbguard.core.config import DetectionConfig
from arbguard.core.errors import (
    ConfigurationError,
    InsufficientHistoryError,
    InvalidObservationError,
)
from arbguard.domain.models import Observation, PairIdentity, PriceSnapshot
from arbguard.providers.mock import make_observation

WIDE_PRICES = (3000, 3200, 2950)
TIGHT_PRICES = (3000, 3005, 2998)


class TestHistoryRequirements:
    """Tests for history length and ordering."""

    def test_empty_history_rejected(self, evaluator):
        assert evaluator.evaluate([]) is False

    def test_single_observation_rejected_without_touching_tracker(self, evaluator):
        result = evaluator.assess([make_observation(WIDE_PRICES, 1)])

        assert result.accepted is False
        assert result.flags == ["INSUFFICIENT_HISTORY"]
        assert len(evaluator.tracker) == 0

    def test_require_history_raises(self, evaluator):
        with pytest.raises(InsufficientHistoryError) as exc_info:
            evaluator.require_history([make_observation(WIDE_PRICES, 1)])

        assert exc_info.value.required == 2
        assert exc_info.value.supplied == 1

    def test_out_of_order_history_raises(self, evaluator):
        history = [make_observation(WIDE_PRICES, 5), make_observation(WIDE_PRICES, 4)]

        with pytest.raises(InvalidObservationError):
            evaluator.evaluate(history)
        assert len(evaluator.tracker) == 0

    def test_repeated_height_raises(self, evaluator):
        history = [make_observation(WIDE_PRICES, 4), make_observation(WIDE_PRICES, 4)]

        with pytest.raises(InvalidObservationError):
            evaluator.evaluate(history)

    def test_changing_source_ids_raises(self, evaluator):
        first = make_observation(WIDE_PRICES, 1)
        second = make_observation(WIDE_PRICES, 2)
        renamed = Observation(
            sources=tuple(
                PriceSnapshot(**{**s.to_dict(), "source_id": s.source_id + 10})
                for s in second.sources
            ),
            logical_height=2,
            gas_price_hint=second.gas_price_hint,
        )

        with pytest.raises(InvalidObservationError):
            evaluator.evaluate([first, renamed])


class TestConditionChain:
    """Tests for the five conditions in sequence."""

    def test_tight_prices_never_accept(self, evaluator):
        history = [make_observation(TIGHT_PRICES, h) for h in range(1, 11)]

        for end in range(1, len(history) + 1):
            assert evaluator.evaluate(history[:end]) is False

        # Rejected before the persistence check ever runs
        assert len(evaluator.tracker) == 0

    def test_tight_prices_flagged_as_price_gap(self, evaluator):
        history = [make_observation(TIGHT_PRICES, 1), make_observation(TIGHT_PRICES, 2)]
        result = evaluator.assess(history)

        assert result.flags == ["PRICE_GAP:23bps<50bps"]

    def test_low_liquidity_flag(self, evaluator):
        history = [
            make_observation(WIDE_PRICES, 1, liquidity=500),
            make_observation(WIDE_PRICES, 2, liquidity=500),
        ]
        result = evaluator.assess(history)

        assert result.flags[0].startswith("LOW_LIQUIDITY")

    def test_unprofitable_flag(self, evaluator):
        history = [
            make_observation(WIDE_PRICES, 1, gas_price_gwei=5000),
            make_observation(WIDE_PRICES, 2, gas_price_gwei=5000),
        ]
        result = evaluator.assess(history)

        assert result.flags[0].startswith("UNPROFITABLE")
        assert result.gas_cost > result.max_profit

    def test_imbalanced_flag(self, evaluator):
        history = [
            make_observation(WIDE_PRICES, h, reserve_base=(250_000, 1, 250_000))
            for h in (1, 2)
        ]
        result = evaluator.assess(history)

        assert result.flags[0].startswith("IMBALANCED_RESERVES")

    def test_first_sighting_never_matures_in_same_call(self, evaluator):
        history = [make_observation(WIDE_PRICES, 1), make_observation(WIDE_PRICES, 2)]
        result = evaluator.assess(history)

        assert result.accepted is False
        assert result.flags[0].startswith("NOT_PERSISTENT")
        assert evaluator.tracker.first_seen(PairIdentity.of(1, 2)) == 2

    def test_evaluation_details(self, evaluator, wide_history):
        evaluator.evaluate(wide_history[:2])
        evaluator.evaluate(wide_history[1:3])
        result = evaluator.assess(wide_history[2:4])

        assert result.accepted is True
        assert result.flags == []
        assert result.height == 4
        assert result.price_gap_bps == 847
        assert result.buy_source == 2
        assert result.sell_source == 1
        assert result.token == "WETH"
        assert result.pair_identity == PairIdentity.of(1, 2)
        assert result.max_profit > result.gas_cost


class TestEndToEnd:
    """Tests for persistence across consecutive heights."""

    def test_accepts_on_third_consecutive_height(self, evaluator, wide_history):
        """Calls ending at heights 2, 3, 4: reject, reject, accept."""
        assert evaluator.evaluate(wide_history[0:2]) is False
        assert evaluator.evaluate(wide_history[1:3]) is False
        assert evaluator.evaluate(wide_history[2:4]) is True

    def test_growing_history_also_matures(self, evaluator, wide_history):
        assert evaluator.evaluate(wide_history[:2]) is False
        assert evaluator.evaluate(wide_history[:3]) is False
        assert evaluator.evaluate(wide_history[:4]) is True

    def test_two_observation_run_never_accepts(self, evaluator, wide_history):
        assert evaluator.evaluate(wide_history[0:2]) is False
        assert evaluator.evaluate(wide_history[1:3]) is False

    def test_not_idempotent(self, evaluator, wide_history):
        """Re-running the same history sees the pair as already tracked."""
        history = wide_history[0:2]

        assert evaluator.evaluate(history) is False
        assert evaluator.evaluate(history) is False
        assert len(evaluator.tracker) == 1

    def test_identity_ignores_magnitude(self, evaluator):
        """A wider gap on the same pair keeps the original first-seen height."""
        history = [
            make_observation(WIDE_PRICES, 1),
            make_observation(WIDE_PRICES, 2),
            make_observation((3000, 3400, 2950), 3),
            make_observation((3000, 3600, 2950), 4),
        ]

        assert evaluator.evaluate(history[:2]) is False
        assert evaluator.evaluate(history[:3]) is False
        assert evaluator.evaluate(history[:4]) is True

    def test_new_pair_identity_starts_over(self, evaluator):
        history = [
            make_observation(WIDE_PRICES, 1),
            make_observation(WIDE_PRICES, 2),
            make_observation((3200, 3000, 2950), 3),  # now 0 vs 2
            make_observation((3200, 3000, 2950), 4),
        ]

        assert evaluator.evaluate(history[:2]) is False
        assert evaluator.evaluate(history[:3]) is False
        assert evaluator.evaluate(history[:4]) is False
        assert evaluator.tracker.first_seen(PairIdentity.of(0, 2)) == 3

    def test_custom_persistence_window(self):
        config = DetectionConfig(persistence_window=3)
        evaluator = ConditionEvaluator(config)
        history = [make_observation(WIDE_PRICES, h) for h in range(1, 7)]

        assert evaluator.tracker.threshold == 3
        assert evaluator.evaluate(history[:2]) is False  # too short
        assert evaluator.evaluate(history[:3]) is False  # first seen at 3
        assert evaluator.evaluate(history[:4]) is False
        assert evaluator.evaluate(history[:5]) is False
        assert evaluator.evaluate(history[:6]) is True

    def test_mismatched_tracker_threshold(self):
        config = DetectionConfig(persistence_window=3)

        with pytest.raises(ConfigurationError) as exc_info:
            ConditionEvaluator(config, PersistenceTracker(threshold=2))
        assert exc_info.value.details["persistence_window"] == 3

    def test_failed_numeric_check_does_not_start_clock(self, evaluator):
        """The clock starts at the first height that clears checks 1-4."""
        history = [
            make_observation(TIGHT_PRICES, 1),
            make_observation(TIGHT_PRICES, 2),
            make_observation(WIDE_PRICES, 3, gas_price_gwei=5000),
            make_observation(WIDE_PRICES, 4),
            make_observation(WIDE_PRICES, 5),
            make_observation(WIDE_PRICES, 6),
        ]

        assert evaluator.assess(history[:2]).flags[0].startswith("PRICE_GAP")
        assert evaluator.assess(history[:3]).flags[0].startswith("UNPROFITABLE")
        assert len(evaluator.tracker) == 0

        assert evaluator.evaluate(history[:4]) is False
        assert evaluator.tracker.first_seen(PairIdentity.of(1, 2)) == 4
        assert evaluator.evaluate(history[:5]) is False
        assert evaluator.evaluate(history[:6]) is True


class TestRollback:
    """Tests for all-or-nothing tracker updates."""

    def test_failed_call_leaves_tracker_untouched(self, detection_config, wide_history):

        class ExplodingTracker(PersistenceTracker):
            def observe(self, identity, height):
                super().observe(identity, height)
                raise RuntimeError("downstream failure")

        tracker = ExplodingTracker(threshold=2)
        evaluator = ConditionEvaluator(detection_config, tracker)

        with pytest.raises(RuntimeError):
            evaluator.evaluate(wide_history[:2])

        assert len(tracker) == 0
