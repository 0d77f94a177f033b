"""Tests for ArbEngine."""

import pytest

from arbguard.arb.engine import ArbEngine
from arbguard.core.errors import DataNotAvailableError, InvalidObservationError
from arbguard.providers.base import HealthCheckResult, PriceSource, ProviderStatus
from arbguard.providers.mock import MockPriceSource, ScriptedPriceSource, make_observation

WIDE_PRICES = (3000, 3200, 2950)
TIGHT_PRICES = (3000, 3005, 2998)


@pytest.fixture
def make_engine(settings, evaluator, ledger):
    """Build an engine around a scripted source."""

    def _make(rows, **kwargs):
        source = ScriptedPriceSource(rows)
        return ArbEngine(source, evaluator, ledger, settings=settings, **kwargs)

    return _make


class TestRunCycle:
    """Tests for the collect -> evaluate -> record cycle."""

    def test_wide_script_accepts_on_fourth_height(self, make_engine, ledger):
        engine = make_engine([WIDE_PRICES] * 4)

        results = engine.run_cycles(4)

        assert [r.accepted for r in results] == [False, False, False, True]
        assert [r.height for r in results] == [1, 2, 3, 4]
        assert results[0].evaluation.flags == ["INSUFFICIENT_HISTORY"]
        assert results[3].opportunity_id == 0
        assert len(ledger) == 1

    def test_recorded_opportunity_fields(self, make_engine, ledger):
        engine = make_engine([WIDE_PRICES] * 4)
        result = engine.run_cycles(4)[-1]

        record = ledger.get_opportunity(0)
        assert record.buy_source == 2
        assert record.sell_source == 1
        assert record.token == "WETH"
        assert record.price_difference_bps == 847
        assert record.profit_potential == result.evaluation.max_profit
        assert record.detected_height == 4
        assert record.detector == "test-detector"

    def test_persisting_divergence_records_every_height(self, make_engine, ledger):
        engine = make_engine([WIDE_PRICES] * 6)

        results = engine.run_cycles(6)

        assert [r.opportunity_id for r in results[3:]] == [0, 1, 2]
        assert [r.detected_height for r in ledger] == [4, 5, 6]

    def test_tight_script_never_accepts(self, make_engine, ledger):
        engine = make_engine([TIGHT_PRICES] * 8)

        results = engine.run_cycles(8)

        assert not any(r.accepted for r in results)
        assert len(ledger) == 0

    def test_exhausted_source_raises(self, make_engine):
        engine = make_engine([WIDE_PRICES])
        engine.run_cycle()

        with pytest.raises(DataNotAvailableError):
            engine.run_cycle()

    def test_history_is_bounded(self, make_engine):
        engine = make_engine([TIGHT_PRICES] * 6, history_size=3)

        engine.run_cycles(6)

        assert [o.logical_height for o in engine.history] == [4, 5, 6]

    def test_duplicate_height_reported_in_result(self, make_engine, ledger):
        engine = make_engine([WIDE_PRICES] * 4)
        engine.record_opportunity(
            buy_source=2,
            sell_source=1,
            token="WETH",
            price_diff_bps=847,
            profit_potential=1,
            height=4,
        )

        result = engine.run_cycles(4)[-1]

        assert result.accepted is True
        assert result.recorded is False
        assert result.errors == ["DUPLICATE_HEIGHT"]
        assert len(ledger) == 1

    def test_cycle_result_to_dict(self, make_engine):
        engine = make_engine([TIGHT_PRICES] * 2)
        result = engine.run_cycles(2)[-1]

        assert result.to_dict() == {
            "height": 2,
            "accepted": False,
            "opportunity_id": None,
            "flags": ["PRICE_GAP:23bps<50bps"],
            "errors": [],
        }


class HeightListSource(PriceSource):
    """Emits fixed prices at a given sequence of heights."""

    name = "heights"

    def __init__(self, heights, prices=WIDE_PRICES):
        self.heights = list(heights)
        self.prices = prices

    def collect(self):
        return make_observation(self.prices, self.heights.pop(0))

    def healthcheck(self):
        return HealthCheckResult(status=ProviderStatus.HEALTHY, message="OK")


class TestCycleAtomicity:
    """Tests for history consistency across failed or repeated cycles."""

    def test_repolled_height_is_a_noop(self, settings, evaluator, ledger):
        engine = ArbEngine(
            HeightListSource([1, 2, 2, 3, 4, 5, 6]), evaluator, ledger, settings=settings
        )

        results = engine.run_cycles(7)

        assert [(r.height, r.accepted) for r in results] == [
            (1, False), (2, False), (2, False), (3, False),
            (4, True), (5, True), (6, True),
        ]
        assert results[2].evaluation.flags == ["REPEATED_HEIGHT"]
        assert [o.logical_height for o in engine.history] == [1, 2, 3, 4, 5, 6]
        assert [r.detected_height for r in ledger] == [4, 5, 6]

    def test_out_of_order_height_leaves_history_untouched(self, settings, evaluator):
        engine = ArbEngine(HeightListSource([5, 6, 3, 7]), evaluator, settings=settings)
        engine.run_cycles(2)

        with pytest.raises(InvalidObservationError):
            engine.run_cycle()

        assert [o.logical_height for o in engine.history] == [5, 6]
        assert engine.run_cycle().height == 7
        assert [o.logical_height for o in engine.history] == [5, 6, 7]

    def test_full_history_survives_failed_cycle(self, settings, evaluator):
        engine = ArbEngine(
            HeightListSource([1, 2, 3, 1]), evaluator, settings=settings, history_size=3
        )
        engine.run_cycles(3)

        with pytest.raises(InvalidObservationError):
            engine.run_cycle()

        assert [o.logical_height for o in engine.history] == [1, 2, 3]


class TestEngineWiring:
    """Tests for defaults and status."""

    def test_detector_override(self, settings, evaluator, ledger):
        engine = ArbEngine(
            ScriptedPriceSource([WIDE_PRICES]),
            evaluator,
            ledger,
            settings=settings,
            detector="manual",
        )

        engine.record_opportunity(2, 1, "WETH", 847, 100, height=1)

        assert ledger.get_opportunity(0).detector == "manual"

    def test_status(self, make_engine):
        engine = make_engine([WIDE_PRICES] * 4)
        engine.run_cycles(4)

        status = engine.get_status()

        assert status["source"] == "scripted"
        assert status["source_status"] == "unavailable"
        assert status["history_length"] == 4
        assert status["history_capacity"] == 10
        assert status["tracked_pairs"] == 1
        assert status["metrics"]["count"] == 1

    def test_same_seed_is_deterministic(self, settings):
        def run():
            engine = ArbEngine(
                MockPriceSource(seed=7, divergence_bps=120),
                settings=settings,
            )
            return [r.to_dict() for r in engine.run_cycles(10)]

        assert run() == run()

    def test_mock_divergence_is_eventually_recorded(self, settings):
        engine = ArbEngine(
            MockPriceSource(seed=7, divergence_bps=120, volatility_bps=0),
            settings=settings,
        )

        results = engine.run_cycles(4)

        assert [r.accepted for r in results] == [False, False, False, True]
