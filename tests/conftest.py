"""Shared fixtures."""

import pytest

from arbguard.arb.evaluator import ConditionEvaluator
from arbguard.arb.ledger import OpportunityLedger
from arbguard.arb.tracker import PersistenceTracker
from arbguard.core.config import DetectionConfig, Settings
from arbguard.providers.mock import make_observation

# Wide, liquid, balanced divergence: every numeric check passes
WIDE_PRICES = (3000, 3200, 2950)


@pytest.fixture
def settings():
    """Settings isolated from any local .env file."""
    return Settings(
        _env_file=None,
        persist_ledger=False,
        history_size=10,
        detector_name="test-detector",
        cycle_interval_seconds=5,
    )


@pytest.fixture
def detection_config():
    return DetectionConfig()


@pytest.fixture
def tracker(detection_config):
    return PersistenceTracker(threshold=detection_config.persistence_window)


@pytest.fixture
def evaluator(detection_config, tracker):
    return ConditionEvaluator(detection_config, tracker)


@pytest.fixture
def ledger():
    return OpportunityLedger()


@pytest.fixture
def wide_history():
    """Same wide prices at heights 1..4."""
    return [make_observation(WIDE_PRICES, height) for height in range(1, 5)]
