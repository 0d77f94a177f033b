"""
ArbGuard Arbitrage Module.

Cross-source price divergence validation.

Components:
- conditions: Price gap, liquidity, profitability and balance checks
- tracker: Persistence of max-divergence pairs across heights
- evaluator: Condition chain over an observation history
- ledger: Append-only record of accepted opportunities
- engine: Collect -> evaluate -> record cycle
"""

from arbguard.arb.tracker import PersistenceTracker
from arbguard.arb.evaluator import ConditionEvaluator
from arbguard.arb.ledger import OpportunityLedger
from arbguard.arb.engine import ArbEngine, CycleResult

__all__ = [
    "PersistenceTracker",
    "ConditionEvaluator",
    "OpportunityLedger",
    "ArbEngine",
    "CycleResult",
]
