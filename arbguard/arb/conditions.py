"""
Safety conditions for cross-source price divergence.

Each check is a pure function over one Observation plus thresholds.
All arithmetic is integer; products are formed before any division so
truncation only happens once, at the end of each expression.

Conditions:
1. Price gap: widest divergence, in bps of the lower price
2. Liquidity: every source is deep enough
3. Profitability: best pairwise profit estimate beats gas and a floor
4. Balance: no pool is so lopsided that slippage eats the gap
(5. Persistence lives in the evaluator; it needs tracker state)
"""

from itertools import combinations
from typing import Optional

from arbguard.core.config import DetectionConfig
from arbguard.core.fixedpoint import bps_gap
from arbguard.domain.models import Observation, PriceSnapshot


# ==============================================
# 1. Price gap
# ==============================================

def price_gap_bps(observation: Observation) -> int:
    """Widest price gap across all sources, in basis points of the minimum."""
    prices = observation.prices
    return bps_gap(max(prices), min(prices))


def check_price_gap(observation: Observation, config: DetectionConfig) -> bool:
    return price_gap_bps(observation) >= config.min_price_gap_bps


# ==============================================
# 2. Liquidity
# ==============================================

def check_liquidity(observation: Observation, config: DetectionConfig) -> bool:
    return all(s.total_liquidity >= config.min_liquidity for s in observation.sources)


# ==============================================
# 3. Profitability
# ==============================================

def estimate_pair_profit(a: PriceSnapshot, b: PriceSnapshot) -> int:
    """
    Rough profit for arbitraging one pair of sources.

    min(liquidity) * |price gap| / (reference price * 10), where the
    reference price is the lower of the two. The division by the
    reference price comes after the product, but for small gaps on thin
    pools the result still truncates to zero.
    """
    liquidity = min(a.total_liquidity, b.total_liquidity)
    reference_price = min(a.price, b.price)
    return liquidity * abs(a.price - b.price) // (reference_price * 10)


def estimate_max_profit(observation: Observation) -> int:
    """Best pairwise profit estimate over all unordered source pairs."""
    return max(
        estimate_pair_profit(a, b)
        for a, b in combinations(observation.sources, 2)
    )


def estimate_gas_cost(observation: Observation, config: DetectionConfig) -> int:
    """
    Gas cost in fixed-point quote units.

    gas hint (wei/gas) * gas units gives wei (18 decimals of the native
    asset); times the assumed native asset price gives quote value.
    """
    return observation.gas_price_hint * config.gas_units * config.assumed_asset_price


def check_profitability(
    observation: Observation,
    config: DetectionConfig,
    max_profit: Optional[int] = None,
    gas_cost: Optional[int] = None,
) -> bool:
    if max_profit is None:
        max_profit = estimate_max_profit(observation)
    if gas_cost is None:
        gas_cost = estimate_gas_cost(observation, config)
    return max_profit > gas_cost and max_profit > config.max_gas_cost


# ==============================================
# 4. Balance / slippage
# ==============================================

def reserve_ratio(snapshot: PriceSnapshot, unit: int) -> Optional[int]:
    """
    Pool balance ratio: reserve_base * 1000 / (reserve_quote / unit).

    Returns None when the quote reserve is below one whole unit, since
    the ratio is undefined there.
    """
    whole_quote = snapshot.reserve_quote // unit
    if whole_quote == 0:
        return None
    return snapshot.reserve_base * 1000 // whole_quote


def check_balance(observation: Observation, config: DetectionConfig) -> bool:
    for snapshot in observation.sources:
        ratio = reserve_ratio(snapshot, config.reserve_unit)
        if ratio is None:
            return False
        if not config.min_reserve_ratio <= ratio <= config.max_reserve_ratio:
            return False
    return True
