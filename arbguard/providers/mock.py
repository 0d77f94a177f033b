"""
Synthetic price sources.

Stand-ins for a real market-data feed:
- MockPriceSource: seeded random walk around a base price, with an
  optional fixed divergence injected on one source
- ScriptedPriceSource: replays hand-written price rows, one per cycle

Both are deterministic: the same seed or script always yields the same
observations.
"""

import random
from typing import Optional, Sequence

from arbguard.core.errors import ConfigurationError, DataNotAvailableError
from arbguard.core.fixedpoint import WAD, Numeric, to_wad
from arbguard.domain.models import Observation, PriceSnapshot
from arbguard.providers.base import HealthCheckResult, PriceSource, ProviderStatus

DEFAULT_SOURCES = ("UniswapV2", "SushiSwap", "Curve")

GWEI = 10**9


def make_observation(
    prices: Sequence[Numeric],
    height: int,
    *,
    liquidity: Numeric = 500_000,
    gas_price_gwei: int = 20,
    reference_asset: str = "WETH",
    names: Sequence[str] = DEFAULT_SOURCES,
    reserve_base: Optional[Sequence[int]] = None,
    volatility_bps: int = 0,
) -> Observation:
    """
    Build an Observation from human-unit prices.

    Pools are balanced by default: the quote reserve holds half the
    liquidity and the base side is valued the same, giving a reserve
    ratio of 1000 per source.

    Args:
        prices: One price per source, e.g. (3000, 3200, 2950)
        height: Logical height of the observation
        liquidity: Total liquidity per source in whole units
        gas_price_gwei: Gas price hint
        reserve_base: Override base-side reserves (whole quote units)
    """
    liquidity_wad = to_wad(liquidity)
    reserve_quote = liquidity_wad // 2

    sources = []
    for index, price in enumerate(prices):
        base = reserve_quote // WAD if reserve_base is None else reserve_base[index]
        sources.append(
            PriceSnapshot(
                source_id=index,
                display_name=names[index] if index < len(names) else f"source-{index}",
                reference_asset=reference_asset,
                price=to_wad(price),
                reserve_base=base,
                reserve_quote=reserve_quote,
                total_liquidity=liquidity_wad,
                last_update_height=height,
                volatility_factor=volatility_bps,
            )
        )

    return Observation(
        sources=tuple(sources),
        logical_height=height,
        gas_price_hint=gas_price_gwei * GWEI,
    )


class MockPriceSource(PriceSource):
    """
    Seeded synthetic three-source feed.

    Each collect() advances the logical height by one and jitters every
    source by up to volatility_bps around base_price. If divergence_bps
    is set, that source is additionally pushed away from the others.
    """

    name = "mock"

    def __init__(
        self,
        seed: int = 42,
        *,
        base_price: Numeric = 3000,
        liquidity: Numeric = 500_000,
        volatility_bps: int = 10,
        divergence_bps: int = 0,
        divergence_source: int = 1,
        gas_price_gwei: int = 20,
        start_height: int = 1,
        reference_asset: str = "WETH",
        rng: Optional[random.Random] = None,
    ):
        """
        Args:
            seed: Seed for the internal RNG (ignored when rng is given)
            base_price: Centre price in whole units
            liquidity: Per-source liquidity in whole units
            volatility_bps: Max per-cycle jitter per source
            divergence_bps: Fixed offset applied to divergence_source
            gas_price_gwei: Gas price hint on every observation
            start_height: Height of the first observation
            rng: Injected random generator
        """
        self.rng = rng or random.Random(seed)
        self.base_price = to_wad(base_price)
        self.liquidity = to_wad(liquidity)
        self.volatility_bps = volatility_bps
        self.divergence_bps = divergence_bps
        self.divergence_source = divergence_source
        self.gas_price_gwei = gas_price_gwei
        self.reference_asset = reference_asset
        self._next_height = start_height

    @classmethod
    def from_config(
        cls,
        section: Optional[dict],
        seed: int = 42,
        **overrides,
    ) -> "MockPriceSource":
        """
        Build from the `mock_source` section of config.yaml.

        Args:
            section: YAML section (keyword arguments of __init__)
            seed: Seed used unless the section sets one
            **overrides: Values that win over the section
        """
        kwargs = dict(section or {})
        kwargs.setdefault("seed", seed)
        kwargs.update(overrides)
        try:
            return cls(**kwargs)
        except TypeError as e:
            raise ConfigurationError(
                f"Invalid mock_source config: {e}",
                details={"section": section},
            ) from e

    def collect(self) -> Observation:
        height = self._next_height
        self._next_height += 1

        reserve_quote = self.liquidity // 2
        sources = []
        for index, name in enumerate(DEFAULT_SOURCES):
            offset = self.rng.randint(-self.volatility_bps, self.volatility_bps)
            if index == self.divergence_source:
                offset += self.divergence_bps
            price = self.base_price * (10_000 + offset) // 10_000

            # Keep pools roughly balanced, +/-5%
            skew = self.rng.randint(-50, 50)
            reserve_base = (reserve_quote // WAD) * (1000 + skew) // 1000

            sources.append(
                PriceSnapshot(
                    source_id=index,
                    display_name=name,
                    reference_asset=self.reference_asset,
                    price=price,
                    reserve_base=reserve_base,
                    reserve_quote=reserve_quote,
                    total_liquidity=self.liquidity,
                    last_update_height=height,
                    volatility_factor=self.volatility_bps,
                )
            )

        observation = Observation(
            sources=tuple(sources),
            logical_height=height,
            gas_price_hint=self.gas_price_gwei * GWEI,
        )
        self.logger.debug(
            f"Collected height {height}: prices={[s.price for s in sources]}"
        )
        return observation

    def healthcheck(self) -> HealthCheckResult:
        return HealthCheckResult(
            status=ProviderStatus.HEALTHY,
            message="Synthetic source is always available",
            details={"next_height": self._next_height},
        )


class ScriptedPriceSource(PriceSource):
    """
    Replays price rows in order, one row per collect().

    Example:
        source = ScriptedPriceSource([(3000, 3200, 2950)] * 3)
    """

    name = "scripted"

    def __init__(
        self,
        rows: Sequence[Sequence[Numeric]],
        *,
        start_height: int = 1,
        **observation_kwargs,
    ):
        """
        Args:
            rows: Price triples in whole units
            start_height: Height of the first row
            **observation_kwargs: Passed to make_observation()
        """
        self.rows = [tuple(row) for row in rows]
        self.start_height = start_height
        self.observation_kwargs = observation_kwargs
        self._cursor = 0

    @property
    def remaining(self) -> int:
        return len(self.rows) - self._cursor

    def collect(self) -> Observation:
        if self._cursor >= len(self.rows):
            raise DataNotAvailableError(
                f"Script exhausted after {len(self.rows)} rows",
                source=self.name,
            )

        row = self.rows[self._cursor]
        height = self.start_height + self._cursor
        self._cursor += 1
        return make_observation(row, height, **self.observation_kwargs)

    def healthcheck(self) -> HealthCheckResult:
        if self.remaining > 0:
            return HealthCheckResult(
                status=ProviderStatus.HEALTHY,
                message=f"{self.remaining} rows remaining",
            )
        return HealthCheckResult(
            status=ProviderStatus.UNAVAILABLE,
            message="Script exhausted",
        )
