"""
TWAP computation engine.

Derives a time-weighted average tick from a pool's cumulative-tick
observations and converts it into a decimal-adjusted price using the
concentrated-liquidity tick formula ``price = 1.0001 ** tick``.

Everything here is a pure function of its arguments: no logging, no I/O and
no module state.
"""

import math
from typing import List, Sequence

from amm_twap_analyzer.models.core import Observation, PoolSnapshot, TwapResult
from amm_twap_analyzer.utils.error_handling import (
    DivisionByZeroError,
    InsufficientDataError,
    InvalidTimeRangeError,
    MalformedNumericError,
)

TICK_BASE = 1.0001
SECONDS_PER_HOUR = 3600
MIN_OBSERVATIONS = 2


def prepare_observations(observations: Sequence[Observation]) -> List[Observation]:
    """
    Drop empty ring-buffer slots and order the rest chronologically.

    The sort is stable, so observations sharing a timestamp keep their input
    order.

    Raises:
        InsufficientDataError: If fewer than two observations have a timestamp > 0
    """
    valid = [obs for obs in observations if obs.timestamp > 0]

    if len(valid) < MIN_OBSERVATIONS:
        raise InsufficientDataError(
            f"Need at least {MIN_OBSERVATIONS} observations to calculate TWAP, "
            f"found {len(valid)} valid",
            details={"valid_observations": len(valid), "total_observations": len(observations)},
        )

    return sorted(valid, key=lambda obs: obs.timestamp)


def tick_to_price(tick: float) -> float:
    """Convert a (possibly fractional) tick to a raw token0/token1 price."""
    try:
        return TICK_BASE ** tick
    except OverflowError:
        raise MalformedNumericError(
            f"Tick {tick} produces a price outside the floating-point range",
            details={"tick": tick},
        )


def decimal_adjustment(decimals0: int, decimals1: int) -> float:
    """Scale factor converting a raw price into human units; may be fractional."""
    return 10.0 ** (decimals1 - decimals0)


def price_difference_percent(twap_price: float, current_price: float) -> float:
    """Absolute deviation of the TWAP price from the current price, in percent."""
    if current_price == 0:
        raise DivisionByZeroError(
            "Current price evaluates to zero; price difference is undefined",
            details={"twap_price": twap_price},
        )
    percent = abs(twap_price - current_price) / current_price * 100
    if not math.isfinite(percent):
        raise DivisionByZeroError(
            f"Current price {current_price!r} is too close to zero; price difference is undefined",
            details={"twap_price": twap_price, "current_price": current_price},
        )
    return percent


def _finite_price(name: str, price: float, tick: float, adjustment: float) -> float:
    if not math.isfinite(price):
        raise MalformedNumericError(
            f"{name} at tick {tick} exceeds the floating-point range after decimal adjustment",
            details={"tick": tick, "decimal_adjustment": adjustment},
        )
    return price


def compute_twap(pool: PoolSnapshot, observations: Sequence[Observation]) -> TwapResult:
    """
    Compute the time-weighted average price for a pool.

    Args:
        pool: Current pool state (tick and token decimals)
        observations: Cumulative-tick samples in any order; zero timestamps are ignored

    Returns:
        TwapResult with the TWAP tick, adjusted prices and deviation

    Raises:
        InsufficientDataError: Fewer than two valid observations
        InvalidTimeRangeError: Oldest and newest observations share a timestamp
        DivisionByZeroError: The current price is zero or too small to divide by
        MalformedNumericError: A tick maps to a price outside the float range,
            before or after decimal adjustment
    """
    ordered = prepare_observations(observations)
    oldest = ordered[0]
    newest = ordered[-1]

    time_diff = newest.timestamp - oldest.timestamp
    if time_diff <= 0:
        raise InvalidTimeRangeError(
            f"Observations span no time (oldest and newest timestamp both {oldest.timestamp})",
            details={"start_timestamp": oldest.timestamp, "end_timestamp": newest.timestamp},
        )

    # int arithmetic keeps cumulative ticks beyond 2**53 exact until the division
    tick_cumulative_diff = newest.cumulative_tick - oldest.cumulative_tick
    try:
        twap_tick = tick_cumulative_diff / time_diff
    except OverflowError:
        raise MalformedNumericError(
            f"Tick cumulative difference {tick_cumulative_diff} is too large to average",
            details={"tick_cumulative_diff": str(tick_cumulative_diff)},
        )

    raw_price = tick_to_price(twap_tick)
    adjustment = decimal_adjustment(pool.decimals0, pool.decimals1)
    twap_price = _finite_price("TWAP price", raw_price * adjustment, twap_tick, adjustment)
    current_price = _finite_price(
        "Current price", tick_to_price(pool.current_tick) * adjustment, pool.current_tick, adjustment
    )

    return TwapResult(
        twap_tick=twap_tick,
        twap_price=twap_price,
        current_price=current_price,
        time_period_hours=time_diff / SECONDS_PER_HOUR,
        observation_count=len(ordered),
        price_difference_percent=price_difference_percent(twap_price, current_price),
        raw_price=raw_price,
        decimal_adjustment=adjustment,
        time_diff_seconds=time_diff,
        tick_cumulative_diff=tick_cumulative_diff,
        start_timestamp=oldest.timestamp,
        end_timestamp=newest.timestamp,
        start_tick_cumulative=oldest.cumulative_tick,
        end_tick_cumulative=newest.cumulative_tick,
    )
