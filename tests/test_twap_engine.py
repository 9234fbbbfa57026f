"""
Tests for the TWAP computation engine.
"""

import math

import pytest

from amm_twap_analyzer.analysis.twap_engine import (
    compute_twap,
    decimal_adjustment,
    prepare_observations,
    price_difference_percent,
    tick_to_price,
)
from amm_twap_analyzer.models.core import Observation, PoolSnapshot
from amm_twap_analyzer.utils.error_handling import (
    DivisionByZeroError,
    InsufficientDataError,
    InvalidTimeRangeError,
    MalformedNumericError,
)


class TestPrepareObservations:
    """Test filtering and ordering of observations."""

    def test_filters_empty_slots_and_sorts(self):
        observations = [
            Observation(timestamp=300, cumulative_tick=30),
            Observation(timestamp=0, cumulative_tick=0),
            Observation(timestamp=100, cumulative_tick=10),
            Observation(timestamp=200, cumulative_tick=20),
        ]

        ordered = prepare_observations(observations)

        assert [obs.timestamp for obs in ordered] == [100, 200, 300]

    def test_equal_timestamps_keep_input_order(self):
        first = Observation(timestamp=100, cumulative_tick=1)
        second = Observation(timestamp=100, cumulative_tick=2)

        ordered = prepare_observations([Observation(timestamp=200, cumulative_tick=0), first, second])

        assert ordered[:2] == [first, second]

    def test_insufficient_observations(self):
        observations = [
            Observation(timestamp=100, cumulative_tick=10),
            Observation(timestamp=0, cumulative_tick=0),
        ]
        with pytest.raises(InsufficientDataError, match="found 1 valid"):
            prepare_observations(observations)

    def test_empty_input(self):
        with pytest.raises(InsufficientDataError):
            prepare_observations([])


class TestPriceConversion:
    """Test tick to price conversion."""

    def test_tick_zero_is_unit_price(self):
        assert tick_to_price(0) == 1.0

    def test_fractional_tick(self):
        assert tick_to_price(0.5) == pytest.approx(math.sqrt(1.0001))

    def test_tick_overflow(self):
        with pytest.raises(MalformedNumericError, match="outside the floating-point range"):
            tick_to_price(10 ** 9)

    def test_decimal_adjustment(self):
        assert decimal_adjustment(9, 6) == pytest.approx(0.001)
        assert decimal_adjustment(6, 9) == pytest.approx(1000.0)
        assert decimal_adjustment(6, 6) == 1.0

    def test_price_difference_is_absolute(self):
        assert price_difference_percent(90.0, 100.0) == pytest.approx(10.0)
        assert price_difference_percent(110.0, 100.0) == pytest.approx(10.0)

    def test_price_difference_zero_current_price(self):
        with pytest.raises(DivisionByZeroError):
            price_difference_percent(1.0, 0.0)


class TestComputeTwap:
    """Test full TWAP computation."""

    def test_constant_tick_matches_current_price(self):
        pool = PoolSnapshot(current_tick=100, decimals0=6, decimals1=6)
        observations = [
            Observation(timestamp=1000, cumulative_tick=0),
            Observation(timestamp=1060, cumulative_tick=6000),
        ]

        result = compute_twap(pool, observations)

        assert result.twap_tick == 100.0
        assert result.twap_price == pytest.approx(result.current_price)
        assert result.price_difference_percent == pytest.approx(0.0, abs=1e-9)
        assert result.observation_count == 2
        assert result.time_diff_seconds == 60
        assert result.time_period_hours == pytest.approx(60 / 3600)

    def test_uses_only_oldest_and_newest(self):
        pool = PoolSnapshot(current_tick=0, decimals0=6, decimals1=6)
        observations = [
            Observation(timestamp=200, cumulative_tick=99999),
            Observation(timestamp=100, cumulative_tick=0),
            Observation(timestamp=300, cumulative_tick=2000),
        ]

        result = compute_twap(pool, observations)

        assert result.twap_tick == pytest.approx(10.0)
        assert result.start_timestamp == 100
        assert result.end_timestamp == 300
        assert result.observation_count == 3

    def test_known_pool(self, sample_pool, smooth_observations):
        result = compute_twap(sample_pool, smooth_observations)

        assert result.tick_cumulative_diff == -30621526
        assert result.time_diff_seconds == 1862
        assert result.twap_tick == pytest.approx(-30621526 / 1862)
        assert result.decimal_adjustment == pytest.approx(0.001)
        assert result.twap_price == pytest.approx(1.0001 ** (-30621526 / 1862) * 0.001)
        assert result.current_price == pytest.approx(1.0001 ** -16520 * 0.001)
        assert result.price_difference_percent == pytest.approx(0.7477, abs=1e-3)

    def test_large_cumulative_ticks_stay_exact(self):
        base = 2 ** 60
        pool = PoolSnapshot(current_tick=3, decimals0=0, decimals1=0)
        observations = [
            Observation(timestamp=10, cumulative_tick=base),
            Observation(timestamp=11, cumulative_tick=base + 3),
        ]

        result = compute_twap(pool, observations)

        assert result.tick_cumulative_diff == 3
        assert result.twap_tick == 3.0

    def test_zero_time_range(self):
        pool = PoolSnapshot(current_tick=0, decimals0=6, decimals1=6)
        observations = [
            Observation(timestamp=100, cumulative_tick=0),
            Observation(timestamp=100, cumulative_tick=50),
        ]
        with pytest.raises(InvalidTimeRangeError):
            compute_twap(pool, observations)

    def test_insufficient_data(self):
        pool = PoolSnapshot(current_tick=0, decimals0=6, decimals1=6)
        with pytest.raises(InsufficientDataError):
            compute_twap(pool, [Observation(timestamp=100, cumulative_tick=0)])

    def test_current_price_underflow_is_division_error(self):
        pool = PoolSnapshot(current_tick=-8_000_000, decimals0=0, decimals1=0)
        observations = [
            Observation(timestamp=1, cumulative_tick=0),
            Observation(timestamp=2, cumulative_tick=0),
        ]
        with pytest.raises(DivisionByZeroError):
            compute_twap(pool, observations)

    def test_twap_tick_overflow(self):
        pool = PoolSnapshot(current_tick=0, decimals0=0, decimals1=0)
        observations = [
            Observation(timestamp=1, cumulative_tick=0),
            Observation(timestamp=2, cumulative_tick=10 ** 400),
        ]
        with pytest.raises(MalformedNumericError):
            compute_twap(pool, observations)

    def test_subnormal_current_price_is_division_error(self):
        pool = PoolSnapshot(current_tick=-7_400_000, decimals0=6, decimals1=6)
        observations = [
            Observation(timestamp=1, cumulative_tick=0),
            Observation(timestamp=2, cumulative_tick=0),
        ]

        assert 0 < tick_to_price(-7_400_000) < 1e-300
        with pytest.raises(DivisionByZeroError, match="too close to zero"):
            compute_twap(pool, observations)

    def test_adjusted_price_overflow(self):
        pool = PoolSnapshot(current_tick=0, decimals0=0, decimals1=255)
        observations = [
            Observation(timestamp=1, cumulative_tick=0),
            Observation(timestamp=2, cumulative_tick=7_000_000),
        ]

        assert math.isfinite(tick_to_price(7_000_000))
        with pytest.raises(MalformedNumericError, match="after decimal adjustment"):
            compute_twap(pool, observations)

    def test_result_keeps_endpoint_cumulative_ticks(self, sample_pool, smooth_observations):
        result = compute_twap(sample_pool, list(reversed(smooth_observations)))

        assert result.start_tick_cumulative == -576701345305
        assert result.end_tick_cumulative == -576731966831
