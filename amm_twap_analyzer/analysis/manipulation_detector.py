"""
Heuristic manipulation scoring for TWAP analyses.

Flags statistical patterns associated with pump/dump schemes, wash trading and
flash-loan attacks. The checks are rule-based heuristics with fixed
thresholds; a clean report is not proof that a pool was not manipulated.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from amm_twap_analyzer.models.core import Observation, RiskFactor, RiskLevel, RiskReport
from amm_twap_analyzer.utils.error_handling import InsufficientDataError

EXTREME_PRICE_DIFF_WARNING = "Extreme price difference detected! Possible pump/dump or flash loan attack"
HIGH_PRICE_DIFF_WARNING = "Very high price difference - investigate for manipulation"
RAPID_PRICE_CHANGE_WARNING = "Rapid price change in short timeframe - possible manipulation"
INSUFFICIENT_DATA_WARNING = "Very short observation period - results may not be reliable"

RECOMMENDATIONS = {
    RiskLevel.CRITICAL: [
        "🚨 DO NOT TRADE - High manipulation risk",
        "📊 Wait for market stabilization",
        "🔍 Investigate recent transactions",
    ],
    RiskLevel.HIGH: [
        "⚠️ Trade with extreme caution",
        "📈 Use smaller position sizes",
        "⏰ Wait for longer observation period",
    ],
    RiskLevel.MEDIUM: [
        "⚡ Consider market volatility",
        "📊 Cross-check with other indicators",
    ],
    RiskLevel.LOW: [
        "✅ Normal market conditions",
        "📈 Safe to trade with normal risk management",
    ],
}
COLLECT_MORE_DATA_RECOMMENDATION = "⏱️ Collect more historical data"


@dataclass
class _ScoringState:
    """Mutable accumulator used while the checks run; never escapes a call."""
    level: RiskLevel = RiskLevel.LOW
    factors: List[RiskFactor] = field(default_factory=list)
    warning: Optional[str] = None

    def flag(self, factor: RiskFactor, warning: Optional[str] = None) -> None:
        self.factors.append(factor)
        if self.warning is None and warning is not None:
            self.warning = warning


class ManipulationDetector:
    """
    Rule-based manipulation scorer.

    Five independent checks run in a fixed order and can only raise the risk
    level, never lower it:

    1. Price deviation between TWAP and current price (extreme/high/moderate)
    2. Large deviation inside a short observation window
    3. Tick velocity spikes relative to the mean velocity
    4. Observation window too short to be reliable
    5. Repetitive tick deltas, a rough wash-trading indicator

    The thresholds are fixed class constants.
    """

    EXTREME_DIFF_PERCENT = 50
    HIGH_DIFF_PERCENT = 30
    MODERATE_DIFF_PERCENT = 15
    RAPID_CHANGE_DIFF_PERCENT = 20
    RAPID_CHANGE_MAX_HOURS = 1
    SPIKE_MULTIPLIER = 10
    MIN_RELIABLE_HOURS = 0.1  # about six minutes
    PATTERN_BUCKET_SCALE = 1000
    MIN_DISTINCT_DELTA_RATIO = 0.3

    BASE_CONFIDENCE = 50

    def score(
        self,
        price_diff_percent: float,
        time_period_hours: float,
        observations: Sequence[Observation],
    ) -> RiskReport:
        """
        Score a TWAP analysis for manipulation risk.

        Args:
            price_diff_percent: Absolute TWAP vs current price deviation, in percent
            time_period_hours: Span between oldest and newest observation
            observations: Valid observations in chronological order

        Returns:
            RiskReport with level, factors, confidence, warning and recommendations

        Raises:
            InsufficientDataError: If fewer than two observations are supplied
        """
        if len(observations) < 2:
            raise InsufficientDataError(
                f"Manipulation scoring needs at least 2 observations, got {len(observations)}"
            )

        state = _ScoringState()

        self._check_price_difference(state, price_diff_percent)
        self._check_rapid_change(state, price_diff_percent, time_period_hours)
        self._check_tick_spike(state, observations)
        self._check_observation_window(state, time_period_hours)
        self._check_repetitive_patterns(state, observations)

        if not state.factors:
            state.factors.append(RiskFactor.NORMAL_MOVEMENT)

        return RiskReport(
            level=state.level,
            factors=state.factors,
            confidence=calculate_confidence(state.factors, time_period_hours),
            warning=state.warning,
            recommendations=get_recommendations(state.level, state.factors),
        )

    def _check_price_difference(self, state: _ScoringState, price_diff_percent: float) -> None:
        if price_diff_percent > self.EXTREME_DIFF_PERCENT:
            state.flag(RiskFactor.EXTREME_PRICE_DIFF, EXTREME_PRICE_DIFF_WARNING)
            state.level = state.level.raised_to(RiskLevel.CRITICAL)
        elif price_diff_percent > self.HIGH_DIFF_PERCENT:
            state.flag(RiskFactor.HIGH_PRICE_DIFF, HIGH_PRICE_DIFF_WARNING)
            state.level = state.level.raised_to(RiskLevel.HIGH)
        elif price_diff_percent > self.MODERATE_DIFF_PERCENT:
            state.flag(RiskFactor.MODERATE_PRICE_DIFF)
            state.level = state.level.raised_to(RiskLevel.MEDIUM)

    def _check_rapid_change(
        self, state: _ScoringState, price_diff_percent: float, time_period_hours: float
    ) -> None:
        if (time_period_hours < self.RAPID_CHANGE_MAX_HOURS
                and price_diff_percent > self.RAPID_CHANGE_DIFF_PERCENT):
            state.flag(RiskFactor.RAPID_PRICE_CHANGE, RAPID_PRICE_CHANGE_WARNING)
            # Only lifts a LOW level; a MEDIUM from the deviation check stays MEDIUM
            if state.level == RiskLevel.LOW:
                state.level = RiskLevel.HIGH

    def _check_tick_spike(self, state: _ScoringState, observations: Sequence[Observation]) -> None:
        velocities = tick_velocities(observations)
        if not velocities:
            return

        mean_velocity = sum(velocities) / len(velocities)
        max_movement = max(abs(v) for v in velocities)

        if max_movement > abs(mean_velocity) * self.SPIKE_MULTIPLIER:
            state.flag(RiskFactor.TICK_SPIKE)
            if state.level in (RiskLevel.LOW, RiskLevel.MEDIUM):
                state.level = RiskLevel.HIGH

    def _check_observation_window(self, state: _ScoringState, time_period_hours: float) -> None:
        if time_period_hours < self.MIN_RELIABLE_HOURS:
            state.flag(RiskFactor.INSUFFICIENT_DATA, INSUFFICIENT_DATA_WARNING)

    def _check_repetitive_patterns(
        self, state: _ScoringState, observations: Sequence[Observation]
    ) -> None:
        distinct = distinct_delta_buckets(observations, self.PATTERN_BUCKET_SCALE)
        if distinct < len(observations) * self.MIN_DISTINCT_DELTA_RATIO:
            state.flag(RiskFactor.REPETITIVE_PATTERNS)
            if state.level == RiskLevel.LOW:
                state.level = RiskLevel.MEDIUM


def tick_velocities(observations: Sequence[Observation]) -> List[float]:
    """Ticks per second for each consecutive pair with a positive time delta."""
    velocities = []
    for previous, current in zip(observations, observations[1:]):
        time_delta = current.timestamp - previous.timestamp
        if time_delta > 0:
            velocities.append((current.cumulative_tick - previous.cumulative_tick) / time_delta)
    return velocities


def distinct_delta_buckets(observations: Sequence[Observation], scale: int = 1000) -> int:
    """
    Count distinct inter-observation cumulative-tick deltas.

    Deltas are scaled and rounded into similarity buckets. This is a coarse
    stand-in for a real similarity statistic.
    """
    buckets = set()
    for previous, current in zip(observations, observations[1:]):
        buckets.add(round((current.cumulative_tick - previous.cumulative_tick) * scale))
    return len(buckets)


def calculate_confidence(factors: Sequence[RiskFactor], time_period_hours: float) -> int:
    """Confidence in the risk assessment, clamped to 0-100."""
    confidence = ManipulationDetector.BASE_CONFIDENCE

    if time_period_hours > 1:
        confidence += 20
    if time_period_hours > 6:
        confidence += 15
    if RiskFactor.NORMAL_MOVEMENT in factors:
        confidence += 15
    if RiskFactor.EXTREME_PRICE_DIFF in factors:
        confidence += 25
    if RiskFactor.INSUFFICIENT_DATA in factors:
        confidence -= 30

    return min(max(confidence, 0), 100)


def get_recommendations(level: RiskLevel, factors: Sequence[RiskFactor]) -> List[str]:
    """Fixed guidance for a risk level, plus a data-collection hint when needed."""
    recommendations = list(RECOMMENDATIONS[level])

    if RiskFactor.INSUFFICIENT_DATA in factors:
        recommendations.append(COLLECT_MORE_DATA_RECOMMENDATION)

    return recommendations


_detector = ManipulationDetector()


def score_manipulation(
    price_diff_percent: float,
    time_period_hours: float,
    observations: Sequence[Observation],
) -> RiskReport:
    """Score manipulation risk with the default detector."""
    return _detector.score(price_diff_percent, time_period_hours, observations)
