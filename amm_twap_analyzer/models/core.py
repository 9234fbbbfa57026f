"""
Core data models for the AMM TWAP analyzer.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from amm_twap_analyzer.utils.error_handling import MalformedNumericError


def _require_int(name: str, value: Any) -> None:
    # bool is an int subclass but never a valid tick or timestamp
    if isinstance(value, bool) or not isinstance(value, int):
        raise MalformedNumericError(
            f"{name} must be an integer, got {type(value).__name__}: {value!r}",
            details={"field": name, "value": repr(value)},
        )


class RiskLevel(Enum):
    """Manipulation risk levels, ordered from least to most severe."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"

    @property
    def rank(self) -> int:
        return _RISK_RANKS[self]

    def raised_to(self, other: "RiskLevel") -> "RiskLevel":
        """Return the more severe of the two levels."""
        return other if other.rank > self.rank else self


_RISK_RANKS = {
    RiskLevel.LOW: 0,
    RiskLevel.MEDIUM: 1,
    RiskLevel.HIGH: 2,
    RiskLevel.CRITICAL: 3,
}


class RiskFactor(Enum):
    """Heuristic factors that can fire during manipulation scoring."""
    EXTREME_PRICE_DIFF = "EXTREME_PRICE_DIFF"
    HIGH_PRICE_DIFF = "HIGH_PRICE_DIFF"
    MODERATE_PRICE_DIFF = "MODERATE_PRICE_DIFF"
    RAPID_PRICE_CHANGE = "RAPID_PRICE_CHANGE"
    TICK_SPIKE = "TICK_SPIKE"
    INSUFFICIENT_DATA = "INSUFFICIENT_DATA"
    REPETITIVE_PATTERNS = "REPETITIVE_PATTERNS"
    NORMAL_MOVEMENT = "NORMAL_MOVEMENT"


@dataclass(frozen=True)
class Observation:
    """
    One sample of a pool's cumulative tick.

    A timestamp of zero marks an unused slot in the pool's observation ring
    buffer. Cumulative ticks are Python ints so values beyond 2**53 stay exact.
    """
    timestamp: int
    cumulative_tick: int

    def __post_init__(self):
        _require_int("timestamp", self.timestamp)
        _require_int("cumulative_tick", self.cumulative_tick)

    @property
    def is_valid(self) -> bool:
        return self.timestamp > 0


@dataclass(frozen=True)
class PoolSnapshot:
    """Instantaneous pool state used as the comparison baseline."""
    current_tick: int
    decimals0: int
    decimals1: int

    def __post_init__(self):
        _require_int("current_tick", self.current_tick)
        _require_int("decimals0", self.decimals0)
        _require_int("decimals1", self.decimals1)
        if self.decimals0 < 0 or self.decimals1 < 0:
            raise MalformedNumericError(
                f"Token decimals cannot be negative (decimals0={self.decimals0}, decimals1={self.decimals1})"
            )


@dataclass(frozen=True)
class TwapResult:
    """Output of the TWAP engine."""
    twap_tick: float
    twap_price: float
    current_price: float
    time_period_hours: float
    observation_count: int
    price_difference_percent: float
    raw_price: float
    decimal_adjustment: float
    time_diff_seconds: int
    tick_cumulative_diff: int
    start_timestamp: int
    end_timestamp: int
    start_tick_cumulative: int = 0
    end_tick_cumulative: int = 0

    @property
    def signed_price_difference_percent(self) -> float:
        """TWAP price relative to the current price, keeping the sign."""
        return (self.twap_price - self.current_price) / self.current_price * 100

    def to_dict(self) -> Dict[str, Any]:
        return {
            "twapTick": self.twap_tick,
            "twapPrice": self.twap_price,
            "currentPrice": self.current_price,
            "timePeriodHours": self.time_period_hours,
            "observationCount": self.observation_count,
            "priceDifferencePercent": self.price_difference_percent,
        }


@dataclass(frozen=True)
class RiskReport:
    """Output of the manipulation scorer."""
    level: RiskLevel
    factors: List[RiskFactor]
    confidence: int
    warning: Optional[str] = None
    recommendations: List[str] = field(default_factory=list)

    def has_factor(self, factor: RiskFactor) -> bool:
        return factor in self.factors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level.value,
            "factors": [f.value for f in self.factors],
            "warning": self.warning,
            "confidence": self.confidence,
            "recommendations": list(self.recommendations),
        }


@dataclass(frozen=True)
class TwapAnalysis:
    """A TWAP result paired with the risk report scored from it."""
    twap: TwapResult
    risk: RiskReport

    def to_dict(self) -> Dict[str, Any]:
        data = self.twap.to_dict()
        data["manipulationAnalysis"] = self.risk.to_dict()
        return data
