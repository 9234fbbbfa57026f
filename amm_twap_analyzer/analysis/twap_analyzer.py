"""
TWAP analysis pipeline.

Runs the TWAP engine and the manipulation scorer in sequence and reports the
intermediate numbers through logging, keeping the computations themselves
free of output.
"""

import logging
from typing import Optional, Sequence

from amm_twap_analyzer.analysis.manipulation_detector import ManipulationDetector
from amm_twap_analyzer.analysis.twap_engine import compute_twap, prepare_observations
from amm_twap_analyzer.models.core import (
    Observation,
    PoolSnapshot,
    RiskLevel,
    TwapAnalysis,
)
from amm_twap_analyzer.utils.error_handling import TwapAnalysisError, log_error

logger = logging.getLogger(__name__)


class TwapAnalyzer:
    """
    Compute a pool's TWAP and score it for manipulation risk.

    The analyzer holds no per-call state; one instance can be reused for any
    number of pools.
    """

    def __init__(self, detector: Optional[ManipulationDetector] = None):
        self.detector = detector or ManipulationDetector()

    def analyze(self, pool: PoolSnapshot, observations: Sequence[Observation]) -> TwapAnalysis:
        """
        Run the full analysis for one pool.

        Args:
            pool: Current pool state
            observations: Raw observations, possibly unordered and with empty slots

        Returns:
            TwapAnalysis pairing the TWAP result with its risk report

        Raises:
            TwapAnalysisError: Any engine or scorer failure, logged at debug level first
        """
        try:
            ordered = prepare_observations(observations)
            logger.debug(
                f"Found {len(ordered)} valid observations "
                f"(time range: {ordered[0].timestamp} to {ordered[-1].timestamp})"
            )

            result = compute_twap(pool, ordered)
            logger.debug(
                f"Time difference: {result.time_diff_seconds} seconds "
                f"({result.time_period_hours:.2f} hours), "
                f"tick cumulative difference: {result.tick_cumulative_diff}"
            )
            logger.debug(
                f"Raw price: {result.raw_price:.12f}, decimal adjustment: {result.decimal_adjustment} "
                f"(decimals0={pool.decimals0}, decimals1={pool.decimals1})"
            )

            risk = self.detector.score(
                result.price_difference_percent,
                result.time_period_hours,
                ordered,
            )

        except TwapAnalysisError as e:
            # re-raised for the caller to report
            log_error(e, "twap_analysis", level=logging.DEBUG)
            raise

        logger.info(
            f"TWAP tick {result.twap_tick:.6f}, price {result.twap_price:.8f} "
            f"vs current {result.current_price:.8f} ({result.price_difference_percent:.4f}% difference)",
            extra={
                "observation_count": result.observation_count,
                "risk_level": risk.level.value,
                "confidence": risk.confidence,
            },
        )

        if risk.level != RiskLevel.LOW:
            logger.warning(
                f"Manipulation risk {risk.level.value}: {', '.join(f.value for f in risk.factors)}"
            )

        return TwapAnalysis(twap=result, risk=risk)


def analyze_twap(pool: PoolSnapshot, observations: Sequence[Observation]) -> TwapAnalysis:
    """Analyze one pool with a default TwapAnalyzer."""
    return TwapAnalyzer().analyze(pool, observations)
