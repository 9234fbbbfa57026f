"""
Analysis module for TWAP computation and manipulation scoring.
"""

from .manipulation_detector import (
    ManipulationDetector,
    calculate_confidence,
    get_recommendations,
    score_manipulation,
)
from .twap_analyzer import TwapAnalyzer, analyze_twap
from .twap_engine import compute_twap, prepare_observations, tick_to_price

__all__ = [
    'ManipulationDetector',
    'TwapAnalyzer',
    'analyze_twap',
    'calculate_confidence',
    'compute_twap',
    'get_recommendations',
    'prepare_observations',
    'score_manipulation',
    'tick_to_price',
]
