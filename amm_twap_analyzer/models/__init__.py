"""
Data models for the AMM TWAP analyzer.
"""

from .core import (
    Observation,
    PoolSnapshot,
    RiskFactor,
    RiskLevel,
    RiskReport,
    TwapAnalysis,
    TwapResult,
)

__all__ = [
    'Observation',
    'PoolSnapshot',
    'RiskFactor',
    'RiskLevel',
    'RiskReport',
    'TwapAnalysis',
    'TwapResult',
]
