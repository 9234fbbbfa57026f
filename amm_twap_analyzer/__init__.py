"""
AMM TWAP Analyzer

Time-weighted average price calculation and price-manipulation risk scoring
for concentrated-liquidity AMM pools.
"""

__version__ = "0.1.0"
__author__ = "AMM TWAP Analyzer Team"
