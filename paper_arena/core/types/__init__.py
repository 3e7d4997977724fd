"""
Core type definitions and utilities.
"""

# Re-export financial utilities for easy access
from .financial import (
    FINANCIAL_DECIMALS,
    HUNDRED,
    ONE,
    PERCENTAGE_DECIMALS,
    PRICE_DECIMALS,
    ZERO,
    calculate_realized_pnl,
    calculate_trade_value,
    is_valid_price,
    round_amount,
    round_percentage,
    round_price,
    safe_float_comparison,
    safe_ratio,
    to_float,
)
from .metrics import NotEnoughData, SharpeRatio, SharpeValue

__all__ = [
    # Utility functions
    "to_float",
    "round_price",
    "round_amount",
    "round_percentage",
    "is_valid_price",
    "calculate_trade_value",
    "calculate_realized_pnl",
    "safe_float_comparison",
    "safe_ratio",
    # Metric types
    "NotEnoughData",
    "SharpeRatio",
    "SharpeValue",
    # Constants
    "FINANCIAL_DECIMALS",
    "PERCENTAGE_DECIMALS",
    "PRICE_DECIMALS",
    "ZERO",
    "ONE",
    "HUNDRED",
]
