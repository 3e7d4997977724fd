"""
Financial data types for paper trading calculations.

Cash, prices and P&L are held as float. Whole-share equity positions and
dollar-denominated values keep the magnitudes small enough that float64
gives more than enough precision for a simulated ledger, as long as the
rounding helpers below are applied at every boundary that is persisted or
compared.

Precision Trade-offs:
- Native NumPy/Pandas compatibility for analytics
- ~1e-15 relative precision, so equality checks go through
  safe_float_comparison
"""

import math

# Financial calculation precision (number of decimal places)
FINANCIAL_DECIMALS = 8  # internal cash and cost amounts
PERCENTAGE_DECIMALS = 4  # ratios and percentages
PRICE_DECIMALS = 2  # USD prices

# Common financial values as float constants
ZERO = 0.0
ONE = 1.0
HUNDRED = 100.0


def to_float(value: str | int | float) -> float:
    """Convert various numeric types to float.

    Examples:
        >>> to_float(150)
        150.0
        >>> to_float('1.5')
        1.5
    """
    if isinstance(value, float):
        return value
    return float(value)


def round_price(price: float) -> float:
    """Round price to cent precision."""
    return round(price, PRICE_DECIMALS)


def round_amount(amount: float) -> float:
    """Round a cash or cost amount to internal precision."""
    return round(amount, FINANCIAL_DECIMALS)


def round_percentage(percentage: float) -> float:
    """Round a ratio or percentage to reporting precision."""
    return round(percentage, PERCENTAGE_DECIMALS)


def is_valid_price(price: float) -> bool:
    """Check that a price is a finite number greater than zero."""
    return isinstance(price, int | float) and math.isfinite(price) and price > ZERO


def calculate_trade_value(shares: int, price: float) -> float:
    """Calculate the cash value of a whole-share trade.

    Args:
        shares: Number of shares
        price: Execution price per share

    Returns:
        Trade value as float
    """
    return round_amount(shares * price)


def calculate_realized_pnl(avg_cost_basis: float, price: float, shares: int) -> float:
    """Calculate realized P&L for selling shares of a long position.

    Args:
        avg_cost_basis: Average cost per share of the position
        price: Sale price per share
        shares: Number of shares sold

    Returns:
        Realized P&L as float
    """
    return round_amount((price - avg_cost_basis) * shares)


def safe_float_comparison(a: float, b: float, tolerance: float = 1e-9) -> bool:
    """Compare floats with tolerance for precision issues.

    Examples:
        >>> safe_float_comparison(0.1 + 0.2, 0.3)
        True
        >>> safe_float_comparison(150.10, 150.12, 0.01)
        False
    """
    return abs(a - b) < tolerance


def safe_ratio(numerator: float, denominator: float, default: float = ZERO) -> float:
    """Divide, returning default when the denominator is zero."""
    if denominator == ZERO:
        return default
    return numerator / denominator
