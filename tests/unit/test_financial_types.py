"""
Unit tests for financial helpers and metric result types.
"""

import math

import pytest

from paper_arena.core.types import NotEnoughData, SharpeValue
from paper_arena.core.types.financial import (
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


class TestFinancialHelpers:
    """Test suite for float financial helpers."""

    def test_should_convert_numeric_inputs_to_float(self) -> None:
        assert to_float(150) == 150.0
        assert to_float("1.5") == 1.5
        assert isinstance(to_float(3), float)

    def test_should_round_to_configured_precision(self) -> None:
        assert round_price(150.126) == 150.13
        assert round_percentage(0.123456) == 0.1235
        assert round_amount(0.1 + 0.2) == 0.3

    def test_should_calculate_trade_value_without_float_noise(self) -> None:
        assert calculate_trade_value(3, 0.1) == 0.3
        assert calculate_trade_value(10, 150.25) == 1502.5

    def test_should_calculate_realized_pnl_for_long_sale(self) -> None:
        assert calculate_realized_pnl(100.0, 110.0, 5) == 50.0
        assert calculate_realized_pnl(100.0, 90.0, 5) == -50.0

    @pytest.mark.parametrize("price", [0, -1.0, math.inf, math.nan, "10"])
    def test_should_reject_unusable_prices(self, price: object) -> None:
        assert not is_valid_price(price)  # type: ignore[arg-type]

    def test_should_accept_positive_finite_price(self) -> None:
        assert is_valid_price(0.01)
        assert is_valid_price(150)

    def test_should_compare_floats_with_tolerance(self) -> None:
        assert safe_float_comparison(0.1 + 0.2, 0.3)
        assert not safe_float_comparison(150.10, 150.12, 0.01)

    def test_should_return_default_for_zero_denominator(self) -> None:
        assert safe_ratio(5.0, 0.0) == 0.0
        assert safe_ratio(5.0, 0.0, default=1.0) == 1.0
        assert safe_ratio(5.0, 2.0) == 2.5


class TestSharpeRatioTypes:
    """Test suite for the Sharpe ratio sum type."""

    def test_should_report_zero_for_not_enough_data(self) -> None:
        sharpe = NotEnoughData(samples=3)

        assert sharpe.as_float() == 0.0
        assert sharpe.required == 30

    def test_should_report_value_for_computed_sharpe(self) -> None:
        assert SharpeValue(1.25).as_float() == 1.25

    def test_should_be_immutable(self) -> None:
        sharpe = SharpeValue(1.0)
        with pytest.raises(AttributeError):
            sharpe.value = 2.0  # type: ignore[misc]
