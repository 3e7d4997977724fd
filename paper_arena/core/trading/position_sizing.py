"""
Position sizing policy.

Turns an adjusted confidence into a bounded whole-share BUY size, and checks
requested SELL sizes against current holdings.
"""

import math

from loguru import logger

from paper_arena.core.models.portfolio import AgentPortfolio
from paper_arena.core.models.rules import PositionSizingRules, SizingResult
from paper_arena.core.types.financial import ZERO, calculate_trade_value, is_valid_price


class PositionSizingPolicy:
    """Computes BUY sizes within the configured sizing rules."""

    def __init__(self, rules: PositionSizingRules | None = None):
        self.rules = rules or PositionSizingRules()

    def calculate_buy_size(
        self,
        portfolio: AgentPortfolio,
        ticker: str,
        confidence: float,
        price: float,
    ) -> SizingResult:
        """Size a BUY of ticker at price for the given confidence.

        The target allocation is total_value * confidence/100 *
        max_position_percent, capped to the cash available above the reserve,
        floored to whole shares and shrunk to fit the total-invested limit.

        Returns:
            SizingResult; invalid results carry the rejection reasons
        """
        rules = self.rules

        if not is_valid_price(price):
            return SizingResult.reject("Invalid current price")
        if not math.isfinite(confidence) or confidence < 0 or confidence > 100:
            return SizingResult.reject("Invalid confidence value (must be 0-100)")
        if confidence == 0:
            return SizingResult.reject("Confidence is 0 - no trade")

        total_value = portfolio.total_value
        existing = portfolio.positions.get(ticker)
        if existing is not None and total_value > 0:
            if existing.weight(total_value) >= rules.max_position_percent:
                return SizingResult.reject(
                    f"Already at max position size ({rules.max_position_percent * 100:.0f}%)"
                )

        reserve = total_value * rules.reserve_cash_percent
        available_cash = max(ZERO, portfolio.current_cash - reserve)
        if available_cash < rules.min_trade_value:
            return SizingResult.reject(f"Insufficient cash (min {rules.min_trade_value:.0f})")

        target_value = total_value * (confidence / 100) * rules.max_position_percent
        max_value = min(target_value, available_cash)

        shares = max(0, math.floor(max_value / price))
        value = calculate_trade_value(shares, price)
        if shares == 0 or value < rules.min_trade_value:
            return SizingResult.reject(f"Trade size too small (min {rules.min_trade_value:.0f})")

        warnings: list[str] = []
        invested = portfolio.positions_value()
        invest_limit = total_value * rules.max_total_invested
        if total_value > 0 and invested + value > invest_limit:
            limit_label = f"{rules.max_total_invested * 100:.0f}%"
            allowed = invest_limit - invested
            if allowed < rules.min_trade_value:
                return SizingResult.reject(f"Max invested limit reached ({limit_label})")
            shares = math.floor(allowed / price)
            value = calculate_trade_value(shares, price)
            if shares == 0 or value < rules.min_trade_value:
                return SizingResult.reject(f"Max invested limit reached ({limit_label})")
            warnings.append(f"Reduced to fit max invested limit ({limit_label})")

        if existing is None and len(portfolio.positions) >= rules.max_positions_per_agent:
            return SizingResult.reject(f"Max positions reached ({rules.max_positions_per_agent})")

        logger.debug(
            f"Sized BUY {ticker} for {portfolio.agent_id}: {shares} shares (${value:.2f}) "
            f"at confidence {confidence:.1f}"
        )
        return SizingResult(is_valid=True, shares=shares, value=value, warnings=tuple(warnings))

    def validate_sell_size(
        self, portfolio: AgentPortfolio, ticker: str, shares: int
    ) -> SizingResult:
        """Check that shares is a positive integer not exceeding the held shares."""
        if isinstance(shares, bool) or not isinstance(shares, int) or shares <= 0:
            return SizingResult.reject("Invalid shares: must be positive integer")

        position = portfolio.positions.get(ticker)
        if position is None:
            return SizingResult.reject("No position found to sell")
        if shares > position.shares:
            return SizingResult.reject(
                f"Cannot sell {shares} shares, only {position.shares} available"
            )

        return SizingResult(
            is_valid=True,
            shares=shares,
            value=calculate_trade_value(shares, position.current_price),
        )
