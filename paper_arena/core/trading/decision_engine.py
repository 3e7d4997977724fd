"""
Decision engine.

Converts a thesis, its debate outcome and the agent's portfolio into a
bounded TradeDecision. The engine never mutates state; given the same inputs
and clock it returns an equal decision.
"""

import math
from datetime import datetime

from loguru import logger

from paper_arena.core.constants import (
    CLOSE_DEBATE_MARGIN,
    CLOSE_DEBATE_MULTIPLIER,
    DECISIVE_BONUS,
    DECISIVE_MARGIN,
    LANDSLIDE_BONUS,
    LANDSLIDE_MARGIN,
    LOST_DEBATE_MULTIPLIER,
    LOW_WIN_RATE_MIN_TRADES,
    LOW_WIN_RATE_MULTIPLIER,
    LOW_WIN_RATE_THRESHOLD,
    MIN_BUY_CONFIDENCE,
)
from paper_arena.core.enums import TradeAction
from paper_arena.core.models.decision import DebateOutcome, PriceValidation, Thesis, TradeDecision
from paper_arena.core.models.portfolio import AgentPortfolio
from paper_arena.core.trading.market_hours import MarketHoursCalendar
from paper_arena.core.trading.position_sizing import PositionSizingPolicy
from paper_arena.core.trading.price_validation import PriceValidator
from paper_arena.core.types.financial import calculate_trade_value
from paper_arena.core.utils.clock import Clock, utc_now


class DecisionEngine:
    """Builds validated trade decisions for one agent at a time."""

    def __init__(
        self,
        sizing_policy: PositionSizingPolicy | None = None,
        price_validator: PriceValidator | None = None,
        market_hours: MarketHoursCalendar | None = None,
        enforce_market_hours: bool = False,
        clock: Clock = utc_now,
    ):
        self.sizing_policy = sizing_policy or PositionSizingPolicy()
        self.price_validator = price_validator or PriceValidator()
        self.market_hours = market_hours or MarketHoursCalendar()
        self.enforce_market_hours = enforce_market_hours
        self.clock = clock

    def decide(
        self,
        thesis: Thesis,
        debate: DebateOutcome,
        portfolio: AgentPortfolio,
        price: float,
        price_timestamp: datetime,
    ) -> TradeDecision:
        """Turn a thesis and debate outcome into a BUY, SELL or HOLD decision.

        Args:
            thesis: The agent's recommendation and confidence for a ticker
            debate: Bull/bear debate outcome for that thesis
            portfolio: The agent's current portfolio (read only)
            price: Current price of the ticker
            price_timestamp: When the price was observed

        Returns:
            TradeDecision; rejected paths are HOLD with is_valid False
        """
        now = self.clock()
        builder = _DecisionBuilder(thesis, debate, price)

        if not portfolio.status.accepts_decisions:
            return builder.hold(
                f"Portfolio is {portfolio.status}",
                confidence=0.0,
                errors=[f"Portfolio status: {portfolio.status}"],
            )

        market_status = self.market_hours.status(now)
        if not market_status.is_open:
            builder.warnings.append(market_status.describe())
            if self.enforce_market_hours:
                builder.errors.append(market_status.describe())

        existing = portfolio.positions.get(thesis.ticker)
        validation = self.price_validator.validate(
            thesis.ticker,
            price,
            price_timestamp,
            now,
            previous_price=existing.current_price if existing else None,
        )
        builder.price_validation = validation
        builder.errors.extend(validation.errors)
        builder.warnings.extend(validation.warnings)

        won_debate = debate.winner.supports(thesis.recommendation)
        confidence = self.adjust_confidence(
            thesis.confidence, won_debate, debate.margin, portfolio, builder.reasoning
        )

        if thesis.recommendation.is_buy_side:
            return self._decide_buy(builder, portfolio, won_debate, confidence)
        if thesis.recommendation.is_sell_side:
            return self._decide_sell(builder, portfolio, won_debate, confidence)

        builder.reasoning.append("Neutral recommendation")
        return builder.build(TradeAction.HOLD, 0, confidence, is_valid=True)

    @staticmethod
    def adjust_confidence(
        base: float,
        won_debate: bool,
        margin: float,
        portfolio: AgentPortfolio,
        reasoning: list[str] | None = None,
    ) -> float:
        """Scale thesis confidence by debate outcome and track record.

        A won debate earns a bonus for landslide (> 20) or decisive (>= 10)
        margins, a lost debate halves confidence, a close debate (< 10) costs
        a further 20%, and a sub-40% win rate over more than 5 closed trades
        costs 30%. The result is clamped to [0, 100].
        """
        notes = reasoning if reasoning is not None else []
        confidence = base

        if won_debate:
            if margin > LANDSLIDE_MARGIN:
                confidence += LANDSLIDE_BONUS
                notes.append(f"Landslide victory (+{margin:g} points)")
            elif margin >= DECISIVE_MARGIN:
                confidence += DECISIVE_BONUS
                notes.append(f"Decisive victory (+{margin:g} points)")
            else:
                notes.append(f"Won debate (+{margin:g} points)")
        else:
            confidence *= LOST_DEBATE_MULTIPLIER
            notes.append(f"Lost debate (margin: {margin:g} points) - reducing confidence")

        if margin < CLOSE_DEBATE_MARGIN:
            confidence *= CLOSE_DEBATE_MULTIPLIER
            notes.append("Close debate, reducing confidence")

        poor_record = portfolio.total_trades > LOW_WIN_RATE_MIN_TRADES
        if poor_record and portfolio.win_rate < LOW_WIN_RATE_THRESHOLD:
            confidence *= LOW_WIN_RATE_MULTIPLIER
            notes.append(f"Low historical win rate ({portfolio.win_rate * 100:.0f}%)")

        if not math.isfinite(confidence):
            return 0.0
        return min(100.0, max(0.0, confidence))

    def _decide_buy(
        self,
        builder: "_DecisionBuilder",
        portfolio: AgentPortfolio,
        won_debate: bool,
        confidence: float,
    ) -> TradeDecision:
        if not won_debate:
            return builder.hold("Lost debate - skipping trade", confidence)
        if confidence < MIN_BUY_CONFIDENCE:
            return builder.hold("Confidence too low after adjustments", confidence)

        sizing = self.sizing_policy.calculate_buy_size(
            portfolio, builder.thesis.ticker, confidence, builder.price
        )
        if not sizing.is_valid:
            return builder.hold("; ".join(sizing.reasons), confidence)

        builder.warnings.extend(sizing.warnings)
        return builder.build(TradeAction.BUY, sizing.shares, confidence, value=sizing.value)

    def _decide_sell(
        self,
        builder: "_DecisionBuilder",
        portfolio: AgentPortfolio,
        won_debate: bool,
        confidence: float,
    ) -> TradeDecision:
        position = portfolio.positions.get(builder.thesis.ticker)
        if position is None or position.is_empty:
            return builder.hold("No position to sell", confidence)
        if not won_debate:
            return builder.hold("Lost debate - holding position", confidence)

        sell_fraction = builder.thesis.recommendation.sell_fraction
        shares = max(1, math.floor(position.shares * sell_fraction))
        builder.reasoning.append(f"Selling {sell_fraction * 100:.0f}% of position")
        return builder.build(TradeAction.SELL, shares, confidence)


class _DecisionBuilder:
    """Accumulates reasoning, warnings and errors while a decision is made."""

    def __init__(self, thesis: Thesis, debate: DebateOutcome, price: float):
        self.thesis = thesis
        self.debate = debate
        self.price = price
        self.reasoning: list[str] = []
        self.warnings: list[str] = []
        self.errors: list[str] = []
        self.price_validation: PriceValidation | None = None

    def hold(
        self, reason: str, confidence: float, errors: list[str] | None = None
    ) -> TradeDecision:
        if errors:
            self.errors.extend(errors)
        logger.debug(f"HOLD {self.thesis.ticker}: {reason}")
        return self._make(TradeAction.HOLD, 0, confidence, reason, is_valid=False, value=0.0)

    def build(
        self,
        action: TradeAction,
        shares: int,
        confidence: float,
        value: float | None = None,
        is_valid: bool | None = None,
    ) -> TradeDecision:
        if value is None:
            value = calculate_trade_value(shares, self.price) if shares else 0.0
        valid = not self.errors if is_valid is None else is_valid and not self.errors
        return self._make(action, shares, confidence, "; ".join(self.reasoning), valid, value)

    def _make(
        self,
        action: TradeAction,
        shares: int,
        confidence: float,
        reasoning: str,
        is_valid: bool,
        value: float,
    ) -> TradeDecision:
        return TradeDecision(
            action=action,
            ticker=self.thesis.ticker,
            shares=shares,
            estimated_price=self.price,
            estimated_value=value,
            confidence=confidence,
            reasoning=reasoning,
            recommendation=self.thesis.recommendation,
            is_valid=is_valid,
            warnings=tuple(self.warnings),
            validation_errors=tuple(self.errors),
            thesis_id=self.thesis.id,
            debate_id=self.debate.id,
            price_validation=self.price_validation,
        )
