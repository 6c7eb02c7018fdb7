"""Derived portfolio statistics.

Pure reductions over the instrument list. Degenerate inputs (no price, zero
price, empty portfolio) produce zero-filled values; nothing here raises.
"""

from __future__ import annotations

from collections import defaultdict
from decimal import Decimal

from portfolio_tracker.portfolio.models import ZERO, Instrument, PortfolioSummary, PositionSummary, utc_now

HUNDRED = Decimal("100")


def percent_of(part: Decimal, whole: Decimal) -> Decimal:
    if whole <= 0:
        return ZERO
    return part / whole * HUNDRED


def summarize_position(instrument: Instrument) -> PositionSummary:
    invested = instrument.invested_amount
    price = instrument.current_price or ZERO
    shares = invested / price if price > 0 else ZERO
    current_value = shares * price
    profit_loss = current_value - invested
    return PositionSummary(
        instrument_id=instrument.id,
        ticker=instrument.ticker,
        type=instrument.type,
        invested_amount=invested,
        current_price=price,
        shares_implied=shares,
        current_value=current_value,
        profit_loss=profit_loss,
        profit_loss_percent=percent_of(profit_loss, invested) if price > 0 else ZERO,
    )


def summarize_portfolio(instruments: list[Instrument]) -> PortfolioSummary:
    total_invested = ZERO
    total_value = ZERO
    total_pnl = ZERO
    by_type: defaultdict[str, Decimal] = defaultdict(lambda: ZERO)
    for instrument in instruments:
        position = summarize_position(instrument)
        total_invested += position.invested_amount
        total_value += position.current_value
        total_pnl += position.profit_loss
        by_type[position.type] += position.current_value
    return PortfolioSummary(
        total_invested=total_invested,
        total_current_value=total_value,
        total_profit_loss=total_pnl,
        total_profit_loss_percent=percent_of(total_pnl, total_invested),
        by_type=dict(by_type),
        instrument_count=len(instruments),
        last_update=utc_now(),
    )
