"""Portfolio valuation and profit & loss."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, Mapping

from sqlmodel import select

from ..errors import NotFound
from ..infra.database import SessionFactory
from ..infra.repositories import SQLModelAssetRepository, SQLModelTransactionRepository
from ..models.company import Company, CompanyShare
from ..models.portfolio import Holding
from ..models.transaction import TradeSide, Transaction
from ..models.user import User
from ..principal import Principal
from .companies import company_holdings, compute_company_value, compute_share_price
from .cost_basis import Position, apply_acquisition, apply_disposal
from .ledger import quantize_money

ZERO = Decimal("0")


@dataclass(frozen=True)
class PositionView:
    ticker: str
    name: str
    type: str
    quantity: Decimal
    avg_cost: Decimal
    price: Decimal
    market_value: Decimal
    cost_basis: Decimal
    unrealized_pnl: Decimal


@dataclass(frozen=True)
class EquityView:
    company_id: int
    company_name: str
    shares: Decimal
    share_price: Decimal
    value: Decimal


@dataclass
class PortfolioSummary:
    user_id: int
    display_name: str
    cash: Decimal
    initial_cash: Decimal
    positions: list[PositionView] = field(default_factory=list)
    equity: list[EquityView] = field(default_factory=list)
    realized_pnl: Decimal = ZERO

    @property
    def holdings_value(self) -> Decimal:
        return sum((p.market_value for p in self.positions), ZERO)

    @property
    def equity_value(self) -> Decimal:
        return sum((e.value for e in self.equity), ZERO)

    @property
    def total_value(self) -> Decimal:
        return self.cash + self.holdings_value + self.equity_value

    @property
    def unrealized_pnl(self) -> Decimal:
        return sum((p.unrealized_pnl for p in self.positions), ZERO)

    @property
    def total_pnl(self) -> Decimal:
        """Gain or loss against the starting balance."""
        return self.total_value - self.initial_cash


@dataclass(frozen=True)
class PublicProfile:
    display_name: str
    total_value: Decimal
    total_pnl: Decimal
    recent_transactions: list[Transaction]


def mark_to_market(
    holdings: Iterable[Holding], prices: Mapping[str, Decimal]
) -> list[PositionView]:
    """Value holdings at live prices, falling back to the average cost."""

    views = []
    for holding in holdings:
        price = prices.get(holding.ticker, holding.avg_cost)
        market_value = quantize_money(holding.quantity * price)
        cost_basis = quantize_money(holding.quantity * holding.avg_cost)
        views.append(
            PositionView(
                ticker=holding.ticker,
                name=holding.name,
                type=holding.type,
                quantity=holding.quantity,
                avg_cost=holding.avg_cost,
                price=price,
                market_value=market_value,
                cost_basis=cost_basis,
                unrealized_pnl=market_value - cost_basis,
            )
        )
    return views


def realized_pnl(transactions: Iterable[Transaction]) -> Decimal:
    """Replay a chronological trade log and sum the gains locked in by sales.

    Uses the same weighted-average rules as settlement, so the result matches
    what the holdings went through.
    """

    positions: dict[str, Position] = {}
    realized = ZERO
    for tx in transactions:
        current = positions.get(tx.ticker)
        if tx.type == TradeSide.BUY.value:
            positions[tx.ticker] = apply_acquisition(current, tx.quantity, tx.price)
            continue
        if current is None:
            # Units received outside trading (mining rewards) carry no cost.
            realized += tx.value
            continue
        sold = min(tx.quantity, current.quantity)
        realized += tx.value - sold * current.avg_cost
        remaining = apply_disposal(current, sold)
        if remaining is None:
            positions.pop(tx.ticker, None)
        else:
            positions[tx.ticker] = remaining
    return quantize_money(realized)


def portfolio_summary(session_factory: SessionFactory, principal: Principal) -> PortfolioSummary:
    """Cash, positions and company stakes of a player, valued now."""

    prices = SQLModelAssetRepository(session_factory).prices()
    with session_factory() as session:
        user = session.get(User, principal.user_id)
        if user is None:
            raise NotFound("User not found.")
        holdings = session.exec(
            select(Holding).where(Holding.user_id == principal.user_id).order_by(Holding.ticker)  # type: ignore
        ).all()
        summary = PortfolioSummary(
            user_id=principal.user_id,
            display_name=user.display_name,
            cash=user.cash,
            initial_cash=user.initial_cash,
            positions=mark_to_market(holdings, prices),
        )

        stakes = session.exec(
            select(CompanyShare, Company)
            .join(Company, Company.id == CompanyShare.company_id)  # type: ignore[arg-type]
            .where(CompanyShare.user_id == principal.user_id)
        ).all()
        for stake, company in stakes:
            holdings_of_company = company_holdings(session, stake.company_id)
            value = compute_company_value(company.cash, holdings_of_company, prices)
            share_price = compute_share_price(value, company.total_shares)
            summary.equity.append(
                EquityView(
                    company_id=stake.company_id,
                    company_name=company.name,
                    shares=stake.quantity,
                    share_price=share_price,
                    value=quantize_money(stake.quantity * share_price),
                )
            )

    summary.realized_pnl = realized_pnl(
        SQLModelTransactionRepository(session_factory).list_chronological(user_id=principal.user_id)
    )
    return summary


def public_profile(
    session_factory: SessionFactory, user_id: int, *, limit: int = 10
) -> PublicProfile:
    """What other players may see: totals and the latest personal trades."""

    with session_factory() as session:
        user = session.get(User, user_id)
        if user is None:
            raise NotFound("User not found.")
        principal = Principal(user_id=user_id, display_name=user.display_name)
    summary = portfolio_summary(session_factory, principal)
    transactions = SQLModelTransactionRepository(session_factory).list_all(
        user_id=user_id, limit=limit
    )
    return PublicProfile(
        display_name=summary.display_name,
        total_value=summary.total_value,
        total_pnl=summary.total_pnl,
        recent_transactions=transactions,
    )
