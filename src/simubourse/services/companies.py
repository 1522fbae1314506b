"""Player companies: creation, NAV valuation and share issuance."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, Mapping, Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ..errors import (
    DuplicateName,
    InsufficientFunds,
    InvalidAmount,
    NotFound,
    ValidationFailed,
    ZeroSharePrice,
)
from ..infra.database import SessionFactory
from ..logging_config import get_logger
from ..models.asset import Asset
from ..models.company import CEO_ROLE, Company, CompanyHolding, CompanyMember, CompanyShare
from ..principal import Principal
from .cost_basis import quantize_units
from .ledger import Number, credit, debit, load_company_for_update, load_user_for_update, quantize_money

logger = get_logger(__name__)

# Price at which the very first investor buys in, before any share exists.
INITIAL_SHARE_PRICE = Decimal("1.00")

NAME_LENGTH = (3, 50)
INDUSTRY_LENGTH = (3, 50)
DESCRIPTION_LENGTH = (10, 200)


@dataclass(frozen=True)
class InvestmentReceipt:
    company_id: int
    company_name: str
    amount: Decimal
    share_price: Decimal
    shares_minted: Decimal
    total_shares: Decimal


@dataclass(frozen=True)
class ValuedHolding:
    ticker: str
    name: str
    quantity: Decimal
    avg_cost: Decimal
    price: Decimal
    market_value: Decimal


@dataclass
class CompanyOverview:
    """Read-only snapshot of a company at current market prices."""

    id: int
    name: str
    industry: str
    description: str
    cash: Decimal
    total_shares: Decimal
    company_value: Decimal
    share_price: Decimal
    holdings: list[ValuedHolding] = field(default_factory=list)


def compute_company_value(
    cash: Decimal,
    holdings: Iterable[CompanyHolding],
    prices: Mapping[str, Decimal],
) -> Decimal:
    """Cash plus holdings marked to market.

    A holding whose ticker has no live price is valued at its average cost so
    the valuation stays defined after an asset disappears.
    """

    value = cash
    for holding in holdings:
        price = prices.get(holding.ticker, holding.avg_cost)
        value += holding.quantity * price
    return value


def compute_share_price(company_value: Decimal, total_shares: Decimal) -> Decimal:
    """Net asset value per share, or the initial price before any issuance."""

    if total_shares <= 0:
        return INITIAL_SHARE_PRICE
    return company_value / total_shares


def create_company(
    session_factory: SessionFactory,
    principal: Principal,
    *,
    name: str,
    industry: str,
    description: str,
) -> Company:
    """Create a company with the acting player as its CEO."""

    name = name.strip()
    industry = industry.strip()
    description = description.strip()
    _check_length("name", name, NAME_LENGTH)
    _check_length("industry", industry, INDUSTRY_LENGTH)
    _check_length("description", description, DESCRIPTION_LENGTH)

    try:
        with session_factory() as session:
            if session.exec(select(Company.id).where(Company.name == name)).first() is not None:
                raise DuplicateName(f'A company named "{name}" already exists.')
            company = Company(
                name=name,
                industry=industry,
                description=description,
                creator_id=principal.user_id,
            )
            session.add(company)
            session.flush()
            assert company.id is not None
            session.add(
                CompanyMember(company_id=company.id, user_id=principal.user_id, role=CEO_ROLE)
            )
    except IntegrityError as exc:
        # Lost a race with a concurrent creation of the same name.
        raise DuplicateName(f'A company named "{name}" already exists.') from exc

    logger.info(
        "Company created",
        extra={"company_id": company.id, "company_name": name, "ceo_id": principal.user_id},
    )
    return company


def invest(
    session_factory: SessionFactory,
    principal: Principal,
    company_id: int,
    amount: Number,
) -> InvestmentReceipt:
    """Buy newly minted shares at the pre-investment NAV per share.

    Existing shareholders keep their per-share value: the cash added equals the
    value of the shares minted.
    """

    cash_amount = quantize_money(amount)
    if cash_amount <= 0:
        raise InvalidAmount("The investment amount must be positive.")

    with session_factory() as session:
        investor = load_user_for_update(session, principal.user_id)
        company = load_company_for_update(session, company_id)
        if investor.cash < cash_amount:
            raise InsufficientFunds(
                f"Insufficient funds: investing ${cash_amount:,.2f} needs more than "
                f"your ${investor.cash:,.2f}."
            )

        holdings = company_holdings(session, company_id)
        value = compute_company_value(company.cash, holdings, _prices_for(session, holdings))
        share_price = compute_share_price(value, company.total_shares)
        if share_price <= 0:
            raise ZeroSharePrice()

        shares_minted = quantize_units(cash_amount / share_price)
        if shares_minted <= 0:
            raise InvalidAmount("The investment is too small to buy a share fraction.")

        debit(investor, cash_amount)
        credit(company, cash_amount)
        company.total_shares = company.total_shares + shares_minted

        stake = session.exec(
            select(CompanyShare)
            .where(CompanyShare.user_id == principal.user_id, CompanyShare.company_id == company_id)
            .with_for_update()
        ).first()
        if stake is None:
            stake = CompanyShare(
                user_id=principal.user_id, company_id=company_id, quantity=shares_minted
            )
        else:
            stake.quantity = stake.quantity + shares_minted

        session.add_all([investor, company, stake])
        receipt = InvestmentReceipt(
            company_id=company_id,
            company_name=company.name,
            amount=cash_amount,
            share_price=share_price,
            shares_minted=shares_minted,
            total_shares=company.total_shares,
        )

    logger.info(
        "Investment settled",
        extra={
            "user_id": principal.user_id,
            "company_id": company_id,
            "amount": str(cash_amount),
            "share_price": str(share_price),
            "shares_minted": str(shares_minted),
        },
    )
    return receipt


def company_overview(session_factory: SessionFactory, company_id: int) -> CompanyOverview:
    """Value a company at live prices without writing anything."""

    with session_factory() as session:
        company = session.get(Company, company_id)
        if company is None:
            raise NotFound("Company not found.")
        return _overview(session, company)


def list_company_overviews(session_factory: SessionFactory) -> list[CompanyOverview]:
    with session_factory() as session:
        companies = session.exec(select(Company).order_by(Company.name)).all()  # type: ignore
        return [_overview(session, company) for company in companies]


def _overview(session: Session, company: Company) -> CompanyOverview:
    assert company.id is not None
    holdings = company_holdings(session, company.id)
    prices = _prices_for(session, holdings)
    value = compute_company_value(company.cash, holdings, prices)
    valued = [
        ValuedHolding(
            ticker=h.ticker,
            name=h.name,
            quantity=h.quantity,
            avg_cost=h.avg_cost,
            price=prices.get(h.ticker, h.avg_cost),
            market_value=quantize_money(h.quantity * prices.get(h.ticker, h.avg_cost)),
        )
        for h in holdings
    ]
    return CompanyOverview(
        id=company.id,
        name=company.name,
        industry=company.industry,
        description=company.description,
        cash=company.cash,
        total_shares=company.total_shares,
        company_value=quantize_money(value),
        share_price=compute_share_price(value, company.total_shares),
        holdings=valued,
    )


def company_holdings(session: Session, company_id: int) -> list[CompanyHolding]:
    return list(
        session.exec(select(CompanyHolding).where(CompanyHolding.company_id == company_id)).all()
    )


def _prices_for(session: Session, holdings: Iterable[CompanyHolding]) -> dict[str, Decimal]:
    tickers = {h.ticker for h in holdings}
    if not tickers:
        return {}
    rows = session.exec(
        select(Asset.ticker, Asset.price).where(Asset.ticker.in_(tickers))  # type: ignore[attr-defined]
    ).all()
    return {ticker: price for ticker, price in rows}


def _check_length(label: str, value: str, bounds: tuple[int, int]) -> None:
    low, high = bounds
    if not low <= len(value) <= high:
        raise ValidationFailed(f"The {label} must be between {low} and {high} characters.")


