"""Trade settlement for players and companies.

A trade is one transaction: load the account and position under a write
lock, validate, move the cash, update the position, append the trade record
and commit. The market impact of the trade is applied afterwards by the
dispatcher, so a pricing failure can never undo a settled trade.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Union

from sqlmodel import Session, select

from ..errors import InvalidAmount, NoSuchHolding, NotFound, Unauthorized
from ..infra.database import SessionFactory
from ..logging_config import get_logger
from ..models.asset import Asset
from ..models.company import CEO_ROLE, Company, CompanyHolding, CompanyMember
from ..models.portfolio import Holding
from ..models.transaction import TradeSide, Transaction
from ..models.user import User
from ..principal import Principal
from ..timeutil import utcnow
from .cost_basis import Position, apply_acquisition, apply_disposal, quantize_units
from .dispatch import InlineDispatcher, PostCommitDispatcher
from .ledger import (
    Number,
    credit,
    debit,
    load_company_for_update,
    load_user_for_update,
    quantize_money,
    to_decimal,
)
from .pricing import apply_trade_impact

logger = get_logger(__name__)

PositionRow = Union[Holding, CompanyHolding]


@dataclass(frozen=True)
class TradeReceipt:
    """What a settled trade did, for confirmation messages."""

    ticker: str
    name: str
    side: TradeSide
    quantity: Decimal
    price: Decimal
    value: Decimal
    cash_after: Decimal
    company_id: Optional[int] = None


def buy_asset(
    session_factory: SessionFactory,
    principal: Principal,
    ticker: str,
    quantity: Number,
    *,
    dispatcher: Optional[PostCommitDispatcher] = None,
) -> TradeReceipt:
    """Buy ``quantity`` units of ``ticker`` for the acting player."""

    return _settle(session_factory, principal, ticker, quantity, TradeSide.BUY, None, dispatcher)


def sell_asset(
    session_factory: SessionFactory,
    principal: Principal,
    ticker: str,
    quantity: Number,
    *,
    dispatcher: Optional[PostCommitDispatcher] = None,
) -> TradeReceipt:
    """Sell ``quantity`` units of ``ticker`` from the acting player's holding."""

    return _settle(session_factory, principal, ticker, quantity, TradeSide.SELL, None, dispatcher)


def company_buy_asset(
    session_factory: SessionFactory,
    principal: Principal,
    company_id: int,
    ticker: str,
    quantity: Number,
    *,
    dispatcher: Optional[PostCommitDispatcher] = None,
) -> TradeReceipt:
    """Buy an asset with a company's treasury. Only the CEO may trade."""

    return _settle(
        session_factory, principal, ticker, quantity, TradeSide.BUY, company_id, dispatcher
    )


def company_sell_asset(
    session_factory: SessionFactory,
    principal: Principal,
    company_id: int,
    ticker: str,
    quantity: Number,
    *,
    dispatcher: Optional[PostCommitDispatcher] = None,
) -> TradeReceipt:
    """Sell an asset out of a company's holdings. Only the CEO may trade."""

    return _settle(
        session_factory, principal, ticker, quantity, TradeSide.SELL, company_id, dispatcher
    )


def _settle(
    session_factory: SessionFactory,
    principal: Principal,
    ticker: str,
    quantity: Number,
    side: TradeSide,
    company_id: Optional[int],
    dispatcher: Optional[PostCommitDispatcher],
) -> TradeReceipt:
    qty = _validate_quantity(quantity)
    ticker = ticker.strip().upper()

    with session_factory() as session:
        account: Union[User, Company]
        if company_id is None:
            account = load_user_for_update(session, principal.user_id)
        else:
            account = load_company_for_update(session, company_id)
            require_ceo(session, company_id, principal.user_id)

        asset = session.get(Asset, ticker)
        if asset is None:
            raise NotFound(f"Unknown asset {ticker}.")
        price = asset.price
        value = quantize_money(qty * price)
        if side is TradeSide.BUY and value <= 0:
            raise InvalidAmount("The trade is too small to settle.")

        row = _load_position(session, account, ticker)
        if side is TradeSide.BUY:
            debit(account, value)
            position = apply_acquisition(_position_of(row), qty, price)
            if row is None:
                row = _new_position(account, asset)
            row.quantity = position.quantity
            row.avg_cost = position.avg_cost
            if isinstance(row, Holding):
                row.updated_at = utcnow()
            session.add(row)
        else:
            if row is None:
                raise NoSuchHolding(f"You do not hold any {ticker}.")
            remaining = apply_disposal(_position_of(row), qty)
            if remaining is not None and value <= 0:
                # Dust worth less than a cent can only leave as a full liquidation.
                raise InvalidAmount("The trade is too small to settle.")
            credit(account, value)
            if remaining is None:
                session.delete(row)
            else:
                row.quantity = remaining.quantity
                if isinstance(row, Holding):
                    row.updated_at = utcnow()
                session.add(row)

        session.add(account)
        session.add(
            Transaction(
                user_id=principal.user_id,
                company_id=company_id,
                type=side.value,
                ticker=asset.ticker,
                name=asset.name,
                quantity=qty,
                price=price,
                value=value,
            )
        )
        receipt = TradeReceipt(
            ticker=asset.ticker,
            name=asset.name,
            side=side,
            quantity=qty,
            price=price,
            value=value,
            cash_after=account.cash,
            company_id=company_id,
        )

    logger.info(
        "Trade settled",
        extra={
            "user_id": principal.user_id,
            "company_id": company_id,
            "side": side.value,
            "ticker": receipt.ticker,
            "quantity": str(qty),
            "price": str(price),
            "value": str(value),
        },
    )

    if value > 0:
        signed_value = value if side is TradeSide.BUY else -value
        (dispatcher or InlineDispatcher()).submit(
            apply_trade_impact,
            session_factory,
            receipt.ticker,
            signed_value,
            name=f"price-impact:{receipt.ticker}",
        )
    return receipt


def require_ceo(session: Session, company_id: int, user_id: int) -> None:
    """Raise ``Unauthorized`` unless ``user_id`` is the company's CEO."""

    member = session.exec(
        select(CompanyMember).where(
            CompanyMember.company_id == company_id, CompanyMember.user_id == user_id
        )
    ).first()
    if member is None or member.role != CEO_ROLE:
        raise Unauthorized("Only the company's CEO can trade on its behalf.")


def _validate_quantity(quantity: Number) -> Decimal:
    qty = quantize_units(to_decimal(quantity))
    if qty <= 0:
        raise InvalidAmount("The quantity must be positive.")
    return qty


def _load_position(
    session: Session, account: Union[User, Company], ticker: str
) -> Optional[PositionRow]:
    if isinstance(account, User):
        return session.exec(
            select(Holding)
            .where(Holding.user_id == account.id, Holding.ticker == ticker)
            .with_for_update()
        ).first()
    return session.exec(
        select(CompanyHolding)
        .where(CompanyHolding.company_id == account.id, CompanyHolding.ticker == ticker)
        .with_for_update()
    ).first()


def _new_position(account: Union[User, Company], asset: Asset) -> PositionRow:
    fields = dict(
        ticker=asset.ticker,
        name=asset.name,
        type=asset.type,
        quantity=Decimal("0"),
        avg_cost=Decimal("0"),
    )
    if isinstance(account, User):
        assert account.id is not None
        return Holding(user_id=account.id, **fields)
    assert account.id is not None
    return CompanyHolding(company_id=account.id, **fields)


def _position_of(row: Optional[PositionRow]) -> Optional[Position]:
    if row is None:
        return None
    return Position(quantity=row.quantity, avg_cost=row.avg_cost)
