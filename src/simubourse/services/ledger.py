"""Cash ledger primitives for user and company accounts.

These helpers mutate ORM rows already loaded in the caller's session; they
never open or commit a transaction themselves.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Protocol, Union

from sqlmodel import Session, select

from ..errors import InsufficientFunds, InvalidAmount, NotFound
from ..models.company import Company
from ..models.user import User

CENT = Decimal("0.01")

Number = Union[Decimal, int, float, str]


class CashAccount(Protocol):
    """Anything with a mutable ``cash`` balance (users and companies)."""

    cash: Decimal


def to_decimal(value: Number) -> Decimal:
    """Convert user input to Decimal without binary float artefacts."""

    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    try:
        return Decimal(str(value).strip())
    except ArithmeticError as exc:
        raise InvalidAmount(f"Not a number: {value!r}") from exc


def quantize_money(value: Number) -> Decimal:
    """Round to whole cents, half up."""

    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def debit(account: CashAccount, amount: Decimal) -> Decimal:
    """Remove ``amount`` from the account's cash and return the new balance."""

    if amount < 0:
        raise InvalidAmount()
    balance = to_decimal(account.cash)
    if balance < amount:
        raise InsufficientFunds(
            f"Insufficient funds: {quantize_money(amount)} required, "
            f"{quantize_money(balance)} available."
        )
    account.cash = quantize_money(balance - amount)
    return account.cash


def credit(account: CashAccount, amount: Decimal) -> Decimal:
    """Add ``amount`` to the account's cash and return the new balance."""

    if amount < 0:
        raise InvalidAmount()
    account.cash = quantize_money(to_decimal(account.cash) + amount)
    return account.cash


def load_user_for_update(session: Session, user_id: int) -> User:
    """Fetch a user row with a write lock for the rest of the transaction."""

    user = session.exec(select(User).where(User.id == user_id).with_for_update()).first()
    if user is None:
        raise NotFound("User not found.")
    return user


def load_company_for_update(session: Session, company_id: int) -> Company:
    company = session.exec(
        select(Company).where(Company.id == company_id).with_for_update()
    ).first()
    if company is None:
        raise NotFound("Company not found.")
    return company
