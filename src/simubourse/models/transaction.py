"""Append-only trade log."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import ClassVar, Optional

from sqlmodel import Field, SQLModel

from ..timeutil import utcnow


class TradeSide(str, Enum):
    BUY = "Buy"
    SELL = "Sell"


class Transaction(SQLModel, table=True):
    """A settled trade. Never updated or deleted once written.

    Rows with a ``company_id`` were executed on behalf of that company and are
    excluded from the acting user's own P&L.
    """

    __tablename__: ClassVar[str] = "transactions"

    id: Optional[int] = Field(default=None, primary_key=True)
    # Acting user; for company trades this is the CEO who placed the order.
    user_id: int = Field(foreign_key="users.id", nullable=False, index=True)
    company_id: Optional[int] = Field(default=None, foreign_key="companies.id", index=True)
    type: str = Field(nullable=False, max_length=4, description="'Buy' or 'Sell'")
    ticker: str = Field(nullable=False, max_length=10)
    name: str = Field(nullable=False, max_length=256)
    quantity: Decimal = Field(max_digits=18, decimal_places=8, nullable=False)
    price: Decimal = Field(max_digits=18, decimal_places=8, nullable=False)
    value: Decimal = Field(max_digits=18, decimal_places=2, nullable=False)
    created_at: datetime = Field(default_factory=utcnow, nullable=False, index=True)
