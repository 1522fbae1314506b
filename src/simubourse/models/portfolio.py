"""Portfolio positions held by players."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import ClassVar, Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from ..timeutil import utcnow


class Holding(SQLModel, table=True):
    """A player's position in one asset.

    Rows exist only while ``quantity`` is above the liquidation epsilon; a
    fully sold position is deleted rather than kept at zero.
    """

    __tablename__: ClassVar[str] = "holdings"
    __table_args__ = (UniqueConstraint("user_id", "ticker", name="user_ticker_idx"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", nullable=False, index=True)
    ticker: str = Field(nullable=False, max_length=10)
    name: str = Field(nullable=False, max_length=256)
    type: str = Field(nullable=False, max_length=50)
    quantity: Decimal = Field(max_digits=18, decimal_places=8, nullable=False)
    avg_cost: Decimal = Field(max_digits=18, decimal_places=8, nullable=False)
    updated_at: datetime = Field(default_factory=utcnow, nullable=False)
