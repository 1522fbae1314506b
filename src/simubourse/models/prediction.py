"""Pari-mutuel prediction markets."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import ClassVar, Optional

from sqlalchemy.orm import relationship
from sqlmodel import Field, Relationship, SQLModel

from ..timeutil import utcnow


class MarketStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"
    RESOLVED = "resolved"


class PredictionMarket(SQLModel, table=True):
    """A question with mutually exclusive outcomes.

    ``total_pool`` is denormalized: it always equals the sum of the outcome
    pools and is only ever changed in the same transaction as one of them.
    """

    __tablename__: ClassVar[str] = "prediction_markets"

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str = Field(nullable=False, max_length=256)
    category: str = Field(nullable=False, max_length=256)
    status: str = Field(default=MarketStatus.OPEN.value, nullable=False, max_length=10, index=True)
    total_pool: Decimal = Field(default=Decimal("0.00"), max_digits=15, decimal_places=2)
    closing_at: datetime = Field(nullable=False)
    creator_id: Optional[int] = Field(default=None, foreign_key="users.id")
    creator_display_name: str = Field(nullable=False, max_length=256, index=True)
    created_at: datetime = Field(default_factory=utcnow, nullable=False)

    outcomes: list["MarketOutcome"] = Relationship(
        sa_relationship=relationship(
            "MarketOutcome", back_populates="market", order_by="MarketOutcome.id"
        ),
    )


class MarketOutcome(SQLModel, table=True):
    __tablename__: ClassVar[str] = "market_outcomes"

    id: Optional[int] = Field(default=None, primary_key=True)
    market_id: int = Field(foreign_key="prediction_markets.id", nullable=False, index=True)
    name: str = Field(nullable=False, max_length=256)
    pool: Decimal = Field(default=Decimal("0.00"), max_digits=15, decimal_places=2)

    market: Optional[PredictionMarket] = Relationship(
        sa_relationship=relationship("PredictionMarket", back_populates="outcomes"),
    )


class MarketBet(SQLModel, table=True):
    """A wager on one outcome. Append-only."""

    __tablename__: ClassVar[str] = "market_bets"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", nullable=False, index=True)
    outcome_id: int = Field(foreign_key="market_outcomes.id", nullable=False, index=True)
    amount: Decimal = Field(max_digits=15, decimal_places=2, nullable=False)
    created_at: datetime = Field(default_factory=utcnow, nullable=False)
