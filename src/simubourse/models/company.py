"""Player-created companies and their equity."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import ClassVar, Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from ..timeutil import utcnow

CEO_ROLE = "ceo"
MEMBER_ROLE = "member"


class Company(SQLModel, table=True):
    """A company funded by player investments.

    The share price is not stored: it is recomputed from ``cash`` plus the
    marked-to-market value of the company's holdings.
    """

    __tablename__: ClassVar[str] = "companies"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(nullable=False, unique=True, index=True, max_length=50)
    industry: str = Field(nullable=False, max_length=50)
    description: str = Field(nullable=False, max_length=200)
    cash: Decimal = Field(default=Decimal("0.00"), max_digits=15, decimal_places=2)
    total_shares: Decimal = Field(default=Decimal("0"), max_digits=24, decimal_places=8)
    creator_id: Optional[int] = Field(default=None, foreign_key="users.id")
    created_at: datetime = Field(default_factory=utcnow, nullable=False)


class CompanyMember(SQLModel, table=True):
    __tablename__: ClassVar[str] = "company_members"
    __table_args__ = (UniqueConstraint("company_id", "user_id", name="company_member_idx"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    company_id: int = Field(foreign_key="companies.id", nullable=False, index=True)
    user_id: int = Field(foreign_key="users.id", nullable=False, index=True)
    role: str = Field(default=MEMBER_ROLE, nullable=False, max_length=32)


class CompanyShare(SQLModel, table=True):
    """Shares of a company owned by a player (raw quantity, no cost basis)."""

    __tablename__: ClassVar[str] = "company_shares"
    __table_args__ = (UniqueConstraint("user_id", "company_id", name="user_company_idx"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", nullable=False, index=True)
    company_id: int = Field(foreign_key="companies.id", nullable=False, index=True)
    quantity: Decimal = Field(max_digits=24, decimal_places=8, nullable=False)


class CompanyHolding(SQLModel, table=True):
    """Market assets bought with a company's treasury."""

    __tablename__: ClassVar[str] = "company_holdings"
    __table_args__ = (UniqueConstraint("company_id", "ticker", name="company_ticker_idx"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    company_id: int = Field(foreign_key="companies.id", nullable=False, index=True)
    ticker: str = Field(nullable=False, max_length=10)
    name: str = Field(nullable=False, max_length=256)
    type: str = Field(nullable=False, max_length=50)
    quantity: Decimal = Field(max_digits=18, decimal_places=8, nullable=False)
    avg_cost: Decimal = Field(max_digits=18, decimal_places=8, nullable=False)
