"""Player accounts holding virtual cash."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import ClassVar, Optional

from sqlmodel import Field, SQLModel

from ..timeutil import utcnow

STARTING_CASH = Decimal("100000.00")


class User(SQLModel, table=True):
    """A player; ``cash`` is the spendable balance in the simulation."""

    __tablename__: ClassVar[str] = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    display_name: str = Field(nullable=False, max_length=256)
    email: str = Field(nullable=False, unique=True, index=True, max_length=256)
    password_hash: str = Field(nullable=False, max_length=255)
    phone_number: Optional[str] = Field(default=None, max_length=50)
    cash: Decimal = Field(default=STARTING_CASH, max_digits=15, decimal_places=2, nullable=False)
    initial_cash: Decimal = Field(
        default=STARTING_CASH, max_digits=15, decimal_places=2, nullable=False
    )
    created_at: datetime = Field(default_factory=utcnow, nullable=False)
    # Start of the current unclaimed mining period; None until a rig is bought.
    last_mining_claim_at: Optional[datetime] = Field(default=None)
