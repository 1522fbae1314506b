"""Tradable market assets."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import ClassVar

from sqlmodel import Field, SQLModel

from ..timeutil import utcnow


class AssetType(str, Enum):
    STOCK = "Stock"
    CRYPTO = "Crypto"
    COMMODITY = "Commodity"
    FOREX = "Forex"


class Asset(SQLModel, table=True):
    """Shared market state for one ticker.

    ``market_cap`` keeps the display text (``"$3.18T"``, ``"N/A"``); the pricing
    engine parses it when a trade needs an impact estimate.
    """

    __tablename__: ClassVar[str] = "assets"

    ticker: str = Field(primary_key=True, max_length=10)
    name: str = Field(nullable=False, max_length=256)
    type: str = Field(nullable=False, max_length=50, index=True)
    description: str = Field(default="", max_length=1024)
    price: Decimal = Field(max_digits=18, decimal_places=8, nullable=False)
    market_cap: str = Field(default="N/A", max_length=32)
    price_24h_ago: Decimal = Field(max_digits=18, decimal_places=8, nullable=False)
    price_24h_at: datetime = Field(default_factory=utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=utcnow, nullable=False)
