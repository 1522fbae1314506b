"""SQLModel implementation of the Asset repository."""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from sqlmodel import select

from ...models.asset import Asset
from ..database import SessionFactory


class SQLModelAssetRepository:
    """SQLModel-based asset repository implementation."""

    def __init__(self, session_factory: SessionFactory):
        """Initialize with a session factory."""
        self.session_factory = session_factory

    def get(self, ticker: str) -> Optional[Asset]:
        """Retrieve an asset by ticker."""
        with self.session_factory() as session:
            return session.get(Asset, ticker.upper())

    def list_all(self) -> list[Asset]:
        """List all assets ordered by ticker."""
        with self.session_factory() as session:
            statement = select(Asset).order_by(Asset.ticker)  # type: ignore
            return list(session.exec(statement).all())

    def list_by_type(self, asset_type: str) -> list[Asset]:
        with self.session_factory() as session:
            statement = (
                select(Asset).where(Asset.type == asset_type).order_by(Asset.ticker)  # type: ignore
            )
            return list(session.exec(statement).all())

    def prices(self) -> dict[str, Decimal]:
        """Return the current price of every asset keyed by ticker."""
        with self.session_factory() as session:
            rows = session.exec(select(Asset.ticker, Asset.price)).all()
            return {ticker: price for ticker, price in rows}

    def count(self) -> int:
        with self.session_factory() as session:
            return len(session.exec(select(Asset.ticker)).all())
