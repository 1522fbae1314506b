"""SQLModel implementation of the Holding repository."""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from sqlmodel import select

from ...models.portfolio import Holding
from ..database import SessionFactory


class SQLModelHoldingRepository:
    """Read access to player holdings.

    Writes go through the trading service so that cash, position and trade log
    change in one transaction.
    """

    def __init__(self, session_factory: SessionFactory):
        """Initialize with a session factory."""
        self.session_factory = session_factory

    def get_by_ticker(self, ticker: str, *, user_id: int) -> Optional[Holding]:
        """Retrieve a holding by ticker."""
        with self.session_factory() as session:
            return session.exec(
                select(Holding).where(Holding.user_id == user_id, Holding.ticker == ticker.upper())
            ).first()

    def list_all(self, *, user_id: int) -> list[Holding]:
        """List all holdings of a user."""
        with self.session_factory() as session:
            statement = (
                select(Holding)
                .where(Holding.user_id == user_id)
                .order_by(Holding.ticker)  # type: ignore
            )
            return list(session.exec(statement).all())

    def get_total_cost_basis(self, *, user_id: int) -> Decimal:
        """Calculate total cost basis across holdings."""
        holdings = self.list_all(user_id=user_id)
        return sum((h.quantity * h.avg_cost for h in holdings), Decimal("0"))
