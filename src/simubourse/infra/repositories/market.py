"""SQLModel implementation of the prediction market repository."""

from __future__ import annotations

from typing import Optional

from sqlalchemy.orm import selectinload
from sqlmodel import select

from ...models.prediction import MarketBet, MarketStatus, PredictionMarket
from ..database import SessionFactory


class SQLModelMarketRepository:
    """Read access to prediction markets; outcomes are loaded eagerly."""

    def __init__(self, session_factory: SessionFactory):
        """Initialize with a session factory."""
        self.session_factory = session_factory

    def get_with_outcomes(self, market_id: int) -> Optional[PredictionMarket]:
        with self.session_factory() as session:
            return session.exec(
                select(PredictionMarket)
                .where(PredictionMarket.id == market_id)
                .options(selectinload(PredictionMarket.outcomes))  # type: ignore[arg-type]
            ).first()

    def list_open(self) -> list[PredictionMarket]:
        """Open markets newest first."""
        with self.session_factory() as session:
            statement = (
                select(PredictionMarket)
                .where(PredictionMarket.status == MarketStatus.OPEN.value)
                .options(selectinload(PredictionMarket.outcomes))  # type: ignore[arg-type]
                .order_by(PredictionMarket.created_at.desc(), PredictionMarket.id.desc())  # type: ignore
            )
            return list(session.exec(statement).all())

    def count_open_by_creator(self, creator_display_name: str) -> int:
        with self.session_factory() as session:
            rows = session.exec(
                select(PredictionMarket.id).where(
                    PredictionMarket.status == MarketStatus.OPEN.value,
                    PredictionMarket.creator_display_name == creator_display_name,
                )
            ).all()
            return len(rows)

    def list_bets(self, *, user_id: int) -> list[MarketBet]:
        with self.session_factory() as session:
            statement = (
                select(MarketBet)
                .where(MarketBet.user_id == user_id)
                .order_by(MarketBet.created_at.desc())  # type: ignore
            )
            return list(session.exec(statement).all())
