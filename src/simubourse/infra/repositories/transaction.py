"""SQLModel implementation of the Transaction repository."""

from __future__ import annotations

from typing import Optional

from sqlmodel import select

from ...models.transaction import Transaction
from ..database import SessionFactory


class SQLModelTransactionRepository:
    """Read access to the append-only trade log."""

    def __init__(self, session_factory: SessionFactory):
        """Initialize with a session factory."""
        self.session_factory = session_factory

    def list_all(self, *, user_id: int, limit: int = 100, offset: int = 0) -> list[Transaction]:
        """List trades newest first with pagination."""
        with self.session_factory() as session:
            statement = (
                select(Transaction)
                .where(Transaction.user_id == user_id)
                .where(Transaction.company_id.is_(None))  # type: ignore[union-attr]
                .order_by(Transaction.created_at.desc(), Transaction.id.desc())  # type: ignore
                .offset(offset)
                .limit(limit)
            )
            return list(session.exec(statement).all())

    def list_chronological(
        self, *, user_id: int, ticker: Optional[str] = None
    ) -> list[Transaction]:
        """Return personal trades oldest first, optionally for a single ticker."""
        with self.session_factory() as session:
            statement = select(Transaction).where(
                Transaction.user_id == user_id,
                Transaction.company_id.is_(None),  # type: ignore[union-attr]
            )
            if ticker is not None:
                statement = statement.where(Transaction.ticker == ticker.upper())
            statement = statement.order_by(
                Transaction.created_at, Transaction.id  # type: ignore
            )
            return list(session.exec(statement).all())

    def count(self, *, user_id: int) -> int:
        with self.session_factory() as session:
            return len(
                session.exec(
                    select(Transaction.id).where(
                        Transaction.user_id == user_id,
                        Transaction.company_id.is_(None),  # type: ignore[union-attr]
                    )
                ).all()
            )

    def list_for_company(self, company_id: int, *, limit: int = 100) -> list[Transaction]:
        """Trades executed on behalf of a company, newest first."""
        with self.session_factory() as session:
            statement = (
                select(Transaction)
                .where(Transaction.company_id == company_id)
                .order_by(Transaction.created_at.desc(), Transaction.id.desc())  # type: ignore
                .limit(limit)
            )
            return list(session.exec(statement).all())
