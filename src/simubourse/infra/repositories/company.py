"""SQLModel implementation of the Company repository."""

from __future__ import annotations

from typing import Optional

from sqlmodel import select

from ...models.company import Company, CompanyHolding, CompanyMember, CompanyShare
from ..database import SessionFactory


class SQLModelCompanyRepository:
    """Read access to companies, their members, treasuries and shareholders."""

    def __init__(self, session_factory: SessionFactory):
        """Initialize with a session factory."""
        self.session_factory = session_factory

    def get_by_id(self, company_id: int) -> Optional[Company]:
        with self.session_factory() as session:
            return session.get(Company, company_id)

    def get_by_name(self, name: str) -> Optional[Company]:
        with self.session_factory() as session:
            return session.exec(select(Company).where(Company.name == name)).first()

    def list_all(self) -> list[Company]:
        with self.session_factory() as session:
            statement = select(Company).order_by(Company.name)  # type: ignore
            return list(session.exec(statement).all())

    def list_holdings(self, company_id: int) -> list[CompanyHolding]:
        with self.session_factory() as session:
            statement = (
                select(CompanyHolding)
                .where(CompanyHolding.company_id == company_id)
                .order_by(CompanyHolding.ticker)  # type: ignore
            )
            return list(session.exec(statement).all())

    def get_member_role(self, company_id: int, user_id: int) -> Optional[str]:
        with self.session_factory() as session:
            member = session.exec(
                select(CompanyMember).where(
                    CompanyMember.company_id == company_id, CompanyMember.user_id == user_id
                )
            ).first()
            return member.role if member else None

    def get_share(self, *, user_id: int, company_id: int) -> Optional[CompanyShare]:
        with self.session_factory() as session:
            return session.exec(
                select(CompanyShare).where(
                    CompanyShare.user_id == user_id, CompanyShare.company_id == company_id
                )
            ).first()

    def list_shares(self, *, user_id: int) -> list[CompanyShare]:
        """List every company stake a user owns."""
        with self.session_factory() as session:
            return list(
                session.exec(select(CompanyShare).where(CompanyShare.user_id == user_id)).all()
            )
