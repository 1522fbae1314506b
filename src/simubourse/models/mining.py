"""Mining rigs owned by players."""

from __future__ import annotations

from datetime import datetime
from typing import ClassVar, Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from ..timeutil import utcnow


class UserMiningRig(SQLModel, table=True):
    __tablename__: ClassVar[str] = "user_mining_rigs"
    __table_args__ = (UniqueConstraint("user_id", "rig_id", name="user_rig_idx"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", nullable=False, index=True)
    rig_id: str = Field(nullable=False, max_length=50)
    quantity: int = Field(default=1, nullable=False)
    created_at: datetime = Field(default_factory=utcnow, nullable=False)
