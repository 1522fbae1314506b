"""Cached generated news items."""

from __future__ import annotations

from datetime import datetime
from typing import ClassVar, Optional

from sqlmodel import Field, SQLModel

from ..timeutil import utcnow


class AssetNews(SQLModel, table=True):
    __tablename__: ClassVar[str] = "ai_news"

    id: Optional[int] = Field(default=None, primary_key=True)
    ticker: str = Field(nullable=False, max_length=10, index=True)
    headline: str = Field(nullable=False)
    article: str = Field(nullable=False)
    sentiment: str = Field(nullable=False, max_length=10)
    impact_score: int = Field(default=0, nullable=False)
    created_at: datetime = Field(default_factory=utcnow, nullable=False, index=True)
