"""Application context for dependency injection."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.engine import Engine

from .config import BaseConfig
from .infra.database import SessionFactory, bootstrap_database
from .infra.repositories import (
    SQLModelAssetRepository,
    SQLModelCompanyRepository,
    SQLModelHoldingRepository,
    SQLModelMarketRepository,
    SQLModelTransactionRepository,
)
from .services.content import ContentGenerator, build_generator
from .services.dispatch import InlineDispatcher, PostCommitDispatcher


@dataclass
class AppContext:
    """Centralized application context with services and state."""

    # Configuration
    config: BaseConfig

    # Database
    engine: Engine
    session_factory: SessionFactory

    # Repositories
    asset_repo: SQLModelAssetRepository
    holding_repo: SQLModelHoldingRepository
    transaction_repo: SQLModelTransactionRepository
    company_repo: SQLModelCompanyRepository
    market_repo: SQLModelMarketRepository

    # Collaborators
    content: ContentGenerator
    dispatcher: PostCommitDispatcher = field(default_factory=InlineDispatcher)

    def close(self) -> None:
        close = getattr(self.content, "close", None)
        if callable(close):
            close()
        self.engine.dispose()


def create_app_context(
    config: Optional[BaseConfig] = None,
    *,
    content: Optional[ContentGenerator] = None,
) -> AppContext:
    """Create and initialize the application context."""

    if config is None:
        config = BaseConfig()

    engine, session_factory = bootstrap_database(config)

    return AppContext(
        config=config,
        engine=engine,
        session_factory=session_factory,
        asset_repo=SQLModelAssetRepository(session_factory),
        holding_repo=SQLModelHoldingRepository(session_factory),
        transaction_repo=SQLModelTransactionRepository(session_factory),
        company_repo=SQLModelCompanyRepository(session_factory),
        market_repo=SQLModelMarketRepository(session_factory),
        content=content or build_generator(config),
    )
