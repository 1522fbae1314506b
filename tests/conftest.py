"""Pytest configuration and shared fixtures for SimuBourse tests.

This module provides database fixtures, test data factories, and helper utilities
for testing settlement logic, repositories, and services without touching the real
application database.
"""

from __future__ import annotations

import tempfile
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable, Sequence

import pytest
from sqlmodel import create_engine

from simubourse.infra.database import (
    create_session_factory,
    enable_sqlite_write_locks,
    init_database,
)
from simubourse.models import (
    Asset,
    AssetType,
    CEO_ROLE,
    Company,
    CompanyMember,
    MarketOutcome,
    PredictionMarket,
    User,
)
from simubourse.principal import Principal

# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture(scope="function")
def db_engine():
    """Create an isolated SQLite database file for each test.

    Yields:
        Engine: SQLModel engine connected to the test database
    """
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)

    engine = create_engine(
        f"sqlite:///{db_path}",
        echo=False,
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    enable_sqlite_write_locks(engine)
    init_database(engine)

    yield engine

    engine.dispose()
    db_path.unlink(missing_ok=True)


@pytest.fixture(scope="function")
def session_factory(db_engine):
    """Session factory committing on success and rolling back on error."""

    return create_session_factory(db_engine)


@pytest.fixture(autouse=True)
def isolated_data_dir(tmp_path, monkeypatch):
    """Keep config-created directories (logs, SQLite file) inside tmp_path."""

    monkeypatch.setenv("SIMUBOURSE_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.delenv("SIMUBOURSE_DATABASE_URL", raising=False)
    monkeypatch.delenv("SIMUBOURSE_CONTENT_URL", raising=False)
    monkeypatch.setenv("SIMUBOURSE_DEV_MODE", "true")
    return tmp_path / "data"


# =============================================================================
# Test Data Factories
# =============================================================================


@pytest.fixture
def user_factory(session_factory):
    """Factory for creating players.

    Returns:
        Callable: Function that creates and persists User instances
    """
    counter = {"n": 0}

    def _create_user(
        display_name: str | None = None,
        cash: Decimal | str = "100000.00",
        email: str | None = None,
    ) -> User:
        counter["n"] += 1
        n = counter["n"]
        user = User(
            display_name=display_name or f"Player {n}",
            email=email or f"player{n}@example.com",
            password_hash="dummy-hash",
            cash=Decimal(cash),
            initial_cash=Decimal(cash),
        )
        with session_factory() as session:
            session.add(user)
        return user

    return _create_user


@pytest.fixture
def principal_of() -> Callable[[User], Principal]:
    def _principal(user: User) -> Principal:
        assert user.id is not None
        return Principal(user_id=user.id, display_name=user.display_name)

    return _principal


@pytest.fixture
def asset_factory(session_factory):
    """Factory for creating tradable assets.

    A market cap of ``"N/A"`` exempts the asset from trade impact.
    """

    def _create_asset(
        ticker: str = "TEST",
        price: Decimal | str = "200",
        market_cap: str = "1000000",
        asset_type: AssetType = AssetType.STOCK,
        name: str | None = None,
    ) -> Asset:
        asset = Asset(
            ticker=ticker,
            name=name or f"{ticker} Corp.",
            type=asset_type.value,
            price=Decimal(price),
            market_cap=market_cap,
            price_24h_ago=Decimal(price),
        )
        with session_factory() as session:
            session.add(asset)
        return asset

    return _create_asset


@pytest.fixture
def company_factory(session_factory):
    """Factory for companies with a CEO member."""

    counter = {"n": 0}

    def _create_company(
        ceo: User,
        name: str | None = None,
        cash: Decimal | str = "0.00",
        total_shares: Decimal | str = "0",
    ) -> Company:
        counter["n"] += 1
        company = Company(
            name=name or f"Company {counter['n']}",
            industry="Testing",
            description="A company created by the test-suite.",
            cash=Decimal(cash),
            total_shares=Decimal(total_shares),
            creator_id=ceo.id,
        )
        with session_factory() as session:
            session.add(company)
            session.flush()
            assert company.id is not None and ceo.id is not None
            session.add(CompanyMember(company_id=company.id, user_id=ceo.id, role=CEO_ROLE))
        return company

    return _create_company


@pytest.fixture
def market_factory(session_factory):
    """Factory for prediction markets with explicit outcome pools."""

    def _create_market(
        pools: Sequence[Decimal | str] = ("0.00", "0.00"),
        title: str = "Will the test-suite pass today?",
        status: str = "open",
        closing_at: datetime | None = None,
    ) -> tuple[PredictionMarket, list[MarketOutcome]]:
        amounts = [Decimal(p) for p in pools]
        market = PredictionMarket(
            title=title,
            category="Testing",
            status=status,
            total_pool=sum(amounts, Decimal("0.00")),
            closing_at=closing_at or datetime.now(timezone.utc) + timedelta(days=7),
            creator_display_name="Tester",
        )
        with session_factory() as session:
            session.add(market)
            session.flush()
            assert market.id is not None
            outcomes = [
                MarketOutcome(market_id=market.id, name=f"Outcome {i}", pool=amount)
                for i, amount in enumerate(amounts)
            ]
            session.add_all(outcomes)
        return market, outcomes

    return _create_market


# =============================================================================
# Helpers
# =============================================================================


class RecordingDispatcher:
    """Post-commit dispatcher that holds jobs until ``run_all`` is called."""

    def __init__(self) -> None:
        self.jobs: list[tuple[str, Callable[..., Any], tuple[Any, ...]]] = []

    def submit(self, func: Callable[..., Any], *args: Any, name: str) -> None:
        self.jobs.append((name, func, args))

    def run_all(self) -> list[Any]:
        results = [func(*args) for _, func, args in self.jobs]
        self.jobs.clear()
        return results


@pytest.fixture
def recording_dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


def assert_decimal_equal(actual: Decimal, expected: Decimal | str, places: int = 8) -> None:
    """Compare decimals to a number of places."""

    tolerance = Decimal(1).scaleb(-places)
    assert abs(Decimal(actual) - Decimal(expected)) <= tolerance, f"{actual} != {expected}"


def run_concurrently(*calls: Callable[[], Any]) -> list[Any]:
    """Run each call on its own thread, released together, and return results in order.

    Exceptions raised by a call are returned in its slot instead of results.
    """

    barrier = threading.Barrier(len(calls))

    def _run(call: Callable[[], Any]) -> Any:
        barrier.wait()
        try:
            return call()
        except Exception as exc:
            return exc

    with ThreadPoolExecutor(max_workers=len(calls)) as pool:
        futures = [pool.submit(_run, call) for call in calls]
        return [future.result() for future in futures]
