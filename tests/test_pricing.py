"""Tests for market impact pricing and the market tick."""

from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import event

from simubourse.models import Asset, AssetNews, AssetType
from simubourse.services.pricing import (
    MIN_PRICE,
    apply_trade_impact,
    cached_sentiments,
    change_24h,
    compute_impacted_price,
    parse_market_cap,
    tick_market,
)
from tests.conftest import assert_decimal_equal


@pytest.mark.parametrize(
    "text, expected",
    [
        ("$3.18T", Decimal("3180000000000")),
        ("$414.5B", Decimal("414500000000")),
        ("$25M", Decimal("25000000")),
        ("1,000,000", Decimal("1000000")),
        ("N/A", Decimal("0")),
        ("", Decimal("0")),
        (None, Decimal("0")),
    ],
)
def test_parse_market_cap(text, expected):
    assert parse_market_cap(text) == expected


def test_buy_pushes_price_up_proportionally():
    new_price = compute_impacted_price(Decimal("200"), Decimal("1000000"), Decimal("2000"))

    assert new_price == Decimal("200.02")


def test_sell_pushes_price_down():
    new_price = compute_impacted_price(Decimal("200"), Decimal("1000000"), Decimal("-2000"))

    assert new_price == Decimal("199.98")


def test_price_never_drops_below_floor():
    new_price = compute_impacted_price(Decimal("1"), Decimal("1000"), Decimal("-1000000"))

    assert new_price == MIN_PRICE


def test_zero_market_cap_means_no_impact():
    assert compute_impacted_price(Decimal("1.07"), Decimal("0"), Decimal("5000")) == Decimal("1.07")


def test_apply_trade_impact_updates_stored_price(session_factory, asset_factory):
    asset_factory("ACME", price="200", market_cap="1000000")

    new_price = apply_trade_impact(session_factory, "ACME", Decimal("2000"))

    assert new_price == Decimal("200.02")
    with session_factory() as session:
        assert session.get(Asset, "ACME").price == Decimal("200.02")


def test_impacts_compound_on_current_price(session_factory, asset_factory):
    asset_factory("ACME", price="200", market_cap="1000000")

    apply_trade_impact(session_factory, "ACME", Decimal("2000"))
    second = apply_trade_impact(session_factory, "ACME", Decimal("2000"))

    assert_decimal_equal(second, Decimal("200.02") * Decimal("1.0001"))


def test_forex_without_market_cap_is_immune(session_factory, asset_factory):
    asset_factory("EURUSD", price="1.0712", market_cap="N/A", asset_type=AssetType.FOREX)

    assert apply_trade_impact(session_factory, "EURUSD", Decimal("1000000")) is None
    with session_factory() as session:
        assert session.get(Asset, "EURUSD").price == Decimal("1.0712")


def test_impact_on_unknown_asset_is_skipped(session_factory):
    assert apply_trade_impact(session_factory, "NOPE", Decimal("10")) is None


def test_change_24h_formatting():
    assert change_24h(Decimal("101"), Decimal("100")) == "+1.00%"
    assert change_24h(Decimal("97.5"), Decimal("100")) == "-2.50%"
    assert change_24h(Decimal("5"), Decimal("0")) == "+0.00%"


def test_tick_moves_prices_within_volatility_band(session_factory, asset_factory):
    asset_factory("ACME", price="100")
    asset_factory("BOLT", price="50")

    prices = tick_market(session_factory, sentiments={}, rng=random.Random(7))

    assert set(prices) == {"ACME", "BOLT"}
    assert abs(prices["ACME"] - Decimal("100")) <= Decimal("0.25")
    assert abs(prices["BOLT"] - Decimal("50")) <= Decimal("0.125")


def test_tick_applies_sentiment_drift(session_factory, asset_factory):
    asset_factory("UP", price="100")
    asset_factory("DOWN", price="100")

    class NoNoise(random.Random):
        def uniform(self, a, b):
            return 0.0

    prices = tick_market(
        session_factory, sentiments={"UP": "positive", "DOWN": "negative"}, rng=NoNoise()
    )

    assert prices["UP"] == Decimal("100.2")
    assert prices["DOWN"] == Decimal("99.8")


def test_tick_rolls_24h_reference_after_a_day(session_factory, asset_factory):
    asset_factory("ACME", price="100")
    later = datetime.now(timezone.utc) + timedelta(hours=25)

    prices = tick_market(session_factory, sentiments={}, rng=random.Random(1), now=later)

    with session_factory() as session:
        asset = session.get(Asset, "ACME")
        assert asset.price_24h_ago == prices["ACME"]


def test_cached_sentiments_use_latest_recent_item(session_factory):
    now = datetime.now(timezone.utc)
    with session_factory() as session:
        session.add_all(
            [
                AssetNews(ticker="ACME", headline="h", article="a", sentiment="negative",
                          created_at=now - timedelta(hours=2)),
                AssetNews(ticker="ACME", headline="h", article="a", sentiment="positive",
                          created_at=now - timedelta(hours=1)),
                AssetNews(ticker="OLD", headline="h", article="a", sentiment="positive",
                          created_at=now - timedelta(days=2)),
            ]
        )

    assert cached_sentiments(session_factory, now=now) == {"ACME": "positive"}


def test_cached_sentiments_only_load_recent_rows(db_engine, session_factory):
    now = datetime.now(timezone.utc)
    with session_factory() as session:
        session.add_all(
            [
                AssetNews(ticker="OLD", headline="h", article="a", sentiment="negative",
                          created_at=now - timedelta(days=3 + i))
                for i in range(50)
            ]
            + [
                AssetNews(ticker="NEW", headline="h", article="a", sentiment="positive",
                          created_at=now - timedelta(minutes=5)),
            ]
        )
    loaded = []

    @event.listens_for(db_engine, "after_cursor_execute")
    def _capture(conn, cursor, statement, parameters, context, executemany):
        if "FROM ai_news" in statement:
            loaded.append(statement)

    paris = timezone(timedelta(hours=2))
    sentiments = cached_sentiments(session_factory, now=now.astimezone(paris))

    assert sentiments == {"NEW": "positive"}
    (query,) = loaded
    assert "ai_news.created_at >=" in query
