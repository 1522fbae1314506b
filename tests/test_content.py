"""Tests for the generated content capability and its fallbacks."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone

import httpx
import pytest
from sqlmodel import select

from simubourse.config import TestConfig
from simubourse.models import AssetNews
from simubourse.services.content import (
    FALLBACK_NEWS,
    RISK_BANDS,
    ContentUnavailable,
    HttpContentGenerator,
    InvestmentAdvice,
    NewsItem,
    Recommendation,
    StaticContentGenerator,
    build_generator,
    get_or_generate_asset_news,
    reset_news,
)


def _generator(handler) -> HttpContentGenerator:
    client = httpx.Client(transport=httpx.MockTransport(handler), base_url="http://content.test")
    return HttpContentGenerator("http://content.test", client=client)


def test_http_generator_parses_asset_news():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json=[
                {
                    "headline": "Acme beats estimates",
                    "article": "Quarterly revenue grew 20%.",
                    "sentiment": "positive",
                    "impactScore": 6,
                }
            ],
        )

    items = _generator(handler).asset_news("ACME", "Acme Corp.")

    assert seen == {"path": "/asset-news", "body": {"ticker": "ACME", "name": "Acme Corp."}}
    assert items == [
        NewsItem(
            headline="Acme beats estimates",
            article="Quarterly revenue grew 20%.",
            sentiment="positive",
            impact_score=6,
        )
    ]


def test_http_generator_parses_market_proposal():
    def handler(request: httpx.Request) -> httpx.Response:
        assert json.loads(request.content) == {"theme": "crypto"}
        return httpx.Response(
            200, json={"title": "Will ETH flip BTC?", "category": "Crypto", "outcomes": ["Yes", "No"]}
        )

    proposal = _generator(handler).prediction_market("crypto")

    assert proposal.outcomes == ["Yes", "No"]


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, json={"error": "boom"}),
        httpx.Response(200, content=b"not json"),
        httpx.Response(200, json=[{"headline": "x", "article": "y", "impactScore": 42}]),
        httpx.Response(200, json=[{"headline": "x", "article": "y", "sentiment": "ecstatic"}]),
        httpx.Response(200, json="just a string"),
    ],
)
def test_http_generator_rejects_bad_news(response):
    with pytest.raises(ContentUnavailable):
        _generator(lambda request: response).asset_news("ACME", "Acme")


def test_http_generator_rejects_bad_market_proposal():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"title": "Q?", "category": "C", "outcomes": ["Only one"]})

    with pytest.raises(ContentUnavailable):
        _generator(handler).prediction_market("tech")


def test_http_generator_wraps_transport_errors():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    with pytest.raises(ContentUnavailable):
        _generator(handler).prediction_market("tech")


def test_build_generator_defaults_to_static():
    assert isinstance(build_generator(TestConfig()), StaticContentGenerator)


def test_build_generator_uses_http_when_configured():
    config = TestConfig()
    config.CONTENT_URL = "http://content.test"

    generator = build_generator(config)

    assert isinstance(generator, HttpContentGenerator)
    generator.close()


def test_news_is_generated_then_served_from_cache(session_factory):
    generator = StaticContentGenerator()

    items, source = get_or_generate_asset_news(session_factory, generator, "ACME", "Acme Corp.")
    assert source == "generated"
    assert len(items) == 1

    cached, source = get_or_generate_asset_news(session_factory, generator, "ACME", "Acme Corp.")
    assert source == "cache"
    assert cached[0].headline == items[0].headline


def test_stale_news_is_regenerated(session_factory):
    old = datetime.now(timezone.utc) - timedelta(days=2)
    with session_factory() as session:
        session.add(
            AssetNews(ticker="ACME", headline="Old", article="Old news", sentiment="neutral",
                      created_at=old)
        )

    items, source = get_or_generate_asset_news(
        session_factory, StaticContentGenerator(), "ACME", "Acme Corp."
    )

    assert source == "generated"
    assert items[0].headline != "Old"


def test_cache_returns_at_most_three_items(session_factory):
    now = datetime.now(timezone.utc)
    with session_factory() as session:
        session.add_all(
            AssetNews(ticker="ACME", headline=f"News {i}", article="a", sentiment="neutral",
                      created_at=now - timedelta(minutes=i))
            for i in range(5)
        )

    items, source = get_or_generate_asset_news(
        session_factory, StaticContentGenerator(), "ACME", "Acme Corp.", now=now
    )

    assert source == "cache"
    assert [item.headline for item in items] == ["News 0", "News 1", "News 2"]


def test_generator_failure_falls_back(session_factory):
    class Broken(StaticContentGenerator):
        def asset_news(self, ticker, name):
            raise ContentUnavailable("down")

    items, source = get_or_generate_asset_news(session_factory, Broken(), "ACME", "Acme Corp.")

    assert (items, source) == ([FALLBACK_NEWS], "fallback")
    assert FALLBACK_NEWS.sentiment == "neutral"
    with session_factory() as session:
        assert session.exec(select(AssetNews)).all() == []


def test_reset_news_clears_cache(session_factory):
    get_or_generate_asset_news(session_factory, StaticContentGenerator(), "ACME", "Acme Corp.")

    assert reset_news(session_factory) == 1
    with session_factory() as session:
        assert session.exec(select(AssetNews)).all() == []


ARTICLE = (
    "Chipmakers rallied after a large cloud provider doubled its spending plans "
    "for data centres over the next two years."
)


def test_http_generator_parses_investment_advice():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "recommendations": [
                    {"ticker": "NVDA", "reason": "Direct beneficiary of the spending.", "riskScore": 6}
                ],
                "summary": "Positive for chip designers.",
            },
        )

    advice = _generator(handler).recommend_investments(ARTICLE, "100% cash", "medium")

    assert seen == {
        "path": "/recommend-investments",
        "body": {"newsArticle": ARTICLE, "portfolio": "100% cash", "riskPreferences": "medium"},
    }
    assert advice == InvestmentAdvice(
        recommendations=[
            Recommendation(ticker="NVDA", reason="Direct beneficiary of the spending.", risk_score=6)
        ],
        summary="Positive for chip designers.",
    )


@pytest.mark.parametrize(
    "payload",
    [
        {"recommendations": [], "summary": ""},
        {"recommendations": [{"ticker": "NVDA", "reason": "r", "riskScore": 11}], "summary": "s"},
        ["not", "an", "object"],
    ],
)
def test_http_generator_rejects_bad_advice(payload):
    with pytest.raises(ContentUnavailable):
        _generator(lambda request: httpx.Response(200, json=payload)).recommend_investments(
            ARTICLE, "100% cash", "low"
        )


@pytest.mark.parametrize("preference", ["low", "medium", "high"])
def test_static_advice_stays_inside_the_risk_band(preference):
    low, high = RISK_BANDS[preference]

    advice = StaticContentGenerator().recommend_investments(ARTICLE, "100% cash", preference)

    assert len(advice.recommendations) == 3
    assert all(low <= rec.risk_score <= high for rec in advice.recommendations)


def test_static_advice_prefers_assets_not_held():
    advice = StaticContentGenerator().recommend_investments(ARTICLE, "60% AAPL, 40% cash", "medium")

    assert [rec.ticker for rec in advice.recommendations] == ["AMZN", "NVDA", "AAPL"]
