"""Generated flavour content: asset news and prediction-market proposals.

Generation is cosmetic. Callers get a static fallback whenever the remote
service is missing, slow or returns something that does not validate, so a
content failure never reaches pricing or settlement.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Literal, Optional, Protocol

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from sqlalchemy import delete
from sqlmodel import select

from ..config import BaseConfig
from ..infra.database import SessionFactory
from ..logging_config import get_logger
from ..models.news import AssetNews
from ..timeutil import ensure_utc, utcnow

logger = get_logger(__name__)

NEWS_CACHE_WINDOW = timedelta(hours=24)
NEWS_CACHE_LIMIT = 3

Sentiment = Literal["positive", "negative", "neutral"]


class NewsItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    headline: str = Field(min_length=1)
    article: str = Field(min_length=1)
    sentiment: Sentiment = "neutral"
    impact_score: int = Field(default=0, ge=-10, le=10, alias="impactScore")


class MarketProposal(BaseModel):
    title: str = Field(min_length=1)
    category: str = Field(min_length=1)
    outcomes: list[str] = Field(min_length=2, max_length=4)


RiskPreference = Literal["low", "medium", "high"]

# Risk scores a recommendation may carry for each preference.
RISK_BANDS: dict[str, tuple[int, int]] = {"low": (1, 3), "medium": (4, 7), "high": (8, 10)}


class Recommendation(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    ticker: str = Field(min_length=1)
    reason: str = Field(min_length=1)
    risk_score: int = Field(ge=1, le=10, alias="riskScore")


class InvestmentAdvice(BaseModel):
    model_config = ConfigDict(frozen=True)

    recommendations: list[Recommendation] = Field(default_factory=list)
    summary: str = Field(min_length=1)


FALLBACK_NEWS = NewsItem(
    headline="News unavailable",
    article="The latest news for this asset could not be loaded or generated.",
    sentiment="neutral",
    impact_score=0,
)

FALLBACK_ADVICE = InvestmentAdvice(
    recommendations=[],
    summary="Recommendations are unavailable right now. Please try again later.",
)


class ContentUnavailable(RuntimeError):
    """The content service could not produce a valid answer."""


class ContentGenerator(Protocol):
    def asset_news(self, ticker: str, name: str) -> list[NewsItem]:
        ...  # pragma: no cover - interface

    def prediction_market(self, theme: str) -> MarketProposal:
        ...  # pragma: no cover - interface

    def recommend_investments(
        self, news_article: str, portfolio: str, risk_preference: str
    ) -> InvestmentAdvice:
        ...  # pragma: no cover - interface


class HttpContentGenerator:
    """Client for a JSON content service.

    ``POST {base_url}/asset-news`` with ``{"ticker", "name"}`` answers a list of
    news items; ``POST {base_url}/prediction-market`` with ``{"theme"}`` answers
    one market proposal; ``POST {base_url}/recommend-investments`` with
    ``{"newsArticle", "portfolio", "riskPreferences"}`` answers investment advice.
    """

    def __init__(
        self,
        base_url: str,
        *,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
        self.client = client or httpx.Client(
            base_url=base_url.rstrip("/"), timeout=timeout, headers=headers
        )

    def asset_news(self, ticker: str, name: str) -> list[NewsItem]:
        payload = self._post("/asset-news", {"ticker": ticker, "name": name})
        if isinstance(payload, dict):
            payload = [payload]
        if not isinstance(payload, list):
            raise ContentUnavailable("Asset news response is not a list")
        try:
            return [NewsItem.model_validate(item) for item in payload]
        except ValidationError as exc:
            raise ContentUnavailable(f"Invalid asset news: {exc}") from exc

    def prediction_market(self, theme: str) -> MarketProposal:
        payload = self._post("/prediction-market", {"theme": theme})
        try:
            return MarketProposal.model_validate(payload)
        except ValidationError as exc:
            raise ContentUnavailable(f"Invalid market proposal: {exc}") from exc

    def recommend_investments(
        self, news_article: str, portfolio: str, risk_preference: str
    ) -> InvestmentAdvice:
        payload = self._post(
            "/recommend-investments",
            {
                "newsArticle": news_article,
                "portfolio": portfolio,
                "riskPreferences": risk_preference,
            },
        )
        try:
            return InvestmentAdvice.model_validate(payload)
        except ValidationError as exc:
            raise ContentUnavailable(f"Invalid investment advice: {exc}") from exc

    def close(self) -> None:
        self.client.close()

    def _post(self, path: str, body: dict[str, str]) -> object:
        try:
            response = self.client.post(path, json=body)
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise ContentUnavailable(f"Content service request to {path} failed: {exc}") from exc


class StaticContentGenerator:
    """Offline generator with canned, deterministic content."""

    _MARKETS = {
        "finance": MarketProposal(
            title="Will the central bank cut rates at its next meeting?",
            category="Finance",
            outcomes=["Yes", "No"],
        ),
        "tech": MarketProposal(
            title="Which company will ship a consumer AR headset first?",
            category="Tech",
            outcomes=["Apple", "Meta", "Google"],
        ),
        "geopolitics": MarketProposal(
            title="Will a new trade agreement be signed this quarter?",
            category="Geopolitics",
            outcomes=["Yes", "No"],
        ),
        "crypto": MarketProposal(
            title="Will BTC close the month above its current price?",
            category="Crypto",
            outcomes=["Yes", "No"],
        ),
    }

    def asset_news(self, ticker: str, name: str) -> list[NewsItem]:
        return [
            NewsItem(
                headline=f"Analysts keep {name} ({ticker}) on hold",
                article=(
                    f"Market watchers see no major catalyst for {name} this week. "
                    "Trading volumes remain close to their monthly average."
                ),
                sentiment="neutral",
                impact_score=0,
            )
        ]

    def prediction_market(self, theme: str) -> MarketProposal:
        proposal = self._MARKETS.get(theme.lower())
        if proposal is None:
            return MarketProposal(
                title=f"Will {theme} make the headlines next week?",
                category=theme.title(),
                outcomes=["Yes", "No"],
            )
        return proposal

    _IDEAS = (
        Recommendation(ticker="EURUSD", reason="Major currency pairs move slowly.", risk_score=1),
        Recommendation(ticker="XAU", reason="Gold tends to hold value when news turns sour.", risk_score=2),
        Recommendation(ticker="MSFT", reason="Diversified revenue and steady cash flow.", risk_score=3),
        Recommendation(ticker="AAPL", reason="Large, liquid and widely held.", risk_score=4),
        Recommendation(ticker="AMZN", reason="Retail and cloud exposure in one name.", risk_score=5),
        Recommendation(ticker="NVDA", reason="Strong demand, priced for growth.", risk_score=7),
        Recommendation(ticker="TSLA", reason="Large swings on every delivery report.", risk_score=8),
        Recommendation(ticker="ETH", reason="High beta to the wider crypto market.", risk_score=9),
        Recommendation(ticker="BTC", reason="The most traded crypto asset, still very volatile.", risk_score=9),
    )

    def recommend_investments(
        self, news_article: str, portfolio: str, risk_preference: str
    ) -> InvestmentAdvice:
        low, high = RISK_BANDS.get(risk_preference, RISK_BANDS["medium"])
        held = portfolio.upper()
        ideas = [idea for idea in self._IDEAS if low <= idea.risk_score <= high]
        # Prefer assets the player does not hold yet.
        ideas.sort(key=lambda idea: idea.ticker in held)
        return InvestmentAdvice(
            recommendations=ideas[:3],
            summary=(
                f"Offline suggestions for a {risk_preference} risk profile. "
                "The article was not analysed."
            ),
        )


def build_generator(config: BaseConfig) -> ContentGenerator:
    """HTTP generator when a service URL is configured, static otherwise."""

    if config.CONTENT_URL:
        return HttpContentGenerator(
            config.CONTENT_URL,
            api_key=config.CONTENT_API_KEY,
            timeout=config.CONTENT_TIMEOUT,
        )
    return StaticContentGenerator()


def get_or_generate_asset_news(
    session_factory: SessionFactory,
    generator: ContentGenerator,
    ticker: str,
    name: str,
    *,
    now: Optional[datetime] = None,
) -> tuple[list[NewsItem], str]:
    """Return recent news for an asset and where it came from.

    The source is ``"cache"`` for items younger than a day, ``"generated"`` for
    freshly generated (and now cached) items, and ``"fallback"`` when anything
    went wrong.
    """

    now = now or utcnow()
    try:
        with session_factory() as session:
            rows = session.exec(
                select(AssetNews)
                .where(AssetNews.ticker == ticker)
                .order_by(AssetNews.created_at.desc())  # type: ignore
            ).all()
            recent = [row for row in rows if ensure_utc(row.created_at) > now - NEWS_CACHE_WINDOW]
            if recent:
                return [_to_item(row) for row in recent[:NEWS_CACHE_LIMIT]], "cache"

        items = generator.asset_news(ticker, name)
        if not items:
            raise ContentUnavailable(f"No news generated for {ticker}")
        with session_factory() as session:
            session.add_all(
                AssetNews(
                    ticker=ticker,
                    headline=item.headline,
                    article=item.article,
                    sentiment=item.sentiment,
                    impact_score=item.impact_score,
                    created_at=now,
                )
                for item in items
            )
        logger.info("Generated asset news", extra={"ticker": ticker, "items": len(items)})
        return items, "generated"
    except Exception:
        logger.warning("Falling back to static news", extra={"ticker": ticker}, exc_info=True)
        return [FALLBACK_NEWS], "fallback"


def reset_news(session_factory: SessionFactory) -> int:
    """Delete every cached news item. Returns how many were removed."""

    with session_factory() as session:
        result = session.exec(delete(AssetNews))  # type: ignore[call-overload]
        removed = result.rowcount or 0
    logger.warning("News cache cleared", extra={"removed": removed})
    return removed


def _to_item(row: AssetNews) -> NewsItem:
    return NewsItem(
        headline=row.headline,
        article=row.article,
        sentiment=row.sentiment,  # type: ignore[arg-type]
        impact_score=row.impact_score,
    )
