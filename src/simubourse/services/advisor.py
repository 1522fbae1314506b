"""Investment suggestions from a news article and the player's portfolio.

The portfolio is described to the content service as position weights. Advice
is cosmetic like the rest of the generated content: any failure degrades to
``FALLBACK_ADVICE`` and nothing here touches balances.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from ..errors import ValidationFailed
from ..infra.database import SessionFactory
from ..logging_config import get_logger
from ..principal import Principal
from .content import FALLBACK_ADVICE, RISK_BANDS, ContentGenerator, InvestmentAdvice
from .portfolio import PortfolioSummary, portfolio_summary

logger = get_logger(__name__)

MIN_ARTICLE_LENGTH = 50


def describe_portfolio(summary: PortfolioSummary) -> str:
    """Weights of every position, company stake and cash, e.g. ``"60% AAPL, 40% cash"``."""

    total = summary.total_value
    if total <= 0:
        return "empty portfolio"
    parts = [(position.ticker, position.market_value) for position in summary.positions]
    parts += [(stake.company_name, stake.value) for stake in summary.equity]
    parts.append(("cash", summary.cash))
    weights = [
        f"{(Decimal(100) * value / total).quantize(Decimal(1), rounding=ROUND_HALF_UP)}% {label}"
        for label, value in parts
        if value > 0
    ]
    return ", ".join(weights)


def recommend_investments(
    session_factory: SessionFactory,
    generator: ContentGenerator,
    principal: Principal,
    *,
    news_article: str,
    risk_preference: str,
) -> tuple[InvestmentAdvice, str]:
    """Ask the generator for advice matching ``risk_preference``.

    Returns the advice and its source, ``"generated"`` or ``"fallback"``.
    Recommendations whose risk score falls outside the preference's band are
    dropped.
    """

    article = news_article.strip()
    if len(article) < MIN_ARTICLE_LENGTH:
        raise ValidationFailed(
            f"The news article must be at least {MIN_ARTICLE_LENGTH} characters long."
        )
    preference = risk_preference.strip().lower()
    if preference not in RISK_BANDS:
        raise ValidationFailed("The risk preference must be one of: low, medium, high.")

    portfolio = describe_portfolio(portfolio_summary(session_factory, principal))
    try:
        advice = generator.recommend_investments(article, portfolio, preference)
    except Exception:
        logger.warning(
            "Falling back to static advice", extra={"user_id": principal.user_id}, exc_info=True
        )
        return FALLBACK_ADVICE, "fallback"

    low, high = RISK_BANDS[preference]
    kept = [rec for rec in advice.recommendations if low <= rec.risk_score <= high]
    if len(kept) != len(advice.recommendations):
        logger.info(
            "Dropped recommendations outside the risk band",
            extra={
                "user_id": principal.user_id,
                "dropped": len(advice.recommendations) - len(kept),
            },
        )
    return advice.model_copy(update={"recommendations": kept}), "generated"
