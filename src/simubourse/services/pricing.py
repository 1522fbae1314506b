"""Market impact pricing and the periodic market tick."""

from __future__ import annotations

import random
import re
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Mapping, Optional

from sqlmodel import select

from ..infra.database import SessionFactory
from ..logging_config import get_logger
from ..models.asset import Asset
from ..models.news import AssetNews
from ..timeutil import ensure_utc, utcnow
from .cost_basis import quantize_units

logger = get_logger(__name__)

IMPACT_CONSTANT = Decimal("0.05")
MIN_PRICE = Decimal("0.01")

# Random walk applied on every tick: uniform in +/- half of BASE_VOLATILITY.
BASE_VOLATILITY = 0.005
SENTIMENT_DRIFT = {"positive": Decimal("0.002"), "negative": Decimal("-0.002")}
SENTIMENT_WINDOW = timedelta(hours=24)

_CAP_MULTIPLIERS = (
    ("t", Decimal("1e12")),
    ("b", Decimal("1e9")),
    ("m", Decimal("1e6")),
)


def parse_market_cap(text: Optional[str]) -> Decimal:
    """Parse display text such as ``"$3.18T"`` into a number.

    Text without digits (``"N/A"``, empty) parses to zero, which exempts the
    asset from trade impact.
    """

    if not text:
        return Decimal("0")
    digits = re.sub(r"[^0-9.]", "", text)
    if not digits:
        return Decimal("0")
    try:
        value = Decimal(digits)
    except InvalidOperation:
        return Decimal("0")
    lowered = text.lower()
    for suffix, multiplier in _CAP_MULTIPLIERS:
        if suffix in lowered:
            return value * multiplier
    return value


def compute_impacted_price(
    price: Decimal, market_cap: Decimal, signed_notional: Decimal
) -> Decimal:
    """Return the price after a trade of ``signed_notional`` (buy > 0, sell < 0)."""

    if market_cap <= 0:
        return price
    impact_fraction = signed_notional / market_cap * IMPACT_CONSTANT
    new_price = quantize_units(price * (1 + impact_fraction))
    return max(new_price, MIN_PRICE)


def apply_trade_impact(
    session_factory: SessionFactory, ticker: str, signed_notional: Decimal
) -> Optional[Decimal]:
    """Nudge an asset's stored price after a settled trade.

    Runs in its own transaction after the trade committed. Calls compound: each
    one multiplies whatever price is stored at that moment. Returns the new
    price, or ``None`` when the asset is unknown or exempt.
    """

    with session_factory() as session:
        asset = session.exec(
            select(Asset).where(Asset.ticker == ticker).with_for_update()
        ).first()
        if asset is None:
            logger.warning("Price impact skipped: unknown asset", extra={"ticker": ticker})
            return None

        market_cap = parse_market_cap(asset.market_cap)
        if market_cap <= 0:
            logger.debug("Price impact skipped: no market cap", extra={"ticker": ticker})
            return None

        old_price = asset.price
        asset.price = compute_impacted_price(old_price, market_cap, signed_notional)
        asset.updated_at = utcnow()
        session.add(asset)
        new_price = asset.price

    logger.info(
        "Applied trade impact",
        extra={
            "ticker": ticker,
            "notional": str(signed_notional),
            "old_price": str(old_price),
            "new_price": str(new_price),
        },
    )
    return new_price


def change_24h(price: Decimal, price_24h_ago: Decimal) -> str:
    """Format the signed 24h move, e.g. ``"+1.25%"``."""

    if price_24h_ago <= 0:
        return "+0.00%"
    percent = (price - price_24h_ago) / price_24h_ago * 100
    sign = "+" if percent >= 0 else ""
    return f"{sign}{percent:.2f}%"


def cached_sentiments(session_factory: SessionFactory, *, now: Optional[datetime] = None) -> dict[str, str]:
    """Latest cached news sentiment per ticker within the last 24 hours."""

    cutoff = ensure_utc(now or utcnow()) - SENTIMENT_WINDOW
    with session_factory() as session:
        rows = session.exec(
            select(AssetNews)
            .where(AssetNews.created_at >= cutoff)
            .order_by(AssetNews.created_at.desc())  # type: ignore
        ).all()
    sentiments: dict[str, str] = {}
    for row in rows:
        sentiments.setdefault(row.ticker, row.sentiment)
    return sentiments


def tick_market(
    session_factory: SessionFactory,
    *,
    sentiments: Optional[Mapping[str, str]] = None,
    rng: Optional[random.Random] = None,
    now: Optional[datetime] = None,
) -> dict[str, Decimal]:
    """Advance every asset price by one simulation step.

    Each price moves by a uniform random fluctuation plus a drift following the
    asset's current news sentiment. The 24h reference price rolls forward once
    it is a day old. Returns the new prices keyed by ticker.
    """

    rng = rng or random.Random()
    now = now or utcnow()
    if sentiments is None:
        sentiments = cached_sentiments(session_factory, now=now)

    new_prices: dict[str, Decimal] = {}
    with session_factory() as session:
        assets = session.exec(select(Asset).order_by(Asset.ticker)).all()  # type: ignore
        for asset in assets:
            fluctuation = Decimal(repr(rng.uniform(-BASE_VOLATILITY / 2, BASE_VOLATILITY / 2)))
            drift = SENTIMENT_DRIFT.get(sentiments.get(asset.ticker, "neutral"), Decimal("0"))
            price = quantize_units(asset.price * (1 + fluctuation + drift))
            asset.price = max(price, MIN_PRICE)
            if now - ensure_utc(asset.price_24h_at) >= timedelta(hours=24):
                asset.price_24h_ago = asset.price
                asset.price_24h_at = now
            asset.updated_at = now
            session.add(asset)
            new_prices[asset.ticker] = asset.price

    logger.info("Market tick applied", extra={"assets": len(new_prices)})
    return new_prices
