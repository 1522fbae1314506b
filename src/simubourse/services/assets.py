"""Asset catalogue: the initial market and read helpers."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from sqlmodel import select

from ..infra.database import SessionFactory
from ..logging_config import get_logger
from ..models.asset import Asset, AssetType
from ..timeutil import utcnow
from .pricing import change_24h

logger = get_logger(__name__)


@dataclass(frozen=True)
class AssetSeed:
    ticker: str
    name: str
    type: AssetType
    price: Decimal
    market_cap: str
    description: str


# Only used to populate an empty database; afterwards the table is the source of truth.
DEFAULT_ASSETS: tuple[AssetSeed, ...] = (
    AssetSeed(
        "AAPL", "Apple Inc.", AssetType.STOCK, Decimal("207.69"), "$3.18T",
        "Designs, manufactures, and markets smartphones, personal computers, tablets, "
        "wearables, and accessories worldwide.",
    ),
    AssetSeed(
        "MSFT", "Microsoft Corp.", AssetType.STOCK, Decimal("442.57"), "$3.29T",
        "Develops, licenses, and supports software, services, devices, and solutions worldwide.",
    ),
    AssetSeed(
        "AMZN", "Amazon.com, Inc.", AssetType.STOCK, Decimal("183.63"), "$1.91T",
        "Engages in the retail sale of consumer products and subscriptions in North America "
        "and internationally.",
    ),
    AssetSeed(
        "BTC", "Bitcoin", AssetType.CRYPTO, Decimal("67120.50"), "$1.32T",
        "A decentralized digital currency, without a central bank or single administrator.",
    ),
    AssetSeed(
        "ETH", "Ethereum", AssetType.CRYPTO, Decimal("3450.78"), "$414.5B",
        "A decentralized, open-source blockchain with smart contract functionality.",
    ),
    AssetSeed(
        "XAU", "Gold Spot", AssetType.COMMODITY, Decimal("2320.50"), "$15.8T",
        "Represents the price for one troy ounce of gold on the spot market.",
    ),
    AssetSeed(
        "EURUSD", "EUR/USD", AssetType.FOREX, Decimal("1.0712"), "N/A",
        "The currency exchange rate for the Euro and the U.S. Dollar.",
    ),
    AssetSeed(
        "NVDA", "NVIDIA Corporation", AssetType.STOCK, Decimal("120.89"), "$2.97T",
        "Provides graphics, and compute and networking solutions in the United States, "
        "Taiwan, China, and internationally.",
    ),
    AssetSeed(
        "TSLA", "Tesla, Inc.", AssetType.STOCK, Decimal("177.46"), "$565.4B",
        "Designs, develops, manufactures, leases, and sells electric vehicles, and energy "
        "generation and storage systems.",
    ),
)


@dataclass(frozen=True)
class AssetQuote:
    ticker: str
    name: str
    type: str
    price: Decimal
    market_cap: str
    change_24h: str


def seed_assets(session_factory: SessionFactory) -> int:
    """Insert the default assets into an empty table. Returns how many were added."""

    with session_factory() as session:
        if session.exec(select(Asset.ticker)).first() is not None:
            return 0
        now = utcnow()
        session.add_all(
            Asset(
                ticker=seed.ticker,
                name=seed.name,
                type=seed.type.value,
                description=seed.description,
                price=seed.price,
                market_cap=seed.market_cap,
                price_24h_ago=seed.price,
                price_24h_at=now,
                updated_at=now,
            )
            for seed in DEFAULT_ASSETS
        )

    logger.info("Seeded default assets", extra={"count": len(DEFAULT_ASSETS)})
    return len(DEFAULT_ASSETS)


def list_assets(
    session_factory: SessionFactory, *, asset_type: Optional[AssetType] = None
) -> list[AssetQuote]:
    with session_factory() as session:
        statement = select(Asset).order_by(Asset.ticker)  # type: ignore
        if asset_type is not None:
            statement = statement.where(Asset.type == asset_type.value)
        return [_quote(asset) for asset in session.exec(statement).all()]


def get_asset(session_factory: SessionFactory, ticker: str) -> Optional[AssetQuote]:
    with session_factory() as session:
        asset = session.get(Asset, ticker.strip().upper())
        return _quote(asset) if asset is not None else None


def _quote(asset: Asset) -> AssetQuote:
    return AssetQuote(
        ticker=asset.ticker,
        name=asset.name,
        type=asset.type,
        price=asset.price,
        market_cap=asset.market_cap,
        change_24h=change_24h(asset.price, asset.price_24h_ago),
    )
