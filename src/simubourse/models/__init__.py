"""SQLModel table exports."""

from .asset import Asset, AssetType
from .company import CEO_ROLE, Company, CompanyHolding, CompanyMember, CompanyShare
from .mining import UserMiningRig
from .news import AssetNews
from .portfolio import Holding
from .prediction import MarketBet, MarketOutcome, MarketStatus, PredictionMarket
from .transaction import TradeSide, Transaction
from .user import User

__all__ = [
    "Asset",
    "AssetNews",
    "AssetType",
    "CEO_ROLE",
    "Company",
    "CompanyHolding",
    "CompanyMember",
    "CompanyShare",
    "Holding",
    "MarketBet",
    "MarketOutcome",
    "MarketStatus",
    "PredictionMarket",
    "TradeSide",
    "Transaction",
    "User",
    "UserMiningRig",
]
