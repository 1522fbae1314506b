"""Concrete repository implementations using SQLModel."""

from .asset import SQLModelAssetRepository
from .company import SQLModelCompanyRepository
from .holding import SQLModelHoldingRepository
from .market import SQLModelMarketRepository
from .transaction import SQLModelTransactionRepository

__all__ = [
    "SQLModelAssetRepository",
    "SQLModelCompanyRepository",
    "SQLModelHoldingRepository",
    "SQLModelMarketRepository",
    "SQLModelTransactionRepository",
]
