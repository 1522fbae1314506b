"""Service module exports."""

from . import (
    actions,
    advisor,
    assets,
    auth,
    companies,
    content,
    cost_basis,
    dispatch,
    ledger,
    mining,
    portfolio,
    prediction_markets,
    pricing,
    trading,
)

__all__ = [
    "actions",
    "advisor",
    "assets",
    "auth",
    "companies",
    "content",
    "cost_basis",
    "dispatch",
    "ledger",
    "mining",
    "portfolio",
    "prediction_markets",
    "pricing",
    "trading",
]
