"""Action facade returning displayable results instead of raising.

Each function runs one service call and reports either a success message or a
single error string, never both. Business-rule failures carry their own
message; anything unexpected is logged and reported generically.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional, Sequence

from ..errors import SimulationError
from ..infra.database import SessionFactory
from ..logging_config import get_logger
from ..models.transaction import TradeSide
from ..principal import Principal
from . import advisor, companies, mining, prediction_markets, trading
from .content import ContentGenerator
from .dispatch import PostCommitDispatcher
from .ledger import Number

logger = get_logger(__name__)

GENERIC_ERROR = "An unexpected error occurred. Please try again."


@dataclass(frozen=True)
class ActionResult:
    success: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def message(self) -> str:
        return self.success if self.error is None else self.error  # type: ignore[return-value]


def _run(action: str, call: Callable[[], str]) -> ActionResult:
    try:
        return ActionResult(success=call())
    except SimulationError as exc:
        logger.info("Action rejected", extra={"action": action, "reason": exc.message})
        return ActionResult(error=exc.message)
    except Exception:
        logger.exception("Action failed", extra={"action": action})
        return ActionResult(error=GENERIC_ERROR)


def _units(value: Decimal) -> str:
    return f"{value.normalize():f}"


def _trade_message(receipt: trading.TradeReceipt) -> str:
    verb = "Bought" if receipt.side is TradeSide.BUY else "Sold"
    return (
        f"{verb} {_units(receipt.quantity)} {receipt.ticker} at ${receipt.price:,.2f} "
        f"for ${receipt.value:,.2f}."
    )


def buy(
    session_factory: SessionFactory,
    principal: Principal,
    ticker: str,
    quantity: Number,
    *,
    dispatcher: Optional[PostCommitDispatcher] = None,
) -> ActionResult:
    return _run(
        "buy",
        lambda: _trade_message(
            trading.buy_asset(session_factory, principal, ticker, quantity, dispatcher=dispatcher)
        ),
    )


def sell(
    session_factory: SessionFactory,
    principal: Principal,
    ticker: str,
    quantity: Number,
    *,
    dispatcher: Optional[PostCommitDispatcher] = None,
) -> ActionResult:
    return _run(
        "sell",
        lambda: _trade_message(
            trading.sell_asset(session_factory, principal, ticker, quantity, dispatcher=dispatcher)
        ),
    )


def company_buy(
    session_factory: SessionFactory,
    principal: Principal,
    company_id: int,
    ticker: str,
    quantity: Number,
    *,
    dispatcher: Optional[PostCommitDispatcher] = None,
) -> ActionResult:
    return _run(
        "company_buy",
        lambda: _trade_message(
            trading.company_buy_asset(
                session_factory, principal, company_id, ticker, quantity, dispatcher=dispatcher
            )
        ),
    )


def company_sell(
    session_factory: SessionFactory,
    principal: Principal,
    company_id: int,
    ticker: str,
    quantity: Number,
    *,
    dispatcher: Optional[PostCommitDispatcher] = None,
) -> ActionResult:
    return _run(
        "company_sell",
        lambda: _trade_message(
            trading.company_sell_asset(
                session_factory, principal, company_id, ticker, quantity, dispatcher=dispatcher
            )
        ),
    )


def invest(
    session_factory: SessionFactory, principal: Principal, company_id: int, amount: Number
) -> ActionResult:
    def call() -> str:
        receipt = companies.invest(session_factory, principal, company_id, amount)
        return (
            f"Invested ${receipt.amount:,.2f} in {receipt.company_name}: "
            f"{_units(receipt.shares_minted)} shares at ${receipt.share_price:,.4f}."
        )

    return _run("invest", call)


def bet(
    session_factory: SessionFactory,
    principal: Principal,
    market_id: int,
    outcome_id: int,
    amount: Number,
) -> ActionResult:
    def call() -> str:
        receipt = prediction_markets.place_bet(
            session_factory, principal, market_id, outcome_id, amount
        )
        return (
            f'Bet ${receipt.amount:,.2f} on "{receipt.outcome_name}" '
            f"(now {receipt.odds}% of the pool)."
        )

    return _run("bet", call)


def create_company(
    session_factory: SessionFactory,
    principal: Principal,
    *,
    name: str,
    industry: str,
    description: str,
) -> ActionResult:
    def call() -> str:
        company = companies.create_company(
            session_factory, principal, name=name, industry=industry, description=description
        )
        return f'Company "{company.name}" created. You are its CEO.'

    return _run("create_company", call)


def create_market(
    session_factory: SessionFactory,
    principal: Principal,
    *,
    title: str,
    category: str,
    outcomes: Sequence[str],
    closing_at: datetime,
) -> ActionResult:
    def call() -> str:
        market = prediction_markets.create_user_market(
            session_factory,
            principal,
            title=title,
            category=category,
            outcomes=outcomes,
            closing_at=closing_at,
        )
        return f'Market "{market.title}" created.'

    return _run("create_market", call)


def buy_rig(session_factory: SessionFactory, principal: Principal, rig_id: str) -> ActionResult:
    def call() -> str:
        purchase = mining.buy_mining_rig(session_factory, principal, rig_id)
        return (
            f"{purchase.rig.name} bought for ${purchase.rig.price:,.2f} "
            f"(you now own {purchase.quantity_owned})."
        )

    return _run("buy_rig", call)


def claim_rewards(session_factory: SessionFactory, principal: Principal) -> ActionResult:
    def call() -> str:
        claimed = mining.claim_mining_rewards(session_factory, principal)
        return f"Claimed {_units(claimed)} BTC."

    return _run("claim_rewards", call)


def advise(
    session_factory: SessionFactory,
    generator: ContentGenerator,
    principal: Principal,
    *,
    news_article: str,
    risk_preference: str,
) -> ActionResult:
    def call() -> str:
        advice, _ = advisor.recommend_investments(
            session_factory,
            generator,
            principal,
            news_article=news_article,
            risk_preference=risk_preference,
        )
        lines = [advice.summary]
        lines.extend(
            f"  {rec.ticker:<8} risk {rec.risk_score:>2}/10  {rec.reason}"
            for rec in advice.recommendations
        )
        return "\n".join(lines)

    return _run("advise", call)
