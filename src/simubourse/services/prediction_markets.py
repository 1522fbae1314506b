"""Pari-mutuel prediction markets: bets, odds and market creation."""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Sequence

from sqlalchemy import update
from sqlmodel import Session

from ..errors import InsufficientFunds, InvalidAmount, MarketClosed, NotFound, ValidationFailed
from ..infra.database import SessionFactory
from ..infra.repositories import SQLModelMarketRepository
from ..logging_config import get_logger
from ..models.prediction import MarketBet, MarketOutcome, MarketStatus, PredictionMarket
from ..principal import Principal
from ..timeutil import ensure_utc, utcnow
from .content import ContentGenerator
from .ledger import CENT, Number, debit, load_user_for_update, quantize_money

logger = get_logger(__name__)

AI_CREATOR_NAME = "SimuBourse AI"
AI_THEMES = ("finance", "tech", "geopolitics", "crypto")
AI_CLOSING_DAYS = (3, 14)
AI_STARTING_POOL = (500, 2500)

TITLE_LENGTH = (10, 100)
MIN_CATEGORY_LENGTH = 3
OUTCOME_COUNT = (2, 5)


@dataclass(frozen=True)
class BetReceipt:
    market_id: int
    outcome_id: int
    outcome_name: str
    amount: Decimal
    cash_after: Decimal
    odds: int


@dataclass(frozen=True)
class OutcomeView:
    id: int
    name: str
    pool: Decimal
    odds: int


@dataclass
class MarketView:
    id: int
    title: str
    category: str
    status: str
    closing_at: datetime
    total_pool: Decimal
    creator_display_name: str
    outcomes: list[OutcomeView] = field(default_factory=list)


def get_odds(outcome_pool: Decimal, total_pool: Decimal) -> int:
    """Pool share of an outcome as a whole percentage in [0, 100].

    >>> get_odds(Decimal("25"), Decimal("100"))
    25
    >>> get_odds(Decimal("0"), Decimal("0"))
    0
    """

    if total_pool <= 0:
        return 0
    share = Decimal(100) * outcome_pool / total_pool
    return max(0, min(100, int(share.quantize(Decimal(1), rounding=ROUND_HALF_UP))))


def place_bet(
    session_factory: SessionFactory,
    principal: Principal,
    market_id: int,
    outcome_id: int,
    amount: Number,
    *,
    now: Optional[datetime] = None,
) -> BetReceipt:
    """Stake ``amount`` on one outcome of an open market."""

    stake = quantize_money(amount)
    if stake <= 0:
        raise InvalidAmount("The bet amount must be positive.")
    now = now or utcnow()

    with session_factory() as session:
        user = load_user_for_update(session, principal.user_id)
        if user.cash < stake:
            raise InsufficientFunds(
                f"Insufficient funds: the bet needs ${stake:,.2f}, you have ${user.cash:,.2f}."
            )

        market = session.get(PredictionMarket, market_id)
        if market is None:
            raise NotFound("Market not found.")
        outcome = session.get(MarketOutcome, outcome_id)
        if outcome is None or outcome.market_id != market_id:
            raise NotFound("Outcome not found in this market.")
        if market.status != MarketStatus.OPEN.value or ensure_utc(market.closing_at) <= now:
            raise MarketClosed()

        debit(user, stake)
        session.add(user)
        # Both pools move in the same transaction with SQL-side increments.
        session.exec(
            update(MarketOutcome)
            .where(MarketOutcome.id == outcome_id)
            .values(pool=MarketOutcome.pool + stake)
            .execution_options(synchronize_session=False)
        )  # type: ignore[call-overload]
        session.exec(
            update(PredictionMarket)
            .where(PredictionMarket.id == market_id)
            .values(total_pool=PredictionMarket.total_pool + stake)
            .execution_options(synchronize_session=False)
        )  # type: ignore[call-overload]
        session.add(MarketBet(user_id=principal.user_id, outcome_id=outcome_id, amount=stake))
        session.flush()
        session.refresh(outcome)
        session.refresh(market)

        receipt = BetReceipt(
            market_id=market_id,
            outcome_id=outcome_id,
            outcome_name=outcome.name,
            amount=stake,
            cash_after=user.cash,
            odds=get_odds(outcome.pool, market.total_pool),
        )

    logger.info(
        "Bet placed",
        extra={
            "user_id": principal.user_id,
            "market_id": market_id,
            "outcome_id": outcome_id,
            "amount": str(stake),
        },
    )
    return receipt


def create_user_market(
    session_factory: SessionFactory,
    principal: Principal,
    *,
    title: str,
    category: str,
    outcomes: Sequence[str],
    closing_at: datetime,
    now: Optional[datetime] = None,
) -> PredictionMarket:
    """Open a player-authored market. Every outcome starts with an empty pool."""

    title = title.strip()
    category = category.strip()
    names = [name.strip() for name in outcomes]
    if not TITLE_LENGTH[0] <= len(title) <= TITLE_LENGTH[1]:
        raise ValidationFailed(
            f"The title must be between {TITLE_LENGTH[0]} and {TITLE_LENGTH[1]} characters."
        )
    if len(category) < MIN_CATEGORY_LENGTH:
        raise ValidationFailed(f"The category needs at least {MIN_CATEGORY_LENGTH} characters.")
    if not OUTCOME_COUNT[0] <= len(names) <= OUTCOME_COUNT[1] or not all(names):
        raise ValidationFailed(
            f"A market needs between {OUTCOME_COUNT[0]} and {OUTCOME_COUNT[1]} named outcomes."
        )
    if ensure_utc(closing_at) <= (now or utcnow()):
        raise ValidationFailed("The closing date must be in the future.")

    with session_factory() as session:
        market = _insert_market(
            session,
            title=title,
            category=category,
            closing_at=ensure_utc(closing_at),
            creator_id=principal.user_id,
            creator_display_name=principal.display_name,
            pools=[(name, Decimal("0.00")) for name in names],
        )

    logger.info(
        "Market created",
        extra={"market_id": market.id, "creator_id": principal.user_id, "outcomes": len(names)},
    )
    return market


def ensure_ai_markets(
    session_factory: SessionFactory,
    generator: ContentGenerator,
    *,
    target: int = 4,
    rng: Optional[random.Random] = None,
    now: Optional[datetime] = None,
) -> int:
    """Top up the generated markets so ``target`` of them are open.

    Returns how many markets were created. A generation failure stops the
    top-up and is logged; the caller keeps whatever markets exist.
    """

    rng = rng or random.Random()
    now = now or utcnow()
    open_count = SQLModelMarketRepository(session_factory).count_open_by_creator(AI_CREATOR_NAME)

    missing = target - open_count
    created = 0
    for index in range(max(missing, 0)):
        theme = AI_THEMES[index % len(AI_THEMES)]
        try:
            proposal = generator.prediction_market(theme)
            closing_at = now + timedelta(days=rng.randint(*AI_CLOSING_DAYS))
            pools = _seed_pools(proposal.outcomes, rng)
            with session_factory() as session:
                _insert_market(
                    session,
                    title=proposal.title,
                    category=proposal.category,
                    closing_at=closing_at,
                    creator_id=None,
                    creator_display_name=AI_CREATOR_NAME,
                    pools=pools,
                )
        except Exception:
            logger.error("Could not create generated market", extra={"theme": theme}, exc_info=True)
            break
        created += 1

    if created:
        logger.info("Generated markets created", extra={"markets_created": created})
    return created


def list_open_markets(session_factory: SessionFactory) -> list[MarketView]:
    """Open markets newest first, with each outcome's current odds."""

    return [_view(market) for market in SQLModelMarketRepository(session_factory).list_open()]


def get_market(session_factory: SessionFactory, market_id: int) -> MarketView:
    market = SQLModelMarketRepository(session_factory).get_with_outcomes(market_id)
    if market is None:
        raise NotFound("Market not found.")
    return _view(market)


def _view(market: PredictionMarket) -> MarketView:
    assert market.id is not None
    return MarketView(
        id=market.id,
        title=market.title,
        category=market.category,
        status=market.status,
        closing_at=ensure_utc(market.closing_at),
        total_pool=market.total_pool,
        creator_display_name=market.creator_display_name,
        outcomes=[
            OutcomeView(
                id=outcome.id,  # type: ignore[arg-type]
                name=outcome.name,
                pool=outcome.pool,
                odds=get_odds(outcome.pool, market.total_pool),
            )
            for outcome in market.outcomes
        ],
    )


def _seed_pools(names: Sequence[str], rng: random.Random) -> list[tuple[str, Decimal]]:
    """Split a random starting pool across outcomes by random weights.

    The last outcome absorbs the rounding remainder so the pools add up to the
    market total to the cent.
    """

    total = quantize_money(rng.uniform(*AI_STARTING_POOL))
    weights = [rng.random() + 0.01 for _ in names]
    weight_sum = sum(weights)
    pools: list[tuple[str, Decimal]] = []
    allocated = Decimal("0.00")
    for name, weight in zip(names[:-1], weights[:-1]):
        pool = (total * Decimal(repr(weight / weight_sum))).quantize(CENT, rounding=ROUND_HALF_UP)
        pools.append((name, pool))
        allocated += pool
    pools.append((names[-1], total - allocated))
    return pools


def _insert_market(
    session: Session,
    *,
    title: str,
    category: str,
    closing_at: datetime,
    creator_id: Optional[int],
    creator_display_name: str,
    pools: Sequence[tuple[str, Decimal]],
) -> PredictionMarket:
    market = PredictionMarket(
        title=title,
        category=category,
        closing_at=closing_at,
        creator_id=creator_id,
        creator_display_name=creator_display_name,
        total_pool=sum((pool for _, pool in pools), Decimal("0.00")),
    )
    session.add(market)
    session.flush()
    assert market.id is not None
    session.add_all(MarketOutcome(market_id=market.id, name=name, pool=pool) for name, pool in pools)
    return market
