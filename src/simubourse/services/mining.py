"""Mining minigame: buy rigs, accrue BTC over time, claim it into a holding."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlmodel import Session, select

from ..errors import NotFound
from ..infra.database import SessionFactory
from ..logging_config import get_logger
from ..models.asset import Asset, AssetType
from ..models.mining import UserMiningRig
from ..models.portfolio import Holding
from ..models.user import User
from ..principal import Principal
from ..timeutil import ensure_utc, utcnow
from .cost_basis import Position, apply_acquisition, quantize_units
from .ledger import debit, load_user_for_update

logger = get_logger(__name__)

BTC_PER_MHS_PER_SECOND = Decimal("7.7e-12")
SECONDS_PER_DAY = 86400
MINED_TICKER = "BTC"


@dataclass(frozen=True)
class MiningRig:
    id: str
    name: str
    hash_rate_mhs: int
    power: str
    price: Decimal


MINING_RIGS: dict[str, MiningRig] = {
    rig.id: rig
    for rig in (
        MiningRig("starter_gpu", "Starter GPU rig", 150, "600W", Decimal("2500")),
        MiningRig("advanced_asic", "Advanced ASIC miner", 110_000, "3250W", Decimal("12000")),
        MiningRig("pro_farm_share", "Pro mining farm share", 5_000_000, "N/A (managed)", Decimal("50000")),
    )
}


@dataclass(frozen=True)
class RigPurchase:
    rig: MiningRig
    quantity_owned: int
    cash_after: Decimal


@dataclass(frozen=True)
class MiningStatus:
    total_hash_rate_mhs: int
    unclaimed_btc: Decimal
    btc_per_day: Decimal
    rigs: dict[str, int]


def compute_accrued_btc(total_hash_rate_mhs: int, seconds: float) -> Decimal:
    """BTC mined by ``total_hash_rate_mhs`` over ``seconds``.

    >>> compute_accrued_btc(150, 86400)
    Decimal('0.00009979')
    """

    if total_hash_rate_mhs <= 0 or seconds <= 0:
        return Decimal("0")
    mined = Decimal(total_hash_rate_mhs) * BTC_PER_MHS_PER_SECOND * Decimal(repr(seconds))
    return quantize_units(mined)


def total_hash_rate(rigs: dict[str, int]) -> int:
    return sum(
        MINING_RIGS[rig_id].hash_rate_mhs * count
        for rig_id, count in rigs.items()
        if rig_id in MINING_RIGS
    )


def buy_mining_rig(
    session_factory: SessionFactory,
    principal: Principal,
    rig_id: str,
    *,
    now: Optional[datetime] = None,
) -> RigPurchase:
    """Buy one rig. Rewards accrued so far are claimed first at the old rate."""

    rig = MINING_RIGS.get(rig_id)
    if rig is None:
        raise NotFound(f"Unknown mining rig {rig_id!r}.")
    now = now or utcnow()

    with session_factory() as session:
        user = load_user_for_update(session, principal.user_id)
        debit(user, rig.price)
        _claim(session, user, now)
        if user.last_mining_claim_at is None:
            user.last_mining_claim_at = now

        owned = session.exec(
            select(UserMiningRig)
            .where(UserMiningRig.user_id == principal.user_id, UserMiningRig.rig_id == rig_id)
            .with_for_update()
        ).first()
        if owned is None:
            owned = UserMiningRig(user_id=principal.user_id, rig_id=rig_id, quantity=1)
        else:
            owned.quantity += 1
        session.add_all([user, owned])
        purchase = RigPurchase(rig=rig, quantity_owned=owned.quantity, cash_after=user.cash)

    logger.info(
        "Mining rig bought",
        extra={"user_id": principal.user_id, "rig_id": rig_id, "owned": purchase.quantity_owned},
    )
    return purchase


def mining_status(
    session_factory: SessionFactory, principal: Principal, *, now: Optional[datetime] = None
) -> MiningStatus:
    """Read-only view of rigs and unclaimed rewards."""

    now = now or utcnow()
    with session_factory() as session:
        user = session.get(User, principal.user_id)
        if user is None:
            raise NotFound("User not found.")
        rigs = _owned_rigs(session, principal.user_id)
        hash_rate = total_hash_rate(rigs)
        return MiningStatus(
            total_hash_rate_mhs=hash_rate,
            unclaimed_btc=compute_accrued_btc(hash_rate, _elapsed(user, now)),
            btc_per_day=compute_accrued_btc(hash_rate, SECONDS_PER_DAY),
            rigs=rigs,
        )


def claim_mining_rewards(
    session_factory: SessionFactory, principal: Principal, *, now: Optional[datetime] = None
) -> Decimal:
    """Credit accrued BTC to the player's holdings and restart the clock.

    Claiming twice with the same ``now`` credits nothing the second time.
    """

    now = now or utcnow()
    with session_factory() as session:
        user = load_user_for_update(session, principal.user_id)
        claimed = _claim(session, user, now)
        session.add(user)

    if claimed > 0:
        logger.info(
            "Mining rewards claimed",
            extra={"user_id": principal.user_id, "btc": str(claimed)},
        )
    return claimed


def _claim(session: Session, user: User, now: datetime) -> Decimal:
    assert user.id is not None
    rigs = _owned_rigs(session, user.id)
    mined = compute_accrued_btc(total_hash_rate(rigs), _elapsed(user, now))
    if user.last_mining_claim_at is not None:
        user.last_mining_claim_at = max(ensure_utc(user.last_mining_claim_at), now)
    if mined <= 0:
        return Decimal("0")

    holding = session.exec(
        select(Holding)
        .where(Holding.user_id == user.id, Holding.ticker == MINED_TICKER)
        .with_for_update()
    ).first()
    if holding is None:
        asset = session.get(Asset, MINED_TICKER)
        holding = Holding(
            user_id=user.id,
            ticker=MINED_TICKER,
            name=asset.name if asset is not None else "Bitcoin",
            type=asset.type if asset is not None else AssetType.CRYPTO.value,
            quantity=Decimal("0"),
            avg_cost=Decimal("0"),
        )
        current = None
    else:
        current = Position(quantity=holding.quantity, avg_cost=holding.avg_cost)

    # Mined coins cost nothing, which pulls the blended cost down.
    position = apply_acquisition(current, mined, Decimal("0"))
    holding.quantity = position.quantity
    holding.avg_cost = position.avg_cost
    holding.updated_at = now
    session.add(holding)
    return mined


def _elapsed(user: User, now: datetime) -> float:
    if user.last_mining_claim_at is None:
        return 0.0
    return max((now - ensure_utc(user.last_mining_claim_at)).total_seconds(), 0.0)


def _owned_rigs(session: Session, user_id: int) -> dict[str, int]:
    rows = session.exec(select(UserMiningRig).where(UserMiningRig.user_id == user_id)).all()
    return {row.rig_id: row.quantity for row in rows}
