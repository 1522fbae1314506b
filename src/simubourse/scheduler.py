"""Background scheduler for the market simulation."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .services.dispatch import InlineDispatcher, PostCommitDispatcher, SchedulerDispatcher
from .services.pricing import tick_market
from .services.prediction_markets import ensure_ai_markets

if TYPE_CHECKING:
    from .context import AppContext

logger = logging.getLogger("simubourse.scheduler")

AI_MARKETS_INTERVAL_MINUTES = 30


class MarketScheduler:
    """Runs the market tick, keeps generated markets topped up and executes
    post-commit jobs off the request path."""

    def __init__(self, ctx: AppContext, scheduler: Optional[BackgroundScheduler] = None):
        """Initialize the scheduler with app context.

        Args:
            ctx: Application context with session factory and config
            scheduler: APScheduler instance to drive; a new one by default
        """
        self.ctx = ctx
        self.scheduler = scheduler or BackgroundScheduler(timezone="UTC")
        self.running = False

    @property
    def dispatcher(self) -> PostCommitDispatcher:
        """Dispatcher that queues follow-up work on this scheduler once started."""
        if not self.running:
            return InlineDispatcher()
        return SchedulerDispatcher(self.scheduler)

    def start(self) -> None:
        """Register the periodic jobs and start the background thread."""
        if self.running:
            logger.warning("Scheduler already running")
            return

        self.scheduler.add_job(
            func=self._tick,
            trigger=IntervalTrigger(seconds=self.ctx.config.MARKET_TICK_SECONDS),
            id="market_tick",
            name="Market Tick",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        logger.info(
            "Scheduled market tick every %s seconds", self.ctx.config.MARKET_TICK_SECONDS
        )

        self.scheduler.add_job(
            func=self._top_up_markets,
            trigger=IntervalTrigger(minutes=AI_MARKETS_INTERVAL_MINUTES),
            id="ai_markets",
            name="Generated Markets Top-up",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        logger.info("Scheduled generated markets top-up every %s minutes", AI_MARKETS_INTERVAL_MINUTES)

        self.scheduler.start()
        self.running = True
        self.ctx.dispatcher = self.dispatcher
        logger.info("Background scheduler started")

    def stop(self) -> None:
        """Stop the background scheduler gracefully."""
        if not self.running:
            return
        self.scheduler.shutdown(wait=True)
        self.running = False
        self.ctx.dispatcher = InlineDispatcher()
        logger.info("Background scheduler stopped")

    def _tick(self) -> None:
        try:
            tick_market(self.ctx.session_factory)
        except Exception as exc:
            logger.error("Market tick failed: %s", exc, exc_info=True)

    def _top_up_markets(self) -> None:
        # ensure_ai_markets logs its own generation failures
        ensure_ai_markets(
            self.ctx.session_factory,
            self.ctx.content,
            target=self.ctx.config.AI_MARKET_COUNT,
        )


def create_scheduler(ctx: AppContext, *, auto_start: bool = False) -> MarketScheduler:
    """Create and optionally start a market scheduler."""
    scheduler = MarketScheduler(ctx)
    if auto_start:
        scheduler.start()
    return scheduler
