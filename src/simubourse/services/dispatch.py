"""Post-commit work queues.

Settlement services hand follow-up work (price impact) to a dispatcher once
their transaction committed. A failing job is logged and dropped; it never
reaches the caller and is never retried.
"""

from __future__ import annotations

from typing import Any, Callable, Protocol

from apscheduler.schedulers.base import BaseScheduler

from ..logging_config import get_logger

logger = get_logger(__name__)


class PostCommitDispatcher(Protocol):
    def submit(self, func: Callable[..., Any], *args: Any, name: str) -> None:
        ...  # pragma: no cover - interface


def run_logged(func: Callable[..., Any], name: str, *args: Any) -> None:
    """Run a post-commit job, swallowing and logging any failure."""

    try:
        func(*args)
    except Exception:
        logger.exception("Post-commit job failed", extra={"job": name})


class InlineDispatcher:
    """Run jobs immediately in the calling thread, after the commit."""

    def submit(self, func: Callable[..., Any], *args: Any, name: str) -> None:
        run_logged(func, name, *args)


class SchedulerDispatcher:
    """Enqueue jobs as one-off APScheduler jobs that run as soon as possible."""

    def __init__(self, scheduler: BaseScheduler):
        self.scheduler = scheduler

    def submit(self, func: Callable[..., Any], *args: Any, name: str) -> None:
        self.scheduler.add_job(
            run_logged,
            args=(func, name, *args),
            name=name,
            misfire_grace_time=None,
        )
