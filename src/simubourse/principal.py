"""The acting identity passed into every core operation."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Principal:
    """Who is performing an operation.

    Resolved by the caller (session, CLI option, test fixture); the services
    never look identity up on their own.
    """

    user_id: int
    display_name: str
