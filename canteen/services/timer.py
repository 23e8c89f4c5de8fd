"""Preparation countdown derived from stored order timestamps.

Nothing here keeps state: the countdown is recomputed from
``estimated_ready_at`` on every read and every sync tick, so it survives
process restarts unchanged.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta

from canteen.utils.time import as_utc, utcnow

FINISHED_STATUSES: frozenset[str] = frozenset({"ready", "completed"})
IN_KITCHEN_STATUSES: frozenset[str] = frozenset({"accepted", "preparing"})


def estimate_ready_at(started_at: datetime, prep_minutes: int) -> datetime:
    """Return the moment an order accepted at ``started_at`` should be ready."""
    return started_at + timedelta(minutes=prep_minutes)


def remaining_seconds(status: str, estimated_ready_at: datetime | None, now: datetime | None = None) -> int:
    """Whole seconds left until ``estimated_ready_at``, rounded up and floored at 0."""
    if estimated_ready_at is None or status in FINISHED_STATUSES:
        return 0
    now = as_utc(now) or utcnow()
    remaining = (as_utc(estimated_ready_at) - now).total_seconds()
    return math.ceil(max(0.0, remaining))


def is_delayed(status: str, estimated_ready_at: datetime | None, now: datetime | None = None) -> bool:
    """Countdown has run out while the kitchen still holds the order."""
    if estimated_ready_at is None or status not in IN_KITCHEN_STATUSES:
        return False
    return remaining_seconds(status, estimated_ready_at, now) == 0
