"""Order lifecycle state machine.

Every transition is a single conditional UPDATE matching the order id, the
owning outlet, the paid gate and the allowed source statuses. The status
column therefore doubles as a version guard: of two concurrent attempts on
the same source state exactly one matches a row.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from canteen.models.order import ORDER_STATUSES, Order
from canteen.services.timer import estimate_ready_at
from canteen.utils.time import utcnow

logger = logging.getLogger(__name__)

TERMINAL_STATUSES: frozenset[str] = frozenset({"completed", "cancelled"})
ACTIVE_STATUSES: list[str] = [status for status in ORDER_STATUSES if status not in TERMINAL_STATUSES]

DEFAULT_CANCELLATION_REASON: str = "Cancelled by outlet"

# event -> (allowed source statuses, target status)
TRANSITIONS: dict[str, tuple[frozenset[str], str]] = {
    "accept": (frozenset({"pending"}), "accepted"),
    "mark_ready": (frozenset({"accepted", "preparing"}), "ready"),
    "complete": (frozenset({"ready"}), "completed"),
    "cancel": (frozenset({"pending", "accepted", "preparing", "ready"}), "cancelled"),
}


class OrderNotInExpectedState(LookupError):
    """Raised when no order matches the id, outlet and allowed source states."""

    def __init__(self, order_id: int, event: str) -> None:
        super().__init__(f"Order {order_id} not found in a state that allows '{event}'")
        self.order_id = order_id
        self.event = event


def can_transition(current: str, event: str) -> bool:
    """Return whether ``event`` is legal from the ``current`` status."""
    sources, _ = TRANSITIONS[event]
    return current in sources


def target_status(event: str) -> str:
    return TRANSITIONS[event][1]


async def _apply(
    db: AsyncSession,
    *,
    order_id: int,
    outlet_id: int,
    event: str,
    values: Callable[[Order], dict[str, Any]],
) -> Order:
    sources, target = TRANSITIONS[event]
    guard = (
        Order.id == order_id,
        Order.outlet_id == outlet_id,
        Order.payment_status == "paid",
        Order.status.in_(sources),
    )

    current: Order | None = await db.scalar(
        select(Order).where(*guard).execution_options(populate_existing=True)
    )
    if current is None:
        raise OrderNotInExpectedState(order_id, event)

    result = await db.execute(
        update(Order)
        .where(*guard, Order.status == current.status)
        .values(status=target, **values(current))
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await db.rollback()
        logger.info("[ORDERS] Lost %s race for order_id=%s", event, order_id)
        raise OrderNotInExpectedState(order_id, event)

    await db.commit()
    await db.refresh(current)
    logger.info("[ORDERS] order_id=%s %s -> %s", order_id, event, target)
    return current


async def accept_order(db: AsyncSession, *, order_id: int, outlet_id: int, now: datetime | None = None) -> Order:
    """Move a paid pending order to ``accepted`` and start its preparation timer."""
    now = now or utcnow()
    return await _apply(
        db,
        order_id=order_id,
        outlet_id=outlet_id,
        event="accept",
        values=lambda order: {
            "timer_started_at": now,
            "estimated_ready_at": estimate_ready_at(now, order.total_prep_time),
        },
    )


async def mark_order_ready(db: AsyncSession, *, order_id: int, outlet_id: int, now: datetime | None = None) -> Order:
    now = now or utcnow()
    return await _apply(db, order_id=order_id, outlet_id=outlet_id, event="mark_ready", values=lambda _: {"ready_at": now})


async def complete_order(db: AsyncSession, *, order_id: int, outlet_id: int, now: datetime | None = None) -> Order:
    now = now or utcnow()
    return await _apply(db, order_id=order_id, outlet_id=outlet_id, event="complete", values=lambda _: {"completed_at": now})


async def cancel_order(db: AsyncSession, *, order_id: int, outlet_id: int, reason: str | None = None) -> Order:
    """Cancel any non-terminal order, recording why."""
    clean_reason = (reason or "").strip() or DEFAULT_CANCELLATION_REASON
    return await _apply(
        db,
        order_id=order_id,
        outlet_id=outlet_id,
        event="cancel",
        values=lambda _: {"cancellation_reason": clean_reason},
    )
