"""Order placement and student-facing order queries."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from canteen.core.config import settings
from canteen.models.menu import DEFAULT_PREP_TIME_MINUTES, MenuItem
from canteen.models.order import Order, OrderItem
from canteen.models.outlet import Outlet
from canteen.schemas.order import OrderItemPayload
from canteen.services.order_status import ACTIVE_STATUSES
from canteen.utils.time import utcnow

logger = logging.getLogger(__name__)

ORDER_NUMBER_ATTEMPTS: int = 5


class OutletNotFoundError(LookupError):
    """Raised when the outlet does not exist or is not verified."""


class OutletClosedError(Exception):
    """Raised when ordering from an outlet that is currently closed."""


class ItemUnavailableError(Exception):
    """Raised when a requested menu item is missing, foreign or switched off."""

    def __init__(self, menu_item_id: int) -> None:
        super().__init__(f"Item not available: {menu_item_id}")
        self.menu_item_id = menu_item_id


@dataclass(frozen=True)
class LineSnapshot:
    """Immutable copy of a menu item at the moment it was ordered."""

    menu_item_id: int | None
    name: str
    price: int
    quantity: int
    prep_time: int | None

    @property
    def subtotal(self) -> int:
        return self.price * self.quantity


def compute_totals(lines: list[LineSnapshot]) -> tuple[int, int]:
    """Return ``(total_amount, total_prep_time)``.

    Items are prepared in parallel, so the prep time is the longest single
    item rather than the sum.
    """
    total_amount = sum(line.subtotal for line in lines)
    prep_times = [line.prep_time for line in lines if line.prep_time is not None]
    total_prep_time = max(prep_times) if prep_times else DEFAULT_PREP_TIME_MINUTES
    return total_amount, total_prep_time


def format_order_number(university_code: str | None, seq: int) -> str:
    """Build ``<marketplace>-<university>-<seq>``, e.g. ``CC-BU-000042``."""
    uni_code = (university_code or settings.default_university_code).upper()
    return f"{settings.marketplace_code}-{uni_code}-{seq:06d}"


async def _next_order_seq(db: AsyncSession, outlet_id: int, order_date: date) -> int:
    count = await db.scalar(
        select(func.coalesce(func.max(Order.order_seq), 0)).where(
            Order.outlet_id == outlet_id,
            Order.order_date == order_date,
        )
    )
    return int(count or 0) + 1


async def _snapshot_lines(db: AsyncSession, outlet: Outlet, payload_items: list[OrderItemPayload]) -> list[LineSnapshot]:
    lines: list[LineSnapshot] = []
    for item in payload_items:
        menu_item: MenuItem | None = await db.get(MenuItem, item.menu_item_id)
        if menu_item is None or menu_item.outlet_id != outlet.id or not menu_item.is_available:
            raise ItemUnavailableError(item.menu_item_id)
        lines.append(
            LineSnapshot(
                menu_item_id=menu_item.id,
                name=menu_item.name,
                price=menu_item.price,
                quantity=item.quantity,
                prep_time=menu_item.prep_time,
            )
        )
    return lines


async def create_order(
    db: AsyncSession,
    *,
    user_id: int,
    outlet_id: int,
    items: list[OrderItemPayload],
    special_instructions: str | None = None,
    now: datetime | None = None,
) -> Order:
    """Create a ``pending`` order awaiting payment."""
    now = now or utcnow()
    outlet: Outlet | None = await db.get(Outlet, outlet_id)
    if outlet is None or not outlet.is_verified:
        raise OutletNotFoundError(outlet_id)
    if not outlet.is_open:
        raise OutletClosedError(outlet_id)

    lines = await _snapshot_lines(db, outlet, items)
    total_amount, total_prep_time = compute_totals(lines)
    university_code = outlet.university.code if outlet.university is not None else None
    outlet_pk = outlet.id
    order_date = now.date()

    for attempt in range(1, ORDER_NUMBER_ATTEMPTS + 1):
        seq = await _next_order_seq(db, outlet_pk, order_date)
        order = Order(
            user_id=user_id,
            outlet_id=outlet_pk,
            order_date=order_date,
            order_seq=seq,
            order_number=format_order_number(university_code, seq),
            created_at=now,
            status="pending",
            payment_status="pending",
            total_amount=total_amount,
            total_prep_time=total_prep_time,
            special_instructions=special_instructions,
            items=[
                OrderItem(
                    position=position,
                    menu_item_id=line.menu_item_id,
                    name=line.name,
                    price=line.price,
                    quantity=line.quantity,
                    prep_time=line.prep_time,
                )
                for position, line in enumerate(lines)
            ],
        )
        db.add(order)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            logger.warning("[ORDERS] order_seq collision for outlet_id=%s (attempt %s)", outlet_pk, attempt)
            continue
        await db.refresh(order)
        logger.info("[ORDERS] Created order %s (id=%s) for user_id=%s", order.order_number, order.id, user_id)
        return order

    raise RuntimeError(f"Could not allocate an order number for outlet {outlet_pk}")


async def get_student_order(db: AsyncSession, *, order_id: int, user_id: int) -> Order | None:
    return await db.scalar(select(Order).where(Order.id == order_id, Order.user_id == user_id))


async def list_active_orders(db: AsyncSession, *, user_id: int) -> list[Order]:
    """Paid orders of a student that have not reached a terminal state."""
    rows = await db.scalars(
        select(Order)
        .where(
            Order.user_id == user_id,
            Order.payment_status == "paid",
            Order.status.in_(ACTIVE_STATUSES),
        )
        .order_by(Order.created_at.desc(), Order.id.desc())
    )
    return list(rows.all())


async def list_student_orders(
    db: AsyncSession,
    *,
    user_id: int,
    status: str | None = None,
    limit: int = 10,
    page: int = 1,
) -> tuple[list[Order], int]:
    """Return one page of a student's order history and the total count."""
    conditions = [Order.user_id == user_id]
    if status:
        conditions.append(Order.status == status)
    total = await db.scalar(select(func.count(Order.id)).where(*conditions))
    rows = await db.scalars(
        select(Order)
        .where(*conditions)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .limit(limit)
        .offset((page - 1) * limit)
    )
    return list(rows.all()), int(total or 0)
