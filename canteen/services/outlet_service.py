"""Outlet-side queries, analytics and order completion bookkeeping."""

from __future__ import annotations

import calendar
import logging
import math
from datetime import date, datetime, time, timedelta, timezone

from sqlalchemy import not_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from canteen.models.menu import MenuItem
from canteen.models.order import Order
from canteen.models.outlet import Outlet
from canteen.models.user import FavoriteItem
from canteen.schemas.analytics import AnalyticsResponse, AnalyticsSummary, ChartPoint, TopItem
from canteen.schemas.order import DashboardStats
from canteen.utils.time import as_utc, day_window_utc, utcnow

logger = logging.getLogger(__name__)

ANALYTICS_PERIODS: tuple[str, ...] = ("week", "month", "year")
TOP_ITEMS_LIMIT: int = 10


async def get_outlet_by_owner_email(db: AsyncSession, email: str) -> Outlet | None:
    return await db.scalar(select(Outlet).where(Outlet.owner_email == email.strip().lower()).limit(1))


async def toggle_outlet_open(db: AsyncSession, outlet: Outlet) -> bool:
    """Flip whether the outlet takes new orders and return the new state."""
    await db.execute(
        update(Outlet)
        .where(Outlet.id == outlet.id)
        .values(is_open=not_(Outlet.is_open))
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    await db.refresh(outlet)
    logger.info("[OUTLETS] outlet_id=%s is now %s", outlet.id, "open" if outlet.is_open else "closed")
    return outlet.is_open


async def list_outlets(db: AsyncSession, university_id: int | None = None) -> list[Outlet]:
    """Verified outlets, optionally limited to one university."""
    query = select(Outlet).where(Outlet.is_verified.is_(True))
    if university_id is not None:
        query = query.where(Outlet.university_id == university_id)
    rows = await db.scalars(query.order_by(Outlet.name.asc()))
    return list(rows.all())


async def list_available_menu(db: AsyncSession, outlet_id: int) -> dict[str, list[MenuItem]]:
    """Return available menu items grouped by category in name order."""
    rows = await db.scalars(
        select(MenuItem)
        .where(MenuItem.outlet_id == outlet_id, MenuItem.is_available.is_(True))
        .order_by(MenuItem.category.asc(), MenuItem.name.asc())
    )
    grouped: dict[str, list[MenuItem]] = {}
    for item in rows.all():
        grouped.setdefault(item.category, []).append(item)
    return grouped


def _day_bounds(selected: date | None) -> tuple[datetime, datetime]:
    if selected is None:
        return day_window_utc()
    start = datetime.combine(selected, time.min, tzinfo=timezone.utc)
    return start, start + timedelta(days=1)


async def list_outlet_orders(
    db: AsyncSession,
    *,
    outlet_id: int,
    status: str | None = None,
    selected_date: date | None = None,
) -> list[Order]:
    """Paid orders of one outlet for a calendar day, newest first."""
    start, end = _day_bounds(selected_date)
    conditions = [
        Order.outlet_id == outlet_id,
        Order.payment_status == "paid",
        Order.created_at >= start,
        Order.created_at < end,
    ]
    if status:
        conditions.append(Order.status == status)
    rows = await db.scalars(select(Order).where(*conditions).order_by(Order.created_at.desc(), Order.id.desc()))
    return list(rows.all())


async def build_dashboard(db: AsyncSession, outlet: Outlet) -> DashboardStats:
    orders = await list_outlet_orders(db, outlet_id=outlet.id)
    return DashboardStats(
        outlet_name=outlet.name,
        is_open=outlet.is_open,
        today_orders=len(orders),
        today_revenue=sum(order.total_amount for order in orders),
        pending_orders=sum(1 for order in orders if order.status == "pending"),
        active_orders=sum(1 for order in orders if order.status in {"accepted", "preparing"}),
        ready_orders=sum(1 for order in orders if order.status == "ready"),
        completed_orders=sum(1 for order in orders if order.status == "completed"),
    )


async def record_completion(db: AsyncSession, order: Order) -> None:
    """Bump outlet stats and the student's favourite counters for a completed order."""
    await db.execute(
        update(Outlet)
        .where(Outlet.id == order.outlet_id)
        .values(
            total_orders=Outlet.total_orders + 1,
            total_revenue=Outlet.total_revenue + order.total_amount,
        )
        .execution_options(synchronize_session=False)
    )

    for item in order.items:
        if item.menu_item_id is None:
            continue
        favorite: FavoriteItem | None = await db.scalar(
            select(FavoriteItem).where(
                FavoriteItem.user_id == order.user_id,
                FavoriteItem.menu_item_id == item.menu_item_id,
            )
        )
        if favorite is None:
            db.add(FavoriteItem(user_id=order.user_id, menu_item_id=item.menu_item_id, order_count=1))
        else:
            favorite.order_count += 1

    await db.commit()
    logger.info("[ORDERS] Recorded completion of order_id=%s for outlet_id=%s", order.id, order.outlet_id)


def _months_back(moment: datetime, months: int) -> datetime:
    month_index = moment.year * 12 + moment.month - 1 - months
    year, month_zero = divmod(month_index, 12)
    month = month_zero + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def period_start(moment: datetime, period: str) -> datetime:
    """Step back one ``period`` from ``moment``; month ends are clamped (Mar 31 -> Feb 28)."""
    if period == "week":
        return moment - timedelta(days=7)
    if period == "month":
        return _months_back(moment, 1)
    if period == "year":
        return _months_back(moment, 12)
    raise ValueError(f"Unknown analytics period: {period}")


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def percent_change(current: int, previous: int) -> int:
    """Whole-percent change against ``previous``; 0 when there is nothing to compare with."""
    if previous <= 0:
        return 0
    return _round_half_up((current - previous) / previous * 100)


async def _revenue_orders(
    db: AsyncSession,
    outlet_id: int,
    start: datetime,
    end: datetime | None = None,
) -> list[Order]:
    conditions = [
        Order.outlet_id == outlet_id,
        Order.payment_status == "paid",
        Order.status != "cancelled",
        Order.created_at >= start,
    ]
    if end is not None:
        conditions.append(Order.created_at < end)
    rows = await db.scalars(select(Order).where(*conditions).order_by(Order.created_at.asc(), Order.id.asc()))
    return list(rows.all())


def _chart_points(orders: list[Order]) -> list[ChartPoint]:
    daily: dict[str, ChartPoint] = {}
    for order in orders:
        day = as_utc(order.created_at).date().isoformat()
        point = daily.setdefault(day, ChartPoint(date=day, revenue=0, orders=0))
        point.revenue += order.total_amount
        point.orders += 1
    return [daily[day] for day in sorted(daily)]


def _top_items(orders: list[Order]) -> list[TopItem]:
    sales: dict[int | str, TopItem] = {}
    for order in orders:
        for item in order.items:
            key = item.menu_item_id if item.menu_item_id is not None else item.name
            entry = sales.setdefault(key, TopItem(name=item.name, quantity=0, revenue=0))
            entry.quantity += item.quantity
            entry.revenue += item.price * item.quantity
    ranked = sorted(sales.values(), key=lambda entry: entry.quantity, reverse=True)
    return ranked[:TOP_ITEMS_LIMIT]


async def build_analytics(
    db: AsyncSession,
    *,
    outlet_id: int,
    period: str = "week",
    now: datetime | None = None,
) -> AnalyticsResponse:
    """Revenue for the trailing ``period`` compared with the period before it.

    The current window starts at midnight UTC one period ago and runs to now;
    the previous window is the same length and ends where the current one
    starts. Cancelled and unpaid orders are left out.
    """
    now = as_utc(now) or utcnow()
    start = period_start(now, period).replace(hour=0, minute=0, second=0, microsecond=0)
    previous_start = period_start(start, period)

    orders = await _revenue_orders(db, outlet_id, start)
    previous_orders = await _revenue_orders(db, outlet_id, previous_start, start)

    total_revenue = sum(order.total_amount for order in orders)
    previous_revenue = sum(order.total_amount for order in previous_orders)
    total_orders = len(orders)
    previous_order_count = len(previous_orders)

    return AnalyticsResponse(
        period=period,
        summary=AnalyticsSummary(
            total_revenue=total_revenue,
            previous_revenue=previous_revenue,
            revenue_change=percent_change(total_revenue, previous_revenue),
            total_orders=total_orders,
            previous_order_count=previous_order_count,
            orders_change=percent_change(total_orders, previous_order_count),
            avg_order_value=_round_half_up(total_revenue / total_orders) if total_orders else 0,
        ),
        chart_data=_chart_points(orders),
        top_items=_top_items(orders),
    )
