"""Outlet admin endpoints: login, dashboard, analytics, opening hours toggle and order lifecycle."""

import logging
from datetime import date

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from canteen.core.security import OUTLET, create_access_token, get_current_outlet, verify_password
from canteen.db.session import get_db
from canteen.models.order import ORDER_STATUSES, Order
from canteen.models.outlet import Outlet
from canteen.realtime.events import publish_order_accepted, publish_order_cancelled, publish_order_ready
from canteen.realtime.relay import relay
from canteen.schemas.analytics import AnalyticsResponse
from canteen.schemas.auth import LoginRequest, OutletLoginResponse
from canteen.schemas.order import CancelRequest, DashboardStats, OrderRead
from canteen.schemas.outlet import OutletStatusResponse
from canteen.services import order_status
from canteen.services.order_status import OrderNotInExpectedState
from canteen.services.outlet_service import (
    ANALYTICS_PERIODS,
    build_analytics,
    build_dashboard,
    get_outlet_by_owner_email,
    list_outlet_orders,
    record_completion,
    toggle_outlet_open,
)

router: APIRouter = APIRouter()
logger = logging.getLogger(__name__)

NOT_FOUND_DETAIL: str = "Order not found or already processed"


@router.post("/login", response_model=OutletLoginResponse)
async def admin_login(payload: LoginRequest, db: AsyncSession = Depends(get_db)) -> OutletLoginResponse:
    outlet: Outlet | None = await get_outlet_by_owner_email(db, payload.email)
    if outlet is None or not verify_password(payload.password, outlet.owner_password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    if not outlet.is_verified:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Outlet pending verification")
    return OutletLoginResponse(
        access_token=create_access_token(outlet.id, OUTLET),
        outlet_id=outlet.id,
        outlet_name=outlet.name,
    )


@router.get("/dashboard", response_model=DashboardStats)
async def dashboard(
    db: AsyncSession = Depends(get_db),
    outlet: Outlet = Depends(get_current_outlet),
) -> DashboardStats:
    return await build_dashboard(db, outlet)


@router.put("/outlet/toggle-status", response_model=OutletStatusResponse)
async def toggle_status(
    db: AsyncSession = Depends(get_db),
    outlet: Outlet = Depends(get_current_outlet),
) -> OutletStatusResponse:
    """Open or close the outlet for new orders."""
    is_open = await toggle_outlet_open(db, outlet)
    return OutletStatusResponse(is_open=is_open, message=f"Outlet is now {'open' if is_open else 'closed'}")


@router.get("/analytics", response_model=AnalyticsResponse)
async def analytics(
    period: str = Query(default="week"),
    db: AsyncSession = Depends(get_db),
    outlet: Outlet = Depends(get_current_outlet),
) -> AnalyticsResponse:
    if period not in ANALYTICS_PERIODS:
        raise HTTPException(status_code=400, detail="Unknown analytics period")
    return await build_analytics(db, outlet_id=outlet.id, period=period)


@router.get("/orders", response_model=list[OrderRead])
async def list_orders(
    status_filter: str | None = Query(default=None, alias="status"),
    selected_date: date | None = Query(default=None, alias="date"),
    db: AsyncSession = Depends(get_db),
    outlet: Outlet = Depends(get_current_outlet),
) -> list[OrderRead]:
    """Paid orders for one day (default today), newest first."""
    if status_filter is not None and status_filter not in ORDER_STATUSES:
        raise HTTPException(status_code=400, detail="Unknown order status")
    orders = await list_outlet_orders(db, outlet_id=outlet.id, status=status_filter, selected_date=selected_date)
    return [OrderRead.from_order(order) for order in orders]


@router.put("/orders/{order_id}/accept", response_model=OrderRead)
async def accept_order(
    order_id: int,
    db: AsyncSession = Depends(get_db),
    outlet: Outlet = Depends(get_current_outlet),
) -> OrderRead:
    """Accept a pending order and start its preparation timer."""
    try:
        order: Order = await order_status.accept_order(db, order_id=order_id, outlet_id=outlet.id)
    except OrderNotInExpectedState as exc:
        raise HTTPException(status_code=404, detail=NOT_FOUND_DETAIL) from exc
    await publish_order_accepted(relay, order)
    return OrderRead.from_order(order)


@router.put("/orders/{order_id}/ready", response_model=OrderRead)
async def mark_ready(
    order_id: int,
    db: AsyncSession = Depends(get_db),
    outlet: Outlet = Depends(get_current_outlet),
) -> OrderRead:
    try:
        order: Order = await order_status.mark_order_ready(db, order_id=order_id, outlet_id=outlet.id)
    except OrderNotInExpectedState as exc:
        raise HTTPException(status_code=404, detail=NOT_FOUND_DETAIL) from exc
    await publish_order_ready(relay, order)
    return OrderRead.from_order(order)


@router.put("/orders/{order_id}/complete", response_model=OrderRead)
async def complete(
    order_id: int,
    db: AsyncSession = Depends(get_db),
    outlet: Outlet = Depends(get_current_outlet),
) -> OrderRead:
    """Mark a ready order as picked up and update stats and favourites."""
    try:
        order: Order = await order_status.complete_order(db, order_id=order_id, outlet_id=outlet.id)
    except OrderNotInExpectedState as exc:
        raise HTTPException(status_code=404, detail=NOT_FOUND_DETAIL) from exc
    await record_completion(db, order)
    return OrderRead.from_order(order)


@router.put("/orders/{order_id}/cancel", response_model=OrderRead)
async def cancel(
    order_id: int,
    payload: CancelRequest | None = Body(default=None),
    db: AsyncSession = Depends(get_db),
    outlet: Outlet = Depends(get_current_outlet),
) -> OrderRead:
    reason = payload.reason if payload is not None else None
    try:
        order: Order = await order_status.cancel_order(db, order_id=order_id, outlet_id=outlet.id, reason=reason)
    except OrderNotInExpectedState as exc:
        raise HTTPException(status_code=404, detail=NOT_FOUND_DETAIL) from exc
    await publish_order_cancelled(relay, order)
    return OrderRead.from_order(order)
