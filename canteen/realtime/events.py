"""Lifecycle event names and payload builders published through the relay."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from canteen.models.order import Order
from canteen.realtime.relay import RoomRelay, order_room, outlet_room
from canteen.schemas.order import OrderRead
from canteen.services.timer import remaining_seconds
from canteen.utils.time import as_utc, utcnow

NEW_ORDER: str = "new-order"
ORDER_ACCEPTED: str = "order-accepted"
ORDER_READY: str = "order-ready"
ORDER_CANCELLED: str = "order-cancelled"
TIMER_SYNC: str = "timer-sync"

READY_MESSAGE: str = "Your order is ready for pickup!"


def _iso(value: datetime | None) -> str | None:
    aware = as_utc(value)
    return aware.isoformat() if aware is not None else None


def timer_sync_payload(order: Order, now: datetime | None = None) -> dict[str, Any]:
    return {
        "orderId": order.id,
        "remainingSeconds": remaining_seconds(order.status, order.estimated_ready_at, now or utcnow()),
        "status": order.status,
    }


async def publish_new_order(relay: RoomRelay, order: Order) -> int:
    snapshot = OrderRead.from_order(order).model_dump(mode="json")
    return await relay.publish(outlet_room(order.outlet_id), NEW_ORDER, {"order": snapshot})


async def publish_order_accepted(relay: RoomRelay, order: Order, now: datetime | None = None) -> int:
    payload = {
        "orderId": order.id,
        "status": order.status,
        "estimatedReadyAt": _iso(order.estimated_ready_at),
        "remainingSeconds": remaining_seconds(order.status, order.estimated_ready_at, now or utcnow()),
    }
    return await relay.publish(order_room(order.id), ORDER_ACCEPTED, payload)


async def publish_order_ready(relay: RoomRelay, order: Order) -> int:
    payload = {"orderId": order.id, "status": order.status, "message": READY_MESSAGE}
    return await relay.publish(order_room(order.id), ORDER_READY, payload)


async def publish_order_cancelled(relay: RoomRelay, order: Order) -> int:
    payload = {"orderId": order.id, "status": order.status, "reason": order.cancellation_reason}
    return await relay.publish(order_room(order.id), ORDER_CANCELLED, payload)


async def publish_timer_sync(relay: RoomRelay, order: Order, now: datetime | None = None) -> int:
    return await relay.publish(order_room(order.id), TIMER_SYNC, timer_sync_payload(order, now))
