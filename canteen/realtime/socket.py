"""WebSocket endpoint exposing the room relay to browsers.

Frames are JSON objects ``{"event": <name>, "data": {...}}`` in both
directions.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from canteen.db import session as db_session
from canteen.models.order import Order
from canteen.realtime.events import TIMER_SYNC, timer_sync_payload
from canteen.realtime.relay import order_room, outlet_room, relay

logger = logging.getLogger(__name__)

router: APIRouter = APIRouter()

ROOM_EVENTS: dict[str, tuple[str, str]] = {
    "join-order-room": ("join", "orderId"),
    "leave-order-room": ("leave", "orderId"),
    "join-outlet-room": ("join", "outletId"),
    "leave-outlet-room": ("leave", "outletId"),
}


def _parse_id(data: Any, key: str) -> int | None:
    if not isinstance(data, dict):
        return None
    value = data.get(key)
    if isinstance(value, bool):
        return None
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return None
    return parsed if parsed > 0 else None


class SocketSubscriber:
    """Relay subscriber bound to one WebSocket connection."""

    def __init__(self, websocket: WebSocket) -> None:
        self.websocket = websocket

    async def send_json(self, data: Any) -> None:
        await self.websocket.send_json(data)


async def _send_error(websocket: WebSocket, message: str) -> None:
    await websocket.send_json({"event": "error", "data": {"message": message}})


async def _send_timer_sync(websocket: WebSocket, order_id: int) -> None:
    async with db_session.SessionLocal() as db:
        order: Order | None = await db.get(Order, order_id)
    if order is None or order.estimated_ready_at is None:
        return
    await websocket.send_json({"event": TIMER_SYNC, "data": timer_sync_payload(order)})


async def _dispatch(subscriber: SocketSubscriber, frame: Any) -> None:
    websocket = subscriber.websocket
    if not isinstance(frame, dict) or not isinstance(frame.get("event"), str):
        await _send_error(websocket, "Malformed frame")
        return
    event: str = frame["event"]
    data = frame.get("data")

    if event in ROOM_EVENTS:
        action, key = ROOM_EVENTS[event]
        entity_id = _parse_id(data, key)
        if entity_id is None:
            await _send_error(websocket, f"Invalid {key}")
            return
        room = order_room(entity_id) if key == "orderId" else outlet_room(entity_id)
        if action == "join":
            relay.join(room, subscriber)
            await websocket.send_json({"event": "joined-room", "data": {"room": room}})
        else:
            relay.leave(room, subscriber)
            await websocket.send_json({"event": "left-room", "data": {"room": room}})
        return

    if event == "request-timer-sync":
        order_id = _parse_id(data, "orderId")
        if order_id is None:
            await _send_error(websocket, "Invalid orderId")
            return
        try:
            await _send_timer_sync(websocket, order_id)
        except Exception:
            logger.exception("[REALTIME] timer sync request failed for order_id=%s", order_id)
        return

    await _send_error(websocket, f"Unknown event: {event}")


@router.websocket("/ws")
async def realtime_socket(websocket: WebSocket) -> None:
    await websocket.accept()
    subscriber = SocketSubscriber(websocket)
    logger.info("[REALTIME] client connected")
    try:
        while True:
            try:
                frame = await websocket.receive_json()
            except ValueError:
                await _send_error(websocket, "Malformed frame")
                continue
            await _dispatch(subscriber, frame)
    except WebSocketDisconnect:
        logger.info("[REALTIME] client disconnected")
    finally:
        relay.leave_all(subscriber)
