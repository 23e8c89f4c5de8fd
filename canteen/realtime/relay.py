"""Room-addressed publish/subscribe relay.

Rooms are plain topic names (``order-<id>``, ``outlet-<id>``). Membership is
in-process state; a multi-instance deployment would put a broker behind the
same ``publish(room, event, payload)`` call.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class Subscriber(Protocol):
    async def send_json(self, data: Any) -> None: ...


def order_room(order_id: int | str) -> str:
    return f"order-{order_id}"


def outlet_room(outlet_id: int | str) -> str:
    return f"outlet-{outlet_id}"


class RoomRelay:
    """Fan events out to every subscriber currently joined to a room."""

    def __init__(self) -> None:
        self._rooms: dict[str, set[Subscriber]] = defaultdict(set)

    def join(self, room: str, subscriber: Subscriber) -> None:
        self._rooms[room].add(subscriber)
        logger.debug("[REALTIME] joined %s (%s members)", room, len(self._rooms[room]))

    def leave(self, room: str, subscriber: Subscriber) -> None:
        members = self._rooms.get(room)
        if members is None:
            return
        members.discard(subscriber)
        if not members:
            del self._rooms[room]
        logger.debug("[REALTIME] left %s", room)

    def leave_all(self, subscriber: Subscriber) -> None:
        for room in [name for name, members in self._rooms.items() if subscriber in members]:
            self.leave(room, subscriber)

    def members(self, room: str) -> set[Subscriber]:
        return set(self._rooms.get(room, ()))

    def rooms_of(self, subscriber: Subscriber) -> set[str]:
        return {name for name, members in self._rooms.items() if subscriber in members}

    async def publish(self, room: str, event: str, payload: dict[str, Any]) -> int:
        """Send ``{"event", "data"}`` to each member of ``room``.

        A subscriber whose send fails is dropped from every room. Returns the
        number of successful deliveries; never raises for delivery failures.
        """
        message = {"event": event, "data": payload}
        delivered = 0
        for subscriber in self.members(room):
            try:
                await subscriber.send_json(message)
            except Exception:
                logger.warning("[REALTIME] dropping subscriber after failed %s send to %s", event, room, exc_info=True)
                self.leave_all(subscriber)
                continue
            delivered += 1
        return delivered

    def clear(self) -> None:
        self._rooms.clear()


relay: RoomRelay = RoomRelay()
