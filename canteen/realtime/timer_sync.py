"""Background sweep that re-publishes countdowns of orders in the kitchen."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from canteen.models.order import Order
from canteen.realtime.events import publish_timer_sync
from canteen.realtime.relay import RoomRelay
from canteen.utils.time import utcnow

logger = logging.getLogger(__name__)

SYNCED_STATUSES: tuple[str, ...] = ("accepted", "preparing")


class TimerSyncBroadcaster:
    """Publish ``timer-sync`` to every in-kitchen order room on a fixed interval.

    Corrects client countdown drift after clock skew, missed events or
    reconnects. A failed tick is logged and the next one runs as scheduled.
    """

    def __init__(
        self,
        relay: RoomRelay,
        session_factory: Callable[[], AsyncSession],
        interval_seconds: float = 30.0,
    ) -> None:
        self.relay = relay
        self.session_factory = session_factory
        self.interval_seconds = interval_seconds
        self._task: asyncio.Task[None] | None = None

    async def tick(self, now: datetime | None = None) -> int:
        """Run one sweep and return how many orders were synced."""
        now = now or utcnow()
        async with self.session_factory() as db:
            rows = await db.scalars(
                select(Order).where(
                    Order.status.in_(SYNCED_STATUSES),
                    Order.payment_status == "paid",
                    Order.timer_started_at.is_not(None),
                )
            )
            orders = list(rows.all())

        for order in orders:
            await publish_timer_sync(self.relay, order, now)
        return len(orders)

    async def run_forever(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                synced = await self.tick()
            except Exception:
                logger.warning("[TIMER-SYNC] tick failed; retrying next interval", exc_info=True)
                continue
            if synced:
                logger.debug("[TIMER-SYNC] synced %s orders", synced)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task[None]:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run_forever(), name="timer-sync")
            logger.info("[TIMER-SYNC] started (every %ss)", self.interval_seconds)
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("[TIMER-SYNC] stopped")
