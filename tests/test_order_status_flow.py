"""Order lifecycle tests for the state machine and the outlet admin endpoints."""

import asyncio
from datetime import date, datetime, timedelta, timezone
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from canteen.core.config import settings
from canteen.core.security import get_password_hash
from canteen.db import session as db_session
from canteen.db.base import Base
from canteen.main import app
from canteen.models.order import ORDER_STATUSES, Order, OrderItem
from canteen.models.outlet import Outlet
from canteen.models.university import University
from canteen.models.user import FavoriteItem, User
from canteen.services.order_status import (
    ACTIVE_STATUSES,
    DEFAULT_CANCELLATION_REASON,
    OrderNotInExpectedState,
    TERMINAL_STATUSES,
    TRANSITIONS,
    accept_order,
    can_transition,
    cancel_order,
    complete_order,
    mark_order_ready,
)
from canteen.utils.time import as_utc

ACCEPTED_AT = datetime(2026, 3, 2, 12, 0, 0, tzinfo=timezone.utc)


def _build_test_engine(db_file: Path) -> AsyncEngine:
    return create_async_engine(f"sqlite+aiosqlite:///{db_file}", poolclass=NullPool)


async def _seed(
    engine: AsyncEngine,
    testing_session_local: async_sessionmaker,
    *,
    status: str = "pending",
    payment_status: str = "paid",
) -> dict[str, int]:
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.create_all)
    async with testing_session_local() as db:
        university = University(name="Bennett University", code="BU", email_domain="bennett.edu.in")
        outlet = Outlet(
            university=university,
            name="Chai Point",
            owner_email="chai@example.com",
            owner_password_hash=get_password_hash("secret123"),
            is_open=True,
            is_verified=True,
        )
        other_outlet = Outlet(
            university=university,
            name="Dosa Corner",
            owner_email="dosa@example.com",
            owner_password_hash=get_password_hash("secret123"),
            is_open=True,
            is_verified=True,
        )
        student = User(full_name="Asha Rao", email="asha@bennett.edu.in", password_hash=get_password_hash("secret123"))
        db.add_all([university, outlet, other_outlet, student])
        await db.flush()
        order = Order(
            user_id=student.id,
            outlet_id=outlet.id,
            order_date=date.today(),
            order_seq=1,
            order_number="CC-BU-000001",
            status=status,
            payment_status=payment_status,
            total_amount=5500,
            total_prep_time=10,
            items=[
                OrderItem(position=0, menu_item_id=11, name="Masala Chai", price=2000, quantity=2, prep_time=5),
                OrderItem(position=1, menu_item_id=12, name="Samosa", price=1500, quantity=1, prep_time=10),
            ],
        )
        db.add(order)
        await db.commit()
        return {"order_id": order.id, "outlet_id": outlet.id, "other_outlet_id": other_outlet.id, "user_id": student.id}


def _setup(tmp_path: Path, name: str, **seed_kwargs) -> tuple[AsyncEngine, async_sessionmaker, dict[str, int]]:
    engine = _build_test_engine(tmp_path / name)
    testing_session_local = async_sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    ids = asyncio.run(_seed(engine, testing_session_local, **seed_kwargs))
    return engine, testing_session_local, ids


async def _load(testing_session_local: async_sessionmaker, order_id: int) -> Order:
    async with testing_session_local() as db:
        order = await db.get(Order, order_id)
        assert order is not None
        return order


def _admin_headers(client: TestClient, email: str = "chai@example.com") -> dict[str, str]:
    response = client.post("/api/v1/admin/login", json={"email": email, "password": "secret123"})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


def test_transition_table_matches_lifecycle() -> None:
    assert can_transition("pending", "accept")
    assert not can_transition("accepted", "accept")
    assert can_transition("accepted", "mark_ready")
    assert can_transition("preparing", "mark_ready")
    assert not can_transition("pending", "mark_ready")
    assert can_transition("ready", "complete")
    assert not can_transition("accepted", "complete")
    for status in ("pending", "accepted", "preparing", "ready"):
        assert can_transition(status, "cancel")
    for status in TERMINAL_STATUSES:
        assert not any(can_transition(status, event) for event in TRANSITIONS)
    assert ACTIVE_STATUSES == ["pending", "accepted", "preparing", "ready"]
    assert set(ACTIVE_STATUSES) | set(TERMINAL_STATUSES) == set(ORDER_STATUSES)


def test_accept_starts_timer_from_total_prep_time(tmp_path: Path) -> None:
    _, testing_session_local, ids = _setup(tmp_path, "test_accept_timer.db")

    async def _accept() -> Order:
        async with testing_session_local() as db:
            return await accept_order(db, order_id=ids["order_id"], outlet_id=ids["outlet_id"], now=ACCEPTED_AT)

    order = asyncio.run(_accept())

    assert order.status == "accepted"
    assert as_utc(order.timer_started_at) == ACCEPTED_AT
    assert as_utc(order.estimated_ready_at) == ACCEPTED_AT + timedelta(minutes=10)
    stored = asyncio.run(_load(testing_session_local, ids["order_id"]))
    assert as_utc(stored.estimated_ready_at) == ACCEPTED_AT + timedelta(minutes=10)


def test_mark_ready_on_pending_order_changes_nothing(tmp_path: Path) -> None:
    _, testing_session_local, ids = _setup(tmp_path, "test_ready_pending.db")

    async def _mark_ready() -> None:
        async with testing_session_local() as db:
            await mark_order_ready(db, order_id=ids["order_id"], outlet_id=ids["outlet_id"])

    with pytest.raises(OrderNotInExpectedState):
        asyncio.run(_mark_ready())

    stored = asyncio.run(_load(testing_session_local, ids["order_id"]))
    assert stored.status == "pending"
    assert stored.ready_at is None
    assert stored.timer_started_at is None


def test_unpaid_order_cannot_be_accepted(tmp_path: Path) -> None:
    _, testing_session_local, ids = _setup(tmp_path, "test_unpaid_accept.db", payment_status="pending")

    async def _accept() -> None:
        async with testing_session_local() as db:
            await accept_order(db, order_id=ids["order_id"], outlet_id=ids["outlet_id"])

    with pytest.raises(OrderNotInExpectedState):
        asyncio.run(_accept())
    assert asyncio.run(_load(testing_session_local, ids["order_id"])).status == "pending"


def test_other_outlet_cannot_touch_order(tmp_path: Path) -> None:
    _, testing_session_local, ids = _setup(tmp_path, "test_foreign_outlet.db")

    async def _cancel() -> None:
        async with testing_session_local() as db:
            await cancel_order(db, order_id=ids["order_id"], outlet_id=ids["other_outlet_id"])

    with pytest.raises(OrderNotInExpectedState):
        asyncio.run(_cancel())
    assert asyncio.run(_load(testing_session_local, ids["order_id"])).status == "pending"


@pytest.mark.parametrize("status", ["pending", "accepted", "preparing", "ready"])
def test_cancel_is_allowed_from_every_active_status(tmp_path: Path, status: str) -> None:
    _, testing_session_local, ids = _setup(tmp_path, f"test_cancel_{status}.db", status=status)

    async def _cancel() -> Order:
        async with testing_session_local() as db:
            return await cancel_order(db, order_id=ids["order_id"], outlet_id=ids["outlet_id"], reason="  ")

    order = asyncio.run(_cancel())

    assert order.status == "cancelled"
    assert order.cancellation_reason == DEFAULT_CANCELLATION_REASON


@pytest.mark.parametrize("status", ["completed", "cancelled"])
def test_terminal_orders_cannot_be_cancelled(tmp_path: Path, status: str) -> None:
    _, testing_session_local, ids = _setup(tmp_path, f"test_cancel_terminal_{status}.db", status=status)

    async def _cancel() -> None:
        async with testing_session_local() as db:
            await cancel_order(db, order_id=ids["order_id"], outlet_id=ids["outlet_id"], reason="Out of stock")

    with pytest.raises(OrderNotInExpectedState):
        asyncio.run(_cancel())
    stored = asyncio.run(_load(testing_session_local, ids["order_id"]))
    assert stored.status == status
    assert stored.cancellation_reason is None


def test_concurrent_accepts_yield_exactly_one_winner(tmp_path: Path) -> None:
    _, testing_session_local, ids = _setup(tmp_path, "test_accept_race.db")

    async def _race() -> list[object]:
        async with testing_session_local() as first, testing_session_local() as second:
            return await asyncio.gather(
                accept_order(first, order_id=ids["order_id"], outlet_id=ids["outlet_id"], now=ACCEPTED_AT),
                accept_order(
                    second,
                    order_id=ids["order_id"],
                    outlet_id=ids["outlet_id"],
                    now=ACCEPTED_AT + timedelta(seconds=5),
                ),
                return_exceptions=True,
            )

    results = asyncio.run(_race())

    winners = [result for result in results if isinstance(result, Order)]
    losers = [result for result in results if isinstance(result, OrderNotInExpectedState)]
    assert len(winners) == 1
    assert len(losers) == 1
    stored = asyncio.run(_load(testing_session_local, ids["order_id"]))
    assert stored.status == "accepted"
    assert as_utc(stored.timer_started_at) == as_utc(winners[0].timer_started_at)


def test_outlet_progresses_order_through_full_lifecycle(tmp_path: Path, monkeypatch) -> None:
    engine, testing_session_local, ids = _setup(tmp_path, "test_admin_lifecycle.db")
    monkeypatch.setattr(db_session, "engine", engine)
    monkeypatch.setattr(db_session, "SessionLocal", testing_session_local)
    monkeypatch.setattr(settings, "timer_sync_interval_seconds", 0)
    order_id = ids["order_id"]

    with TestClient(app) as client:
        headers = _admin_headers(client)
        early_complete = client.put(f"/api/v1/admin/orders/{order_id}/complete", headers=headers)
        accepted = client.put(f"/api/v1/admin/orders/{order_id}/accept", headers=headers)
        accepted_again = client.put(f"/api/v1/admin/orders/{order_id}/accept", headers=headers)
        ready = client.put(f"/api/v1/admin/orders/{order_id}/ready", headers=headers)
        completed = client.put(f"/api/v1/admin/orders/{order_id}/complete", headers=headers)
        late_cancel = client.put(f"/api/v1/admin/orders/{order_id}/cancel", json={"reason": "Too late"}, headers=headers)
        dashboard = client.get("/api/v1/admin/dashboard", headers=headers)

    assert early_complete.status_code == 404
    assert early_complete.json()["detail"] == "Order not found or already processed"

    assert accepted.status_code == 200
    accepted_body = accepted.json()
    assert accepted_body["status"] == "accepted"
    assert 590 <= accepted_body["remaining_seconds"] <= 600
    assert accepted_body["is_delayed"] is False

    assert accepted_again.status_code == 404
    assert ready.status_code == 200
    assert ready.json()["status"] == "ready"
    assert ready.json()["remaining_seconds"] == 0
    assert completed.status_code == 200
    assert completed.json()["completed_at"] is not None
    assert late_cancel.status_code == 404
    assert dashboard.json()["completed_orders"] == 1

    async def _bookkeeping() -> tuple[Outlet, list[FavoriteItem]]:
        async with testing_session_local() as db:
            outlet = await db.get(Outlet, ids["outlet_id"])
            favorites = (await db.scalars(select(FavoriteItem).where(FavoriteItem.user_id == ids["user_id"]))).all()
            return outlet, favorites

    outlet, favorites = asyncio.run(_bookkeeping())
    assert outlet.total_orders == 1
    assert outlet.total_revenue == 5500
    assert len(favorites) == 2


def test_cancel_records_reason_and_admin_listing_filters_by_status(tmp_path: Path, monkeypatch) -> None:
    engine, testing_session_local, ids = _setup(tmp_path, "test_admin_cancel.db", status="accepted")
    monkeypatch.setattr(db_session, "engine", engine)
    monkeypatch.setattr(db_session, "SessionLocal", testing_session_local)
    monkeypatch.setattr(settings, "timer_sync_interval_seconds", 0)
    order_id = ids["order_id"]

    with TestClient(app) as client:
        headers = _admin_headers(client)
        foreign_headers = _admin_headers(client, "dosa@example.com")
        foreign_cancel = client.put(f"/api/v1/admin/orders/{order_id}/cancel", headers=foreign_headers)
        cancelled = client.put(
            f"/api/v1/admin/orders/{order_id}/cancel",
            json={"reason": "Out of milk"},
            headers=headers,
        )
        cancelled_list = client.get("/api/v1/admin/orders", params={"status": "cancelled"}, headers=headers)
        pending_list = client.get("/api/v1/admin/orders", params={"status": "pending"}, headers=headers)
        bad_filter = client.get("/api/v1/admin/orders", params={"status": "lost"}, headers=headers)

    assert foreign_cancel.status_code == 404
    assert cancelled.status_code == 200
    assert cancelled.json()["cancellation_reason"] == "Out of milk"
    assert [order["id"] for order in cancelled_list.json()] == [order_id]
    assert pending_list.json() == []
    assert bad_filter.status_code == 400


def test_admin_endpoints_require_outlet_token(tmp_path: Path, monkeypatch) -> None:
    engine, testing_session_local, ids = _setup(tmp_path, "test_admin_auth.db")
    monkeypatch.setattr(db_session, "engine", engine)
    monkeypatch.setattr(db_session, "SessionLocal", testing_session_local)
    monkeypatch.setattr(settings, "timer_sync_interval_seconds", 0)

    with TestClient(app) as client:
        anonymous = client.put(f"/api/v1/admin/orders/{ids['order_id']}/accept")
        bad_password = client.post("/api/v1/admin/login", json={"email": "chai@example.com", "password": "nope"})

    assert anonymous.status_code == 401
    assert bad_password.status_code == 401
    assert asyncio.run(_load(testing_session_local, ids["order_id"])).status == "pending"


def test_unpaid_orders_are_hidden_from_the_outlet(tmp_path: Path, monkeypatch) -> None:
    engine, testing_session_local, ids = _setup(tmp_path, "test_admin_unpaid.db", payment_status="pending")
    monkeypatch.setattr(db_session, "engine", engine)
    monkeypatch.setattr(db_session, "SessionLocal", testing_session_local)
    monkeypatch.setattr(settings, "timer_sync_interval_seconds", 0)

    with TestClient(app) as client:
        headers = _admin_headers(client)
        listing = client.get("/api/v1/admin/orders", headers=headers)
        dashboard = client.get("/api/v1/admin/dashboard", headers=headers)
        accept = client.put(f"/api/v1/admin/orders/{ids['order_id']}/accept", headers=headers)

    assert listing.json() == []
    assert dashboard.json()["today_orders"] == 0
    assert accept.status_code == 404
