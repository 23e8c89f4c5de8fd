"""Order placement tests: totals, numbering and menu validation."""

import asyncio
from pathlib import Path

from fastapi.testclient import TestClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from canteen.core.config import settings
from canteen.core.security import get_password_hash
from canteen.db import session as db_session
from canteen.db.base import Base
from canteen.main import app
from canteen.models.menu import MenuItem
from canteen.models.order import Order
from canteen.models.outlet import Outlet
from canteen.models.university import University
from canteen.services.order_service import LineSnapshot, compute_totals, format_order_number


def _build_test_engine(db_file: Path) -> AsyncEngine:
    return create_async_engine(f"sqlite+aiosqlite:///{db_file}", poolclass=NullPool)


async def _seed_outlet(engine: AsyncEngine, testing_session_local: async_sessionmaker, *, is_open: bool = True) -> dict[str, int]:
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.create_all)
    async with testing_session_local() as db:
        university = University(name="Bennett University", code="bu", email_domain="bennett.edu.in")
        outlet = Outlet(
            university=university,
            name="Chai Point",
            owner_email="chai@example.com",
            owner_password_hash=get_password_hash("secret123"),
            is_open=is_open,
            is_verified=True,
        )
        other_outlet = Outlet(university=university, name="Dosa Corner", owner_email="dosa@example.com", is_open=True, is_verified=True)
        masala_chai = MenuItem(outlet=outlet, name="Masala Chai", price=2000, category="Drinks", prep_time=5)
        samosa = MenuItem(outlet=outlet, name="Samosa", price=1500, category="Snacks", prep_time=10)
        sold_out = MenuItem(outlet=outlet, name="Vada Pav", price=2500, category="Snacks", prep_time=8, is_available=False)
        foreign = MenuItem(outlet=other_outlet, name="Plain Dosa", price=6000, category="Mains", prep_time=15)
        db.add_all([university, outlet, other_outlet, masala_chai, samosa, sold_out, foreign])
        await db.commit()
        return {
            "outlet_id": outlet.id,
            "chai_id": masala_chai.id,
            "samosa_id": samosa.id,
            "sold_out_id": sold_out.id,
            "foreign_id": foreign.id,
        }


def _student_headers(client: TestClient, email: str = "student@bennett.edu.in") -> dict[str, str]:
    register_response = client.post(
        "/api/v1/auth/register",
        json={"full_name": "Asha Rao", "email": email, "password": "secret123"},
    )
    assert register_response.status_code == 201
    login_response = client.post("/api/v1/auth/login", json={"email": email, "password": "secret123"})
    assert login_response.status_code == 200
    return {"Authorization": f"Bearer {login_response.json()['access_token']}"}


def test_compute_totals_sums_amounts_and_takes_longest_prep_time() -> None:
    lines = [
        LineSnapshot(menu_item_id=1, name="Masala Chai", price=2000, quantity=2, prep_time=5),
        LineSnapshot(menu_item_id=2, name="Samosa", price=1500, quantity=1, prep_time=10),
    ]

    assert compute_totals(lines) == (5500, 10)


def test_compute_totals_defaults_prep_time_when_unknown() -> None:
    lines = [LineSnapshot(menu_item_id=None, name="Water", price=1000, quantity=3, prep_time=None)]

    assert compute_totals(lines) == (3000, 10)


def test_format_order_number_pads_sequence_and_uppercases_campus() -> None:
    assert format_order_number("bu", 42) == f"{settings.marketplace_code}-BU-000042"
    assert format_order_number(None, 7) == f"{settings.marketplace_code}-{settings.default_university_code}-000007"


def test_student_order_snapshots_items_and_totals(tmp_path: Path, monkeypatch) -> None:
    engine = _build_test_engine(tmp_path / "test_order_create.db")
    testing_session_local = async_sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    ids = asyncio.run(_seed_outlet(engine, testing_session_local))
    monkeypatch.setattr(db_session, "engine", engine)
    monkeypatch.setattr(db_session, "SessionLocal", testing_session_local)
    monkeypatch.setattr(settings, "timer_sync_interval_seconds", 0)

    with TestClient(app) as client:
        headers = _student_headers(client)
        first = client.post(
            "/api/v1/orders",
            json={
                "outlet_id": ids["outlet_id"],
                "items": [{"menu_item_id": ids["chai_id"], "quantity": 2}, {"menu_item_id": ids["samosa_id"], "quantity": 1}],
                "special_instructions": "Less sugar",
            },
            headers=headers,
        )
        second = client.post(
            "/api/v1/orders",
            json={"outlet_id": ids["outlet_id"], "items": [{"menu_item_id": ids["samosa_id"]}]},
            headers=headers,
        )

    assert first.status_code == 201
    body = first.json()
    assert body["status"] == "pending"
    assert body["payment"]["status"] == "pending"
    assert body["total_amount"] == 5500
    assert body["total_prep_time"] == 10
    assert body["remaining_seconds"] == 0
    assert [item["name"] for item in body["items"]] == ["Masala Chai", "Samosa"]
    assert body["order_number"] == f"{settings.marketplace_code}-BU-000001"
    assert second.json()["order_number"] == f"{settings.marketplace_code}-BU-000002"


def test_order_rejects_unavailable_or_foreign_items(tmp_path: Path, monkeypatch) -> None:
    engine = _build_test_engine(tmp_path / "test_order_items.db")
    testing_session_local = async_sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    ids = asyncio.run(_seed_outlet(engine, testing_session_local))
    monkeypatch.setattr(db_session, "engine", engine)
    monkeypatch.setattr(db_session, "SessionLocal", testing_session_local)
    monkeypatch.setattr(settings, "timer_sync_interval_seconds", 0)

    with TestClient(app) as client:
        headers = _student_headers(client)
        sold_out = client.post(
            "/api/v1/orders",
            json={"outlet_id": ids["outlet_id"], "items": [{"menu_item_id": ids["sold_out_id"]}]},
            headers=headers,
        )
        foreign = client.post(
            "/api/v1/orders",
            json={"outlet_id": ids["outlet_id"], "items": [{"menu_item_id": ids["foreign_id"]}]},
            headers=headers,
        )
        empty = client.post("/api/v1/orders", json={"outlet_id": ids["outlet_id"], "items": []}, headers=headers)
        missing_outlet = client.post(
            "/api/v1/orders",
            json={"outlet_id": 999, "items": [{"menu_item_id": ids["chai_id"]}]},
            headers=headers,
        )

    assert sold_out.status_code == 400
    assert sold_out.json()["detail"] == f"Item not available: {ids['sold_out_id']}"
    assert foreign.status_code == 400
    assert empty.status_code == 422
    assert missing_outlet.status_code == 404

    async def _count_orders() -> int:
        async with testing_session_local() as db:
            return len((await db.scalars(select(Order))).all())

    assert asyncio.run(_count_orders()) == 0


def test_closed_outlet_does_not_accept_orders(tmp_path: Path, monkeypatch) -> None:
    engine = _build_test_engine(tmp_path / "test_order_closed.db")
    testing_session_local = async_sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    ids = asyncio.run(_seed_outlet(engine, testing_session_local, is_open=False))
    monkeypatch.setattr(db_session, "engine", engine)
    monkeypatch.setattr(db_session, "SessionLocal", testing_session_local)
    monkeypatch.setattr(settings, "timer_sync_interval_seconds", 0)

    with TestClient(app) as client:
        headers = _student_headers(client)
        response = client.post(
            "/api/v1/orders",
            json={"outlet_id": ids["outlet_id"], "items": [{"menu_item_id": ids["chai_id"]}]},
            headers=headers,
        )

    assert response.status_code == 400
    assert response.json()["detail"] == "Outlet is currently closed"


def test_order_requires_student_token(tmp_path: Path, monkeypatch) -> None:
    engine = _build_test_engine(tmp_path / "test_order_auth.db")
    testing_session_local = async_sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    ids = asyncio.run(_seed_outlet(engine, testing_session_local))
    monkeypatch.setattr(db_session, "engine", engine)
    monkeypatch.setattr(db_session, "SessionLocal", testing_session_local)
    monkeypatch.setattr(settings, "timer_sync_interval_seconds", 0)

    with TestClient(app) as client:
        anonymous = client.post(
            "/api/v1/orders",
            json={"outlet_id": ids["outlet_id"], "items": [{"menu_item_id": ids["chai_id"]}]},
        )
        admin_login = client.post("/api/v1/admin/login", json={"email": "chai@example.com", "password": "secret123"})
        outlet_token = admin_login.json()["access_token"]
        with_outlet_token = client.post(
            "/api/v1/orders",
            json={"outlet_id": ids["outlet_id"], "items": [{"menu_item_id": ids["chai_id"]}]},
            headers={"Authorization": f"Bearer {outlet_token}"},
        )

    assert anonymous.status_code == 401
    assert with_outlet_token.status_code == 401


def test_outlet_toggle_controls_whether_orders_are_taken(tmp_path: Path, monkeypatch) -> None:
    engine = _build_test_engine(tmp_path / "test_outlet_toggle.db")
    testing_session_local = async_sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    ids = asyncio.run(_seed_outlet(engine, testing_session_local, is_open=False))
    monkeypatch.setattr(db_session, "engine", engine)
    monkeypatch.setattr(db_session, "SessionLocal", testing_session_local)
    monkeypatch.setattr(settings, "timer_sync_interval_seconds", 0)
    payload = {"outlet_id": ids["outlet_id"], "items": [{"menu_item_id": ids["chai_id"]}]}

    with TestClient(app) as client:
        headers = _student_headers(client)
        admin_login = client.post("/api/v1/admin/login", json={"email": "chai@example.com", "password": "secret123"})
        admin_headers = {"Authorization": f"Bearer {admin_login.json()['access_token']}"}
        while_closed = client.post("/api/v1/orders", json=payload, headers=headers)
        opened = client.put("/api/v1/admin/outlet/toggle-status", headers=admin_headers)
        while_open = client.post("/api/v1/orders", json=payload, headers=headers)
        closed = client.put("/api/v1/admin/outlet/toggle-status", headers=admin_headers)
        after_closing = client.post("/api/v1/orders", json=payload, headers=headers)
        anonymous_toggle = client.put("/api/v1/admin/outlet/toggle-status")

    assert while_closed.status_code == 400
    assert opened.status_code == 200
    assert opened.json() == {"is_open": True, "message": "Outlet is now open"}
    assert while_open.status_code == 201
    assert closed.json() == {"is_open": False, "message": "Outlet is now closed"}
    assert after_closing.status_code == 400
    assert anonymous_toggle.status_code == 401

    async def _is_open() -> bool:
        async with testing_session_local() as db:
            return (await db.get(Outlet, ids["outlet_id"])).is_open

    assert asyncio.run(_is_open()) is False
