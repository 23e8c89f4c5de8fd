"""Student order endpoints."""

import logging
import math

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from canteen.core.config import settings
from canteen.core.security import get_current_student
from canteen.db.session import get_db
from canteen.models.order import ORDER_STATUSES, Order
from canteen.models.user import User
from canteen.realtime.events import publish_new_order
from canteen.realtime.relay import relay
from canteen.schemas.order import OrderCreate, OrderListResponse, OrderRead
from canteen.services import order_service
from canteen.services.order_service import ItemUnavailableError, OutletClosedError, OutletNotFoundError
from canteen.services.payment_service import mark_paid

router: APIRouter = APIRouter()
logger = logging.getLogger(__name__)


@router.post("", response_model=OrderRead, status_code=status.HTTP_201_CREATED)
async def create_order(
    payload: OrderCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_student),
) -> OrderRead:
    """Place an order; it stays invisible to the outlet until paid."""
    try:
        order: Order = await order_service.create_order(
            db,
            user_id=current_user.id,
            outlet_id=payload.outlet_id,
            items=payload.items,
            special_instructions=payload.special_instructions,
        )
    except OutletNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Outlet not found") from exc
    except OutletClosedError as exc:
        raise HTTPException(status_code=400, detail="Outlet is currently closed") from exc
    except ItemUnavailableError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return OrderRead.from_order(order)


@router.get("", response_model=OrderListResponse)
async def list_my_orders(
    status_filter: str | None = Query(default=None, alias="status"),
    limit: int = Query(default=10, ge=1, le=100),
    page: int = Query(default=1, ge=1),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_student),
) -> OrderListResponse:
    if status_filter is not None and status_filter not in ORDER_STATUSES:
        raise HTTPException(status_code=400, detail="Unknown order status")
    orders, total = await order_service.list_student_orders(
        db,
        user_id=current_user.id,
        status=status_filter,
        limit=limit,
        page=page,
    )
    return OrderListResponse(
        count=len(orders),
        total=total,
        pages=math.ceil(total / limit),
        data=[OrderRead.from_order(order) for order in orders],
    )


@router.get("/active", response_model=list[OrderRead])
async def list_active_orders(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_student),
) -> list[OrderRead]:
    """Paid orders that are still moving through the kitchen."""
    orders = await order_service.list_active_orders(db, user_id=current_user.id)
    return [OrderRead.from_order(order) for order in orders]


@router.get("/{order_id}", response_model=OrderRead)
async def get_order(
    order_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_student),
) -> OrderRead:
    order = await order_service.get_student_order(db, order_id=order_id, user_id=current_user.id)
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")
    return OrderRead.from_order(order)


@router.post("/{order_id}/dev-pay", response_model=OrderRead)
async def dev_pay(
    order_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_student),
) -> OrderRead:
    """Simulate a successful payment. Only available with DEBUG=1."""
    if not settings.debug:
        raise HTTPException(status_code=404, detail="Not found")
    owned = await order_service.get_student_order(db, order_id=order_id, user_id=current_user.id)
    if owned is None:
        raise HTTPException(status_code=404, detail="Order not found or already paid")
    order = await mark_paid(db, payment_id=f"DEV-{order_id}", order_id=order_id)
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found or already paid")
    await publish_new_order(relay, order)
    return OrderRead.from_order(order)
