"""Order API schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from canteen.models.order import Order
from canteen.services.timer import is_delayed, remaining_seconds
from canteen.utils.time import as_utc, utcnow


class OrderItemPayload(BaseModel):
    """Single order item payload."""

    menu_item_id: int = Field(ge=1)
    quantity: int = Field(default=1, ge=1)


class OrderCreate(BaseModel):
    """Place a new order with one outlet."""

    outlet_id: int = Field(ge=1)
    items: list[OrderItemPayload] = Field(min_length=1)
    special_instructions: str | None = Field(default=None, max_length=200)


class CancelRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=500)


class OrderItemRead(BaseModel):
    """Serialized line item snapshot."""

    menu_item_id: int | None
    name: str
    price: int
    quantity: int
    prep_time: int | None

    model_config = ConfigDict(from_attributes=True)


class PaymentRead(BaseModel):
    status: str
    provider_order_id: str | None = None
    payment_id: str | None = None
    paid_at: datetime | None = None


class OrderRead(BaseModel):
    """Serialized order with the derived countdown fields."""

    id: int
    order_number: str
    user_id: int
    outlet_id: int
    status: str
    items: list[OrderItemRead]
    total_amount: int
    total_prep_time: int
    special_instructions: str | None = None
    payment: PaymentRead
    created_at: datetime
    timer_started_at: datetime | None = None
    estimated_ready_at: datetime | None = None
    ready_at: datetime | None = None
    completed_at: datetime | None = None
    cancellation_reason: str | None = None
    remaining_seconds: int
    is_delayed: bool

    @classmethod
    def from_order(cls, order: Order, now: datetime | None = None) -> OrderRead:
        now = now or utcnow()
        return cls(
            id=order.id,
            order_number=order.order_number,
            user_id=order.user_id,
            outlet_id=order.outlet_id,
            status=order.status,
            items=[OrderItemRead.model_validate(item) for item in order.items],
            total_amount=order.total_amount,
            total_prep_time=order.total_prep_time,
            special_instructions=order.special_instructions,
            payment=PaymentRead(
                status=order.payment_status,
                provider_order_id=order.payment_provider_order_id,
                payment_id=order.payment_id,
                paid_at=as_utc(order.paid_at),
            ),
            created_at=as_utc(order.created_at),
            timer_started_at=as_utc(order.timer_started_at),
            estimated_ready_at=as_utc(order.estimated_ready_at),
            ready_at=as_utc(order.ready_at),
            completed_at=as_utc(order.completed_at),
            cancellation_reason=order.cancellation_reason,
            remaining_seconds=remaining_seconds(order.status, order.estimated_ready_at, now),
            is_delayed=is_delayed(order.status, order.estimated_ready_at, now),
        )


class OrderListResponse(BaseModel):
    """Paginated order history."""

    count: int
    total: int
    pages: int
    data: list[OrderRead]


class DashboardStats(BaseModel):
    """Today's paid-order counters for an outlet."""

    outlet_name: str
    is_open: bool
    today_orders: int
    today_revenue: int
    pending_orders: int
    active_orders: int
    ready_orders: int
    completed_orders: int
