"""Payment endpoints: checkout, verification and refunds."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from canteen.core.config import settings
from canteen.core.security import get_current_student
from canteen.db.session import get_db
from canteen.models.order import Order
from canteen.models.user import User
from canteen.realtime.events import publish_new_order
from canteen.realtime.relay import relay
from canteen.schemas.order import OrderRead
from canteen.schemas.payment import PaymentOrderCreate, PaymentOrderResponse, PaymentVerifyRequest, RefundResponse
from canteen.services import payment_service
from canteen.services.payment_service import PaymentError, RefundNotAllowedError, SignatureMismatchError

router: APIRouter = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/create-order", response_model=PaymentOrderResponse)
async def create_payment_order(
    payload: PaymentOrderCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_student),
) -> PaymentOrderResponse:
    order = await payment_service.get_unpaid_order(db, order_id=payload.order_id, user_id=current_user.id)
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found or already paid")
    try:
        provider_order_id = await payment_service.start_checkout(db, order)
    except PaymentError as exc:
        logger.exception("[PAYMENTS] Checkout failed for order_id=%s", payload.order_id)
        raise HTTPException(status_code=502, detail="Failed to create payment order") from exc
    return PaymentOrderResponse(
        provider_order_id=provider_order_id,
        amount=order.total_amount,
        currency=settings.currency,
        key=settings.razorpay_key_id or "demo_key",
        demo_mode=settings.payments_demo_mode,
    )


@router.post("/verify", response_model=OrderRead)
async def verify_payment(
    payload: PaymentVerifyRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_student),
) -> OrderRead:
    """Confirm a checkout and notify the outlet of the new order."""
    try:
        order = await payment_service.confirm_checkout(
            db,
            provider_order_id=payload.razorpay_order_id,
            payment_id=payload.razorpay_payment_id,
            signature=payload.razorpay_signature,
        )
    except SignatureMismatchError as exc:
        raise HTTPException(status_code=400, detail="Payment verification failed") from exc
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")

    await publish_new_order(relay, order)
    return OrderRead.from_order(order)


@router.post("/refund/{order_id}", response_model=RefundResponse)
async def refund_payment(
    order_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_student),
) -> RefundResponse:
    order: Order | None = await db.scalar(select(Order).where(Order.id == order_id, Order.user_id == current_user.id))
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")
    try:
        refund_id = await payment_service.refund(db, order)
    except RefundNotAllowedError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except PaymentError as exc:
        logger.exception("[PAYMENTS] Refund failed for order_id=%s", order_id)
        raise HTTPException(status_code=502, detail="Refund failed") from exc
    return RefundResponse(order_id=order.id, refund_id=refund_id, amount=order.total_amount, payment_status=order.payment_status)
