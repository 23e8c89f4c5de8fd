"""Payment gateway integration and the paid gate.

Without Razorpay keys configured the service runs in demo mode: provider
order ids are prefixed ``demo_`` and verification skips the signature check.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import time
from datetime import datetime

import httpx
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from canteen.core.config import settings
from canteen.models.order import Order
from canteen.utils.time import utcnow

logger = logging.getLogger(__name__)

DEMO_PREFIX: str = "demo_"


class PaymentError(Exception):
    """Raised when the payment provider rejects a request."""


class SignatureMismatchError(PaymentError):
    """Raised when the checkout signature does not match."""


class RefundNotAllowedError(ValueError):
    """Raised when an order is not in a refundable state."""


def _demo_id(kind: str) -> str:
    return f"{DEMO_PREFIX}{kind}{int(time.time() * 1000)}"


def is_demo_reference(reference: str | None) -> bool:
    return bool(reference) and reference.startswith(DEMO_PREFIX)


def expected_signature(provider_order_id: str, payment_id: str, secret: str) -> str:
    """HMAC-SHA256 over ``<order_id>|<payment_id>`` as Razorpay signs checkouts."""
    body = f"{provider_order_id}|{payment_id}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def verify_signature(provider_order_id: str, payment_id: str, signature: str, secret: str) -> bool:
    return hmac.compare_digest(expected_signature(provider_order_id, payment_id, secret), signature)


async def _create_provider_order(order: Order) -> str:
    async with httpx.AsyncClient(base_url=settings.razorpay_api_url, timeout=10.0) as client:
        response = await client.post(
            "/orders",
            auth=(settings.razorpay_key_id, settings.razorpay_key_secret),
            json={
                "amount": order.total_amount,
                "currency": settings.currency,
                "receipt": order.order_number,
                "notes": {"orderId": str(order.id), "userId": str(order.user_id)},
            },
        )
    if response.status_code >= 400:
        raise PaymentError(f"Razorpay order creation failed with HTTP {response.status_code}")
    return str(response.json()["id"])


async def _refund_provider_payment(order: Order) -> str:
    async with httpx.AsyncClient(base_url=settings.razorpay_api_url, timeout=10.0) as client:
        response = await client.post(
            f"/payments/{order.payment_id}/refund",
            auth=(settings.razorpay_key_id, settings.razorpay_key_secret),
            json={
                "amount": order.total_amount,
                "notes": {"reason": order.cancellation_reason or "Order cancelled"},
            },
        )
    if response.status_code >= 400:
        raise PaymentError(f"Razorpay refund failed with HTTP {response.status_code}")
    return str(response.json()["id"])


async def get_unpaid_order(db: AsyncSession, *, order_id: int, user_id: int) -> Order | None:
    return await db.scalar(
        select(Order).where(Order.id == order_id, Order.user_id == user_id, Order.payment_status == "pending")
    )


async def start_checkout(db: AsyncSession, order: Order) -> str:
    """Attach a provider order id to ``order`` and return it."""
    if settings.payments_demo_mode:
        provider_order_id = _demo_id("")
    else:
        provider_order_id = await _create_provider_order(order)
    order.payment_provider_order_id = provider_order_id
    await db.commit()
    logger.info("[PAYMENTS] Checkout %s started for order_id=%s", provider_order_id, order.id)
    return provider_order_id


async def mark_paid(
    db: AsyncSession,
    *,
    payment_id: str,
    provider_order_id: str | None = None,
    order_id: int | None = None,
    now: datetime | None = None,
) -> Order | None:
    """Flip ``payment_status`` from pending to paid.

    Guarded on the pending state so a replayed verification does not admit the
    order (and notify the outlet) twice. Returns ``None`` when nothing matched.
    """
    now = now or utcnow()
    if provider_order_id is not None:
        condition = Order.payment_provider_order_id == provider_order_id
    elif order_id is not None:
        condition = Order.id == order_id
    else:
        raise ValueError("provider_order_id or order_id is required")

    result = await db.execute(
        update(Order)
        .where(condition, Order.payment_status == "pending")
        .values(payment_status="paid", payment_id=payment_id, paid_at=now)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    if result.rowcount == 0:
        return None

    order: Order | None = await db.scalar(
        select(Order).where(condition).execution_options(populate_existing=True)
    )
    if order is not None:
        logger.info("[PAYMENTS] Order %s (id=%s) paid", order.order_number, order.id)
    return order


async def confirm_checkout(
    db: AsyncSession,
    *,
    provider_order_id: str,
    payment_id: str,
    signature: str,
) -> Order | None:
    """Verify a checkout callback and mark the matching order paid."""
    if not is_demo_reference(provider_order_id):
        if settings.payments_demo_mode or not verify_signature(
            provider_order_id, payment_id, signature, settings.razorpay_key_secret
        ):
            logger.warning("[PAYMENTS] Signature mismatch for provider order %s", provider_order_id)
            raise SignatureMismatchError(provider_order_id)
    else:
        payment_id = _demo_id("pay_")
    return await mark_paid(db, payment_id=payment_id, provider_order_id=provider_order_id)


async def refund(db: AsyncSession, order: Order) -> str:
    """Refund a paid, cancelled order and return the refund reference."""
    if order.payment_status != "paid":
        raise RefundNotAllowedError("Order not paid")
    if order.status != "cancelled":
        raise RefundNotAllowedError("Only cancelled orders can be refunded")
    if settings.payments_demo_mode or is_demo_reference(order.payment_id):
        refund_id = _demo_id("refund_")
    else:
        refund_id = await _refund_provider_payment(order)
    order.payment_status = "refunded"
    await db.commit()
    logger.info("[PAYMENTS] Refunded order_id=%s (%s)", order.id, refund_id)
    return refund_id
