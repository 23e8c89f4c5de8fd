"""Payment API schemas."""

from pydantic import BaseModel


class PaymentOrderCreate(BaseModel):
    order_id: int


class PaymentOrderResponse(BaseModel):
    """Checkout parameters handed to the client payment widget."""

    provider_order_id: str
    amount: int
    currency: str
    key: str
    demo_mode: bool = False


class PaymentVerifyRequest(BaseModel):
    razorpay_order_id: str
    razorpay_payment_id: str
    razorpay_signature: str


class RefundResponse(BaseModel):
    order_id: int
    refund_id: str
    amount: int
    payment_status: str
