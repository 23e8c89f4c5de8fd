"""Schema exports."""

from canteen.schemas.analytics import AnalyticsResponse, AnalyticsSummary, ChartPoint, TopItem
from canteen.schemas.auth import (
    FavoriteRead,
    LoginRequest,
    OutletLoginResponse,
    RegisterRequest,
    StudentResponse,
    TokenResponse,
)
from canteen.schemas.order import (
    CancelRequest,
    DashboardStats,
    OrderCreate,
    OrderItemPayload,
    OrderItemRead,
    OrderListResponse,
    OrderRead,
    PaymentRead,
)
from canteen.schemas.outlet import MenuItemRead, OutletMenuResponse, OutletRead, OutletStatusResponse
from canteen.schemas.payment import PaymentOrderCreate, PaymentOrderResponse, PaymentVerifyRequest, RefundResponse
from canteen.schemas.university import UniversityRead

__all__ = [
    "AnalyticsResponse",
    "AnalyticsSummary",
    "ChartPoint",
    "TopItem",
    "FavoriteRead",
    "LoginRequest",
    "OutletLoginResponse",
    "RegisterRequest",
    "StudentResponse",
    "TokenResponse",
    "CancelRequest",
    "DashboardStats",
    "OrderCreate",
    "OrderItemPayload",
    "OrderItemRead",
    "OrderListResponse",
    "OrderRead",
    "PaymentRead",
    "MenuItemRead",
    "OutletMenuResponse",
    "OutletRead",
    "OutletStatusResponse",
    "PaymentOrderCreate",
    "PaymentOrderResponse",
    "PaymentVerifyRequest",
    "RefundResponse",
    "UniversityRead",
]
