"""API v1 router composition."""

from fastapi import APIRouter

from canteen.api.v1.endpoints import admin, auth, orders, outlets, payments, universities

api_router: APIRouter = APIRouter()
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(universities.router, prefix="/universities", tags=["universities"])
api_router.include_router(outlets.router, prefix="/outlets", tags=["outlets"])
api_router.include_router(orders.router, prefix="/orders", tags=["orders"])
api_router.include_router(payments.router, prefix="/payments", tags=["payments"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
