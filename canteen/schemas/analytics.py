"""Outlet analytics response schemas."""

from pydantic import BaseModel


class AnalyticsSummary(BaseModel):
    """Totals for the period and the change against the one before it."""

    total_revenue: int
    previous_revenue: int
    revenue_change: int
    total_orders: int
    previous_order_count: int
    orders_change: int
    avg_order_value: int


class ChartPoint(BaseModel):
    date: str
    revenue: int
    orders: int


class TopItem(BaseModel):
    name: str
    quantity: int
    revenue: int


class AnalyticsResponse(BaseModel):
    period: str
    summary: AnalyticsSummary
    chart_data: list[ChartPoint]
    top_items: list[TopItem]
