"""
schemas/analytics.py
--------------------
Dashboard payload models.
"""

from datetime import date

from pydantic import BaseModel, ConfigDict, Field


class SeriesPoint(BaseModel):
    date: date
    orders: int = 0
    revenue: float = 0.0


class TopCustomer(BaseModel):
    id: str
    name: str
    email: str
    spend: float


class Totals(BaseModel):
    total_customers: int
    total_orders: int
    total_revenue: float
    avg_order_value: float


class Trends(BaseModel):
    revenue_pct: float
    orders_pct: float


class DashboardData(BaseModel):
    series: list[SeriesPoint]
    top_customers: list[TopCustomer]
    totals: Totals
    trends: Trends


class DashboardResponse(DashboardData):
    model_config = ConfigDict(populate_by_name=True)

    tenant: str
    tenants: list[str]
    # "from" is a keyword, so the range is exposed through aliases.
    from_date: date = Field(..., alias="from")
    to_date: date = Field(..., alias="to")
