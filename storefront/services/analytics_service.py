"""
services/analytics_service.py
-----------------------------
Dashboard aggregation for one tenant over an inclusive date range.

Critical security invariant:
  Every query MUST include tenant_id in the WHERE clause, on every table it
  touches (including the customers side of the top-customer join). Two
  tenants routinely share platform customer ids.

Date handling:
  Days are UTC calendar days. The range runs from from_date 00:00:00 to
  to_date 23:59:59.999, so from_date == to_date covers that whole day.
"""

from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Iterable

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.errors import ValidationError
from storefront.core.logging import get_logger
from storefront.models.customer import Customer
from storefront.models.order import Order
from storefront.schemas.analytics import (
    DashboardData,
    SeriesPoint,
    TopCustomer,
    Totals,
    Trends,
)

logger = get_logger(__name__)

TOP_CUSTOMER_LIMIT = 5
UNKNOWN_CUSTOMER_NAME = "Unknown Customer"
UNKNOWN_CUSTOMER_EMAIL = "No email"
_END_OF_DAY = time(23, 59, 59, 999000)


def range_bounds(from_date: date, to_date: date) -> tuple[datetime, datetime]:
    if from_date > to_date:
        raise ValidationError("'from' must be on or before 'to'")
    start = datetime.combine(from_date, time.min, tzinfo=timezone.utc)
    end = datetime.combine(to_date, _END_OF_DAY, tzinfo=timezone.utc)
    return start, end


def fill_series(
    rows: Iterable[tuple[str, int, float]], from_date: date, to_date: date
) -> list[SeriesPoint]:
    """One point per calendar day in [from_date, to_date]; absent days are zero."""
    by_day = {day: (orders, revenue) for day, orders, revenue in rows}
    series = []
    day = from_date
    while day <= to_date:
        orders, revenue = by_day.get(day.isoformat(), (0, 0.0))
        series.append(SeriesPoint(date=day, orders=orders, revenue=revenue))
        day += timedelta(days=1)
    return series


def trend_percent(values: list[float]) -> float:
    """Percent change from the first half of the series to the second half."""
    if not values:
        return 0.0
    mid = len(values) // 2 or 1
    first = sum(values[:mid])
    second = sum(values[mid:])
    if not first and not second:
        return 0.0
    if not first:
        return 100.0
    return round((second - first) / first * 100, 2)


def _money(value) -> float:
    return round(float(value or Decimal("0")), 2)


def day_bucket(dialect_name: str):
    """UTC calendar day of Order.created_at."""
    if dialect_name == "postgresql":
        # date() on timestamptz uses the session TimeZone, not UTC.
        return func.date(func.timezone("UTC", Order.created_at))
    return func.date(Order.created_at)


class AnalyticsService:

    @staticmethod
    async def get_dashboard_data(
        db: AsyncSession,
        tenant_id: str,
        from_date: date,
        to_date: date,
    ) -> DashboardData:
        if not tenant_id:
            raise ValidationError("A tenant is required")
        start, end = range_bounds(from_date, to_date)

        in_range = and_(
            Order.tenant_id == tenant_id,
            Order.created_at >= start,
            Order.created_at <= end,
        )

        series = fill_series(
            await AnalyticsService._daily_rows(db, in_range), from_date, to_date
        )
        top_customers = await AnalyticsService._top_customers(db, tenant_id, in_range)
        totals = await AnalyticsService._totals(db, tenant_id, in_range)
        trends = Trends(
            revenue_pct=trend_percent([p.revenue for p in series]),
            orders_pct=trend_percent([float(p.orders) for p in series]),
        )

        logger.info(
            "Dashboard aggregated",
            tenant_id=tenant_id,
            from_date=from_date.isoformat(),
            to_date=to_date.isoformat(),
            orders=totals.total_orders,
        )
        return DashboardData(
            series=series,
            top_customers=top_customers,
            totals=totals,
            trends=trends,
        )

    @staticmethod
    async def _daily_rows(db: AsyncSession, in_range) -> list[tuple[str, int, float]]:
        day = day_bucket(db.get_bind().dialect.name).label("day")
        result = await db.execute(
            select(
                day,
                func.count(Order.id),
                func.coalesce(func.sum(Order.total_price), 0),
            )
            .where(in_range)
            .group_by(day)
            .order_by(day)
        )
        # PostgreSQL returns a date, SQLite a 'YYYY-MM-DD' string.
        return [
            (str(d)[:10], int(orders), _money(revenue))
            for d, orders, revenue in result.all()
        ]

    @staticmethod
    async def _top_customers(
        db: AsyncSession, tenant_id: str, in_range
    ) -> list[TopCustomer]:
        spend = func.coalesce(func.sum(Order.total_price), 0).label("spend")
        result = await db.execute(
            select(
                Order.customer_id,
                Customer.first_name,
                Customer.last_name,
                Customer.email,
                spend,
            )
            .select_from(Order)
            .outerjoin(
                Customer,
                and_(
                    Customer.tenant_id == tenant_id,
                    Customer.tenant_id == Order.tenant_id,
                    Customer.shopify_id == Order.customer_id,
                ),
            )
            .where(in_range, Order.customer_id.is_not(None))
            .group_by(
                Order.customer_id,
                Customer.first_name,
                Customer.last_name,
                Customer.email,
            )
            .order_by(spend.desc(), Order.customer_id.asc())
            .limit(TOP_CUSTOMER_LIMIT)
        )

        top = []
        for customer_id, first_name, last_name, email, total in result.all():
            name = f"{first_name or ''} {last_name or ''}".strip()
            top.append(
                TopCustomer(
                    id=customer_id,
                    name=name or UNKNOWN_CUSTOMER_NAME,
                    email=email or UNKNOWN_CUSTOMER_EMAIL,
                    spend=_money(total),
                )
            )
        return top

    @staticmethod
    async def _totals(db: AsyncSession, tenant_id: str, in_range) -> Totals:
        customers = await db.execute(
            select(func.count()).select_from(Customer).where(Customer.tenant_id == tenant_id)
        )
        total_customers = customers.scalar_one()

        orders = await db.execute(
            select(
                func.count(Order.id),
                func.coalesce(func.sum(Order.total_price), 0),
            ).where(in_range)
        )
        total_orders, revenue = orders.one()
        total_revenue = _money(revenue)

        return Totals(
            total_customers=total_customers,
            total_orders=total_orders,
            total_revenue=total_revenue,
            avg_order_value=total_revenue / total_orders if total_orders else 0.0,
        )
