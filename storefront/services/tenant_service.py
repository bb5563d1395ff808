"""
services/tenant_service.py
--------------------------
Tenant (store) resolution and discovery.

A tenant is a shop domain. There is no tenant table: the set of known
tenants is whatever has been ingested into orders, products or customers.

The selected tenant lives in a plain cookie and is NOT checked against the
signed-in user. Any authenticated user can select any tenant id.
"""

from datetime import datetime
from typing import Optional

from fastapi import Request
from sqlalchemy import func, select, union
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.responses import Response

from storefront.core.config import settings
from storefront.core.errors import NoTenantSelectedError
from storefront.core.logging import get_logger
from storefront.db.base import as_utc
from storefront.models.customer import Customer
from storefront.models.order import Order
from storefront.models.product import Product

logger = get_logger(__name__)

_TENANT_TABLES = (Order, Product, Customer)


def normalise_tenant(tenant_id: Optional[str]) -> Optional[str]:
    if tenant_id is None:
        return None
    tenant_id = tenant_id.strip().lower()
    return tenant_id or None


class TenantService:

    @staticmethod
    def resolve_tenant(request: Request) -> str:
        """
        Return the tenant id from the tenant cookie.
        Raises NoTenantSelectedError when the cookie is missing or blank.
        """
        tenant_id = normalise_tenant(request.cookies.get(settings.TENANT_COOKIE_NAME))
        if tenant_id is None:
            raise NoTenantSelectedError()
        return tenant_id

    @staticmethod
    def select_tenant(response: Response, tenant_id: str) -> Response:
        response.set_cookie(
            key=settings.TENANT_COOKIE_NAME,
            value=tenant_id,
            path="/",
            samesite="lax",
            secure=settings.is_production,
        )
        return response

    @staticmethod
    async def list_tenants(db: AsyncSession) -> list[str]:
        """Distinct tenant ids across orders, products and customers, sorted."""
        stmt = union(*(select(model.tenant_id) for model in _TENANT_TABLES))
        result = await db.execute(stmt)
        return sorted(row[0] for row in result.all())

    @staticmethod
    async def most_recent_tenant(db: AsyncSession) -> Optional[str]:
        """The tenant whose data was ingested or updated most recently, if any."""
        latest: dict[str, datetime] = {}
        for model in _TENANT_TABLES:
            result = await db.execute(
                select(model.tenant_id, func.max(model.updated_at)).group_by(model.tenant_id)
            )
            for tenant_id, updated_at in result.all():
                if updated_at is None:
                    continue
                updated_at = as_utc(updated_at)
                if tenant_id not in latest or updated_at > latest[tenant_id]:
                    latest[tenant_id] = updated_at
        if not latest:
            return None
        # Ties go to the alphabetically first tenant.
        return min(latest, key=lambda t: (-latest[t].timestamp(), t))
