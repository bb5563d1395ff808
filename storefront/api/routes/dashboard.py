"""
api/routes/dashboard.py
-----------------------
Analytics dashboard data.

GET /dashboard?tenant=<shop>&from=<YYYY-MM-DD>&to=<YYYY-MM-DD>

Tenant precedence: ?tenant=, then the tenant cookie, then the most recently
active store. With no store at all the request is redirected to /tenants.
Dates default to the 30 days ending today (UTC).
"""

from datetime import date, datetime, timedelta, timezone
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.errors import NoTenantSelectedError, ValidationError
from storefront.db.session import get_db
from storefront.dependencies import require_session
from storefront.schemas.analytics import DashboardResponse
from storefront.services.analytics_service import AnalyticsService
from storefront.services.tenant_service import TenantService, normalise_tenant

router = APIRouter(tags=["Dashboard"])

DEFAULT_RANGE_DAYS = 30


async def _pick_tenant(
    request: Request, db: AsyncSession, requested: Optional[str]
) -> str:
    tenant_id = normalise_tenant(requested)
    if tenant_id:
        return tenant_id
    try:
        return TenantService.resolve_tenant(request)
    except NoTenantSelectedError:
        fallback = await TenantService.most_recent_tenant(db)
        if fallback is None:
            raise
        return fallback


@router.get(
    "/dashboard",
    response_model=DashboardResponse,
    summary="KPIs, daily series and top customers for one store",
)
async def get_dashboard(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    user_id: Annotated[str, Depends(require_session)],
    tenant: Optional[str] = Query(default=None, max_length=255),
    from_: Optional[date] = Query(default=None, alias="from"),
    to: Optional[date] = Query(default=None),
) -> DashboardResponse:
    tenant_id = await _pick_tenant(request, db, tenant)

    to_date = to or datetime.now(timezone.utc).date()
    from_date = from_ or to_date - timedelta(days=DEFAULT_RANGE_DAYS)

    try:
        data = await AnalyticsService.get_dashboard_data(db, tenant_id, from_date, to_date)
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message)

    return DashboardResponse(
        **data.model_dump(),
        tenant=tenant_id,
        tenants=await TenantService.list_tenants(db),
        from_date=from_date,
        to_date=to_date,
    )
