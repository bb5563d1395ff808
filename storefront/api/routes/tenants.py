"""
api/routes/tenants.py
---------------------
Store (tenant) selection endpoints.

GET  /tenants         — List known stores and the currently selected one.
POST /tenants/select  — Remember a store in the tenant cookie.

Requests that need a tenant but have none are redirected here.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.config import settings
from storefront.core.logging import get_logger
from storefront.db.session import get_db
from storefront.dependencies import require_session
from storefront.schemas.tenant import TenantList, TenantSelect
from storefront.services.tenant_service import TenantService, normalise_tenant

logger = get_logger(__name__)

router = APIRouter(prefix="/tenants", tags=["Tenants"])


@router.get(
    "",
    response_model=TenantList,
    summary="List stores with ingested data",
)
async def list_tenants(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    user_id: Annotated[str, Depends(require_session)],
) -> TenantList:
    tenants = await TenantService.list_tenants(db)
    selected = normalise_tenant(request.cookies.get(settings.TENANT_COOKIE_NAME))
    return TenantList(tenants=tenants, selected=selected)


@router.post(
    "/select",
    response_model=TenantList,
    summary="Select the store to view",
)
async def select_tenant(
    body: TenantSelect,
    response: Response,
    db: Annotated[AsyncSession, Depends(get_db)],
    user_id: Annotated[str, Depends(require_session)],
) -> TenantList:
    """
    Sets the tenant cookie read by every tenant-scoped request.
    The value is not checked against the user's permitted stores.
    """
    TenantService.select_tenant(response, body.tenant_id)
    logger.info("Tenant selected", user_id=user_id, tenant_id=body.tenant_id)
    tenants = await TenantService.list_tenants(db)
    return TenantList(tenants=tenants, selected=body.tenant_id)
