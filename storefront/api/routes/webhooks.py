"""
api/routes/webhooks.py
----------------------
Storefront platform webhook receivers.

POST /webhooks/orders/create
POST /webhooks/customers/create
POST /webhooks/products/create

Each receiver:
  1. Verifies X-Shopify-Hmac-Sha256 over the raw body      → 401 on mismatch
  2. Parses the JSON payload                               → 400 if malformed
  3. Upserts by (shop domain, platform id)                 → 500 on DB failure

A 5xx makes the platform redeliver later; the upsert makes that harmless.
"""

from typing import Annotated, Awaitable, Callable, Optional, Type

from fastapi import APIRouter, Depends, Header, Request, status
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel
from pydantic import ValidationError as PayloadValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.config import settings
from storefront.core.logging import get_logger
from storefront.core.security import parse_webhook_body, verify_webhook_signature
from storefront.db.session import get_db
from storefront.schemas.webhook import CustomerPayload, OrderPayload, ProductPayload
from storefront.services.tenant_service import normalise_tenant
from storefront.services.webhook_service import WebhookService

logger = get_logger(__name__)

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


async def _ingest(
    request: Request,
    db: AsyncSession,
    topic: str,
    hmac_header: Optional[str],
    shop_domain: Optional[str],
    schema: Type[BaseModel],
    handler: Callable[[AsyncSession, str, BaseModel], Awaitable[None]],
) -> PlainTextResponse:
    body = await request.body()

    if not verify_webhook_signature(body, hmac_header or "", settings.SHOPIFY_API_SECRET):
        logger.warning("Webhook signature rejected", topic=topic, shop=shop_domain)
        return PlainTextResponse("Unauthorized", status_code=status.HTTP_401_UNAUTHORIZED)

    tenant_id = normalise_tenant(shop_domain)
    if tenant_id is None:
        logger.warning("Webhook without shop domain", topic=topic)
        return PlainTextResponse("Missing shop domain", status_code=status.HTTP_400_BAD_REQUEST)

    try:
        payload = schema.model_validate(parse_webhook_body(body))
    except (ValueError, PayloadValidationError) as exc:
        logger.warning("Webhook payload rejected", topic=topic, tenant_id=tenant_id, error=str(exc))
        return PlainTextResponse("Malformed payload", status_code=status.HTTP_400_BAD_REQUEST)

    try:
        await handler(db, tenant_id, payload)
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error(
            "Webhook upsert failed",
            topic=topic,
            tenant_id=tenant_id,
            error=str(exc),
            exc_info=True,
        )
        return PlainTextResponse(
            "DB upsert error", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    return PlainTextResponse("ok", status_code=status.HTTP_200_OK)


@router.post("/orders/create", summary="Order created", response_class=PlainTextResponse)
async def order_created(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    x_shopify_hmac_sha256: Annotated[Optional[str], Header()] = None,
    x_shopify_shop_domain: Annotated[Optional[str], Header()] = None,
) -> PlainTextResponse:
    return await _ingest(
        request, db, "orders/create",
        x_shopify_hmac_sha256, x_shopify_shop_domain,
        OrderPayload, WebhookService.upsert_order,
    )


@router.post("/customers/create", summary="Customer created", response_class=PlainTextResponse)
async def customer_created(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    x_shopify_hmac_sha256: Annotated[Optional[str], Header()] = None,
    x_shopify_shop_domain: Annotated[Optional[str], Header()] = None,
) -> PlainTextResponse:
    return await _ingest(
        request, db, "customers/create",
        x_shopify_hmac_sha256, x_shopify_shop_domain,
        CustomerPayload, WebhookService.upsert_customer,
    )


@router.post("/products/create", summary="Product created", response_class=PlainTextResponse)
async def product_created(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    x_shopify_hmac_sha256: Annotated[Optional[str], Header()] = None,
    x_shopify_shop_domain: Annotated[Optional[str], Header()] = None,
) -> PlainTextResponse:
    return await _ingest(
        request, db, "products/create",
        x_shopify_hmac_sha256, x_shopify_shop_domain,
        ProductPayload, WebhookService.upsert_product,
    )
