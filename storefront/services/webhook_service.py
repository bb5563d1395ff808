"""
services/webhook_service.py
---------------------------
Persist storefront webhook payloads.

The platform redelivers webhooks until it gets a 2xx, so every write is an
upsert keyed by (tenant_id, shopify_id): replaying the same payload leaves
exactly one row. Persistence errors propagate to the route, which answers
5xx so the platform retries.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.logging import get_logger
from storefront.db.base import utcnow
from storefront.db.upsert import upsert
from storefront.models.customer import Customer
from storefront.models.order import Order
from storefront.models.product import Product
from storefront.schemas.webhook import CustomerPayload, OrderPayload, ProductPayload

logger = get_logger(__name__)

_NATURAL_KEY = ("tenant_id", "shopify_id")


def _update_columns(values: dict, has_platform_timestamp: bool) -> list[str]:
    # Without a platform timestamp keep the first-seen created_at on redelivery.
    return [
        c for c in values
        if c not in _NATURAL_KEY and (c != "created_at" or has_platform_timestamp)
    ]


class WebhookService:

    @staticmethod
    async def upsert_order(db: AsyncSession, tenant_id: str, payload: OrderPayload) -> None:
        now = utcnow()
        values = {
            "tenant_id": tenant_id,
            "shopify_id": payload.id,
            "customer_id": payload.customer.id if payload.customer else None,
            "email": payload.email,
            "total_price": payload.total_price,
            "currency": payload.currency,
            "financial_status": payload.financial_status,
            "created_at": payload.created_at or now,
            "updated_at": now,
        }
        await upsert(
            db,
            Order,
            values,
            conflict_columns=_NATURAL_KEY,
            update_columns=_update_columns(values, payload.created_at is not None),
        )
        logger.info("Order upserted", tenant_id=tenant_id, shopify_id=payload.id)

    @staticmethod
    async def upsert_customer(
        db: AsyncSession, tenant_id: str, payload: CustomerPayload
    ) -> None:
        now = utcnow()
        values = {
            "tenant_id": tenant_id,
            "shopify_id": payload.id,
            "email": payload.email,
            "first_name": payload.first_name,
            "last_name": payload.last_name,
            "created_at": payload.created_at or now,
            "updated_at": now,
        }
        await upsert(
            db,
            Customer,
            values,
            conflict_columns=_NATURAL_KEY,
            update_columns=_update_columns(values, payload.created_at is not None),
        )
        logger.info("Customer upserted", tenant_id=tenant_id, shopify_id=payload.id)

    @staticmethod
    async def upsert_product(
        db: AsyncSession, tenant_id: str, payload: ProductPayload
    ) -> None:
        now = utcnow()
        values = {
            "tenant_id": tenant_id,
            "shopify_id": payload.id,
            "title": payload.title,
            "vendor": payload.vendor,
            "product_type": payload.product_type,
            "status": payload.status,
            "created_at": payload.created_at or now,
            "updated_at": now,
        }
        await upsert(
            db,
            Product,
            values,
            conflict_columns=_NATURAL_KEY,
            update_columns=_update_columns(values, payload.created_at is not None),
        )
        logger.info("Product upserted", tenant_id=tenant_id, shopify_id=payload.id)
