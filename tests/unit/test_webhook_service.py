"""Tests for webhook payload parsing and WebhookService upserts."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError as PayloadValidationError
from sqlalchemy import func, select

from conftest import TENANT_A, TENANT_B
from storefront.models.customer import Customer
from storefront.models.order import Order
from storefront.models.product import Product
from storefront.schemas.webhook import CustomerPayload, OrderPayload, ProductPayload
from storefront.services.webhook_service import WebhookService

ORDER = {
    "id": 450789469,
    "email": "buyer@example.com",
    "total_price": "199.65",
    "currency": "USD",
    "financial_status": "paid",
    "created_at": "2024-01-02T10:00:00-05:00",
    "customer": {"id": 207119551, "first_name": "Bob"},
    "line_items": [{"id": 1}],
}


async def _rows(db, model, **filters):
    stmt = select(model).execution_options(populate_existing=True)
    for column, value in filters.items():
        stmt = stmt.where(getattr(model, column) == value)
    return (await db.execute(stmt)).scalars().all()


# ── Payload parsing ───────────────────────────────────────────────────────────


def test_order_payload_normalises_ids_and_time():
    payload = OrderPayload.model_validate(ORDER)

    assert payload.id == "450789469"
    assert payload.customer.id == "207119551"
    assert payload.total_price == Decimal("199.65")
    assert payload.created_at == datetime(2024, 1, 2, 15, 0, tzinfo=timezone.utc)


def test_order_payload_blank_price_is_zero():
    payload = OrderPayload.model_validate({"id": 1, "total_price": ""})
    assert payload.total_price == Decimal("0")
    assert payload.customer is None


def test_payload_requires_id():
    with pytest.raises(PayloadValidationError):
        CustomerPayload.model_validate({"email": "x@example.com"})
    with pytest.raises(PayloadValidationError):
        ProductPayload.model_validate({"id": "  "})


# ── Upserts ───────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_order_redelivery_leaves_one_row(db_session):
    payload = OrderPayload.model_validate(ORDER)

    await WebhookService.upsert_order(db_session, TENANT_A, payload)
    await db_session.commit()
    await WebhookService.upsert_order(db_session, TENANT_A, payload)
    await db_session.commit()

    rows = await _rows(db_session, Order)
    assert len(rows) == 1
    order = rows[0]
    assert order.tenant_id == TENANT_A
    assert order.shopify_id == "450789469"
    assert order.customer_id == "207119551"
    assert order.total_price == Decimal("199.65")
    assert order.financial_status == "paid"


@pytest.mark.asyncio
async def test_order_update_overwrites_fields(db_session):
    await WebhookService.upsert_order(db_session, TENANT_A, OrderPayload.model_validate(ORDER))
    await db_session.commit()

    refunded = dict(ORDER, financial_status="refunded", total_price="0.00")
    await WebhookService.upsert_order(db_session, TENANT_A, OrderPayload.model_validate(refunded))
    await db_session.commit()

    (order,) = await _rows(db_session, Order)
    assert order.financial_status == "refunded"
    assert order.total_price == Decimal("0")


@pytest.mark.asyncio
async def test_same_platform_id_in_two_tenants(db_session):
    payload = OrderPayload.model_validate(ORDER)
    await WebhookService.upsert_order(db_session, TENANT_A, payload)
    await WebhookService.upsert_order(db_session, TENANT_B, payload)
    await db_session.commit()

    count = (await db_session.execute(select(func.count()).select_from(Order))).scalar_one()
    assert count == 2


@pytest.mark.asyncio
async def test_customer_upsert(db_session):
    body = {"id": 1001, "email": "ada@example.com", "first_name": "Ada", "last_name": "L"}
    await WebhookService.upsert_customer(db_session, TENANT_A, CustomerPayload.model_validate(body))
    await db_session.commit()

    body["last_name"] = "Lovelace"
    await WebhookService.upsert_customer(db_session, TENANT_A, CustomerPayload.model_validate(body))
    await db_session.commit()

    (customer,) = await _rows(db_session, Customer, tenant_id=TENANT_A)
    assert customer.shopify_id == "1001"
    assert customer.last_name == "Lovelace"


@pytest.mark.asyncio
async def test_product_upsert_without_timestamp_keeps_first_seen(db_session):
    payload = ProductPayload.model_validate({"id": 5, "title": "Mug", "status": "active"})
    await WebhookService.upsert_product(db_session, TENANT_A, payload)
    await db_session.commit()
    (first,) = await _rows(db_session, Product)
    first_created = first.created_at

    renamed = ProductPayload.model_validate({"id": 5, "title": "Big Mug"})
    await WebhookService.upsert_product(db_session, TENANT_A, renamed)
    await db_session.commit()

    (product,) = await _rows(db_session, Product)
    assert product.title == "Big Mug"
    assert product.created_at == first_created
