"""
models/order.py
---------------
Orders ingested from the storefront platform's webhooks.

tenant_id is the shop domain. shopify_id is only unique inside a shop, so
the natural key is (tenant_id, shopify_id); webhook redelivery upserts on
it. created_at holds the platform's order timestamp, not the ingestion
time, because the dashboard buckets revenue by it.
"""

from decimal import Decimal
from typing import Optional

from sqlalchemy import Index, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from storefront.db.base import Base, TimestampMixin, generate_uuid


class Order(Base, TimestampMixin):
    __tablename__ = "orders"
    __table_args__ = (
        UniqueConstraint("tenant_id", "shopify_id", name="uq_orders_tenant_shopify"),
        Index("ix_orders_tenant_created_at", "tenant_id", "created_at"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    tenant_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    shopify_id: Mapped[str] = mapped_column(String(64), nullable=False)
    # Platform id of the customer, matched against customers.shopify_id
    customer_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(320), nullable=True)
    total_price: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0")
    )
    currency: Mapped[Optional[str]] = mapped_column(String(8), nullable=True)
    financial_status: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    def __repr__(self) -> str:
        return f"<Order tenant_id={self.tenant_id} shopify_id={self.shopify_id}>"
