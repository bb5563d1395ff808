"""
schemas/webhook.py
------------------
Inbound webhook payloads. Only the fields that are persisted are modelled;
everything else the platform sends is ignored.

Platform ids arrive as JSON numbers and are stored as strings.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator


class WebhookPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    created_at: Optional[datetime] = None

    @field_validator("id", mode="before")
    @classmethod
    def id_to_str(cls, v):
        if isinstance(v, (int, str)) and str(v).strip():
            return str(v).strip()
        raise ValueError("id must be a non-empty string or integer")

    @field_validator("created_at")
    @classmethod
    def to_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is None:
            return v
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)


class OrderCustomerRef(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def id_to_str(cls, v):
        return None if v is None else str(v)


class OrderPayload(WebhookPayload):
    customer: Optional[OrderCustomerRef] = None
    email: Optional[str] = None
    total_price: Decimal = Decimal("0")
    currency: Optional[str] = None
    financial_status: Optional[str] = None

    @field_validator("total_price", mode="before")
    @classmethod
    def blank_price(cls, v):
        # The platform sends prices as strings, sometimes empty.
        if v in ("", None):
            return Decimal("0")
        return v


class CustomerPayload(WebhookPayload):
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class ProductPayload(WebhookPayload):
    title: Optional[str] = None
    vendor: Optional[str] = None
    product_type: Optional[str] = None
    status: Optional[str] = None
