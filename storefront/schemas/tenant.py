"""
schemas/tenant.py
-----------------
Pydantic request/response models for store (tenant) selection.

A tenant is identified by its shop domain, e.g. "acme.myshopify.com".
"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator


class TenantSelect(BaseModel):
    tenant_id: str = Field(
        ...,
        min_length=1,
        max_length=255,
        examples=["acme.myshopify.com"],
        description="Shop domain of the store to view",
    )

    @field_validator("tenant_id")
    @classmethod
    def normalise_tenant(cls, v: str) -> str:
        return v.strip().lower()


class TenantList(BaseModel):
    tenants: list[str]
    selected: Optional[str] = None
