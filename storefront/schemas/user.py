"""
schemas/user.py
---------------
Pydantic models for the magic-link login flow and user responses.

Security note:
  - The raw magic-link token never appears in any response schema.
  - email is a plain str here so that malformed addresses reach the
    service layer and come back as a form error, not a 422.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class MagicLinkRequest(BaseModel):
    email: str = Field(
        ...,
        min_length=1,
        max_length=320,
        examples=["owner@example.com"],
        description="Address the sign-in link is sent to",
    )

    @field_validator("email")
    @classmethod
    def strip_email(cls, v: str) -> str:
        return v.strip()


class MagicLinkSent(BaseModel):
    ok: bool = True
    message: str = "Magic link sent. Check your email."


class LoginPrompt(BaseModel):
    """Body of GET /login, standing in for the sign-in page."""
    message: str = "Submit your email to POST /login to receive a sign-in link"
    error: Optional[str] = None


class UserRead(BaseModel):
    id: str
    email: str
    created_at: datetime

    model_config = {"from_attributes": True}
