"""
models/magic_link.py
--------------------
Issued magic-link tokens.

Only the SHA-256 digest of a token is stored; the raw value exists in the
emailed URL and nowhere else. Rows are never deleted: consumed and expired
tokens stay behind for auditing and for the issuance cooldown check.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from storefront.db.base import Base, TimestampMixin, generate_uuid


class MagicLinkToken(Base, TimestampMixin):
    __tablename__ = "magic_link_tokens"
    __table_args__ = (
        Index("ix_magic_link_tokens_email_created_at", "email", "created_at"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    token_hash: Mapped[str] = mapped_column(
        String(64), unique=True, nullable=False, index=True
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    consumed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    # Failed verifications against this row; a signal only, no lockout.
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<MagicLinkToken id={self.id} email={self.email}>"
