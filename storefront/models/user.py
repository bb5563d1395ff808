"""
models/user.py
--------------
User ORM model.

Users are created lazily the first time a magic link for their email is
verified. There is no password column: possession of the inbox is the
only credential.
"""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from storefront.db.base import Base, TimestampMixin, generate_uuid


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    email: Mapped[str] = mapped_column(
        String(320), unique=True, nullable=False, index=True
    )

    # Relationships
    sessions: Mapped[list["LoginSession"]] = relationship(  # noqa: F821
        "LoginSession", back_populates="user", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email}>"
