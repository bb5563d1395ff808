"""
services/magic_link_service.py
------------------------------
Passwordless sign-in: issue and verify single-use magic links.

Issue:
  1. Validate the address.
  2. Refuse if an unexpired link for it was issued in the cooldown window.
     On PostgreSQL the check and the insert run under a per-address advisory
     lock; on SQLite two simultaneous requests can both pass (accepted).
  3. Store SHA-256(token) with a 15 minute expiry, send the raw token.

Verify:
  1. Look the record up by SHA-256(token).
  2. Reject on email mismatch, expiry, or prior consumption, bumping the
     attempts counter on the record that was hit.
  3. Consume with a conditional UPDATE and resolve the user, then commit
     both together. The conditional UPDATE is what stops two concurrent
     requests from both succeeding with the same token.

Both operations commit their own unit of work: issue must not keep a row
when the email fails, and verify must persist attempt counters even though
it raises afterwards.
"""

from datetime import datetime, timedelta

from email_validator import EmailNotValidError, validate_email
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.config import settings
from storefront.core.errors import InvalidLinkError, RateLimitError, ValidationError
from storefront.core.logging import get_logger
from storefront.core.security import generate_magic_token, hash_token
from storefront.db.base import as_utc, utcnow
from storefront.models.magic_link import MagicLinkToken
from storefront.services.mailer import Mailer, build_magic_link
from storefront.services.user_service import UserService

logger = get_logger(__name__)


def normalise_email(email: str) -> str:
    """Lower-case and syntax-check an address. Raises ValidationError."""
    email = (email or "").strip().lower()
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        raise ValidationError("Please enter a valid email address")
    return email


def issuance_lock(email: str):
    """Transaction-scoped PostgreSQL advisory lock keyed by address."""
    return select(func.pg_advisory_xact_lock(func.hashtext(email)))


class MagicLinkService:

    @staticmethod
    async def issue(
        db: AsyncSession,
        email: str,
        mailer: Mailer,
        now: datetime | None = None,
    ) -> None:
        """
        Create a magic link for email and send it.

        Raises:
            ValidationError: email is not a valid address.
            RateLimitError: an unexpired link was issued within the cooldown.
            MailDeliveryError: the mail provider rejected the send.
        """
        email = normalise_email(email)
        now = now or utcnow()
        cooldown_start = now - timedelta(seconds=settings.MAGIC_LINK_COOLDOWN_SECONDS)

        if db.get_bind().dialect.name == "postgresql":
            # Held until commit or rollback; serialises check-then-insert per address.
            await db.execute(issuance_lock(email))

        recent = await db.execute(
            select(MagicLinkToken.id)
            .where(
                MagicLinkToken.email == email,
                MagicLinkToken.created_at >= cooldown_start,
                MagicLinkToken.expires_at > now,
            )
            .limit(1)
        )
        if recent.first() is not None:
            logger.info("Magic link refused, cooldown active", email=email)
            await db.rollback()
            raise RateLimitError()

        token = generate_magic_token()
        record = MagicLinkToken(
            email=email,
            token_hash=hash_token(token),
            created_at=now,
            updated_at=now,
            expires_at=now + timedelta(minutes=settings.MAGIC_LINK_TTL_MINUTES),
        )
        db.add(record)
        await db.flush()
        token_id = record.id

        try:
            await mailer.send_magic_link(email, build_magic_link(email, token))
        except Exception:
            await db.rollback()
            raise

        await db.commit()
        logger.info("Magic link issued", email=email, token_id=token_id)

    @staticmethod
    async def verify(
        db: AsyncSession,
        token: str,
        email: str,
        now: datetime | None = None,
    ) -> str:
        """
        Validate a (token, email) pair and return the signed-in user's id.

        Raises:
            InvalidLinkError: for every failure, without saying which.
        """
        now = now or utcnow()
        email = (email or "").strip().lower()
        if not token or not email:
            raise InvalidLinkError()

        result = await db.execute(
            select(MagicLinkToken).where(MagicLinkToken.token_hash == hash_token(token))
        )
        record = result.scalar_one_or_none()
        if record is None:
            logger.info("Magic link verification failed", reason="unknown_token")
            raise InvalidLinkError()

        token_id = record.id
        reason = None
        if record.email != email:
            reason = "email_mismatch"
        elif record.consumed_at is not None:
            reason = "consumed"
        elif as_utc(record.expires_at) <= now:
            reason = "expired"

        if reason is not None:
            await MagicLinkService._record_failed_attempt(db, token_id)
            logger.info(
                "Magic link verification failed",
                reason=reason,
                token_id=token_id,
            )
            raise InvalidLinkError()

        consumed = await db.execute(
            update(MagicLinkToken)
            .where(
                MagicLinkToken.id == token_id,
                MagicLinkToken.consumed_at.is_(None),
                MagicLinkToken.expires_at > now,
            )
            .values(consumed_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        if consumed.rowcount != 1:
            # Another request consumed it between our read and this write.
            await db.rollback()
            await MagicLinkService._record_failed_attempt(db, token_id)
            logger.info(
                "Magic link verification failed",
                reason="consumed_concurrently",
                token_id=token_id,
            )
            raise InvalidLinkError()

        user = await UserService.find_or_create(db, email)
        user_id = user.id
        await db.commit()

        logger.info("Magic link verified", token_id=token_id, user_id=user_id)
        return user_id

    @staticmethod
    async def _record_failed_attempt(db: AsyncSession, token_id: str) -> None:
        await db.execute(
            update(MagicLinkToken)
            .where(MagicLinkToken.id == token_id)
            .values(attempts=MagicLinkToken.attempts + 1)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
