"""
services/session_service.py
---------------------------
Cookie-backed login sessions.

The cookie is the session: an encrypted, signed token carrying the user id,
a session id and an expiry (see core/security.py). Reading it needs no
database access. A LoginSession row is written alongside for auditing and
stamped with revoked_at on sign-out; it is never consulted to authorise a
request.
"""

from datetime import datetime, timedelta
from typing import Optional

from fastapi import Request
from jose.exceptions import JOSEError
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.responses import Response

from storefront.core.config import settings
from storefront.core.errors import LoginRequired
from storefront.core.logging import get_logger
from storefront.core.security import create_session_token, decode_session_token
from storefront.db.base import generate_uuid, utcnow
from storefront.models.login_session import LoginSession

logger = get_logger(__name__)


def _cookie_kwargs() -> dict:
    # delete_cookie must repeat these for the browser to drop the cookie.
    return {
        "path": "/",
        "httponly": True,
        "samesite": "lax",
        "secure": settings.is_production,
    }


class SessionManager:

    @staticmethod
    def create_session(
        user_id: str, now: Optional[datetime] = None
    ) -> tuple[str, str]:
        """
        Mint a session for user_id.

        Returns:
            (cookie_value, session_id)
        """
        session_id = generate_uuid()
        cookie_value = create_session_token(
            user_id,
            session_id,
            expires_delta=timedelta(days=settings.SESSION_TTL_DAYS),
            now=now,
        )
        logger.info("Session created", user_id=user_id, session_id=session_id)
        return cookie_value, session_id

    @staticmethod
    def read_claims(request: Request) -> Optional[dict]:
        token = request.cookies.get(settings.SESSION_COOKIE_NAME)
        if not token:
            return None
        try:
            claims = decode_session_token(token)
        except (JOSEError, ValueError) as exc:
            logger.info("Session cookie rejected", error=str(exc))
            return None
        if not claims.get("sub"):
            return None
        return claims

    @staticmethod
    def read_session(request: Request) -> Optional[str]:
        """Return the session's user id, or None without a valid cookie."""
        claims = SessionManager.read_claims(request)
        return claims["sub"] if claims else None

    @staticmethod
    def require_session(request: Request) -> str:
        """Return the user id or raise LoginRequired (turned into a redirect)."""
        user_id = SessionManager.read_session(request)
        if user_id is None:
            raise LoginRequired()
        return user_id

    @staticmethod
    def set_session_cookie(response: Response, cookie_value: str) -> Response:
        response.set_cookie(
            key=settings.SESSION_COOKIE_NAME,
            value=cookie_value,
            max_age=settings.SESSION_TTL_DAYS * 24 * 60 * 60,
            **_cookie_kwargs(),
        )
        return response

    @staticmethod
    def destroy_session(response: Response) -> Response:
        response.delete_cookie(key=settings.SESSION_COOKIE_NAME, **_cookie_kwargs())
        return response

    # ── Audit trail ───────────────────────────────────────────────────────────

    @staticmethod
    async def record_login(
        db: AsyncSession,
        user_id: str,
        session_id: str,
        now: Optional[datetime] = None,
    ) -> LoginSession:
        now = now or utcnow()
        record = LoginSession(
            id=session_id,
            user_id=user_id,
            expires_at=now + timedelta(days=settings.SESSION_TTL_DAYS),
        )
        db.add(record)
        await db.flush()
        return record

    @staticmethod
    async def record_logout(db: AsyncSession, session_id: str) -> None:
        await db.execute(
            update(LoginSession)
            .where(LoginSession.id == session_id, LoginSession.revoked_at.is_(None))
            .values(revoked_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        logger.info("Session revoked", session_id=session_id)
