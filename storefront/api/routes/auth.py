"""
api/routes/auth.py
------------------
Magic-link authentication endpoints.

GET  /login         — Login entry point (where unauthenticated requests land).
POST /login         — Email a single-use sign-in link.
GET  /login/verify  — Follow the emailed link: verify, set session cookie,
                      redirect to the dashboard.
GET  /logout        — Destroy the session cookie and return to /login.
GET  /me            — Return the authenticated user's profile.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.config import settings
from storefront.core.errors import (
    InvalidLinkError,
    MailDeliveryError,
    RateLimitError,
    ValidationError,
)
from storefront.db.session import get_db
from storefront.dependencies import get_current_user
from storefront.models.user import User
from storefront.schemas.user import LoginPrompt, MagicLinkRequest, MagicLinkSent, UserRead
from storefront.services.magic_link_service import MagicLinkService
from storefront.services.mailer import Mailer, get_mailer
from storefront.services.session_service import SessionManager

router = APIRouter(tags=["Authentication"])

DASHBOARD_PATH = "/dashboard"


def _redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url=url, status_code=status.HTTP_303_SEE_OTHER)


@router.get(
    "/login",
    response_model=LoginPrompt,
    summary="Login entry point",
)
async def login_page(error: Optional[str] = Query(default=None)) -> LoginPrompt:
    return LoginPrompt(error=error)


@router.post(
    "/login",
    response_model=MagicLinkSent,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Email a magic sign-in link",
)
async def request_magic_link(
    body: MagicLinkRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    mailer: Annotated[Mailer, Depends(get_mailer)],
) -> MagicLinkSent:
    """
    Send a single-use link valid for 15 minutes.
    A second request for the same address within 30 seconds is refused.
    """
    try:
        await MagicLinkService.issue(db, body.email, mailer)
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message)
    except RateLimitError as exc:
        raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=exc.message)
    except MailDeliveryError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=exc.message)
    return MagicLinkSent()


@router.get(
    "/login/verify",
    summary="Verify a magic link and start a session",
    response_class=RedirectResponse,
    status_code=status.HTTP_303_SEE_OTHER,
)
async def verify_magic_link(
    db: Annotated[AsyncSession, Depends(get_db)],
    token: str = Query(default="", max_length=256),
    email: str = Query(default="", max_length=320),
) -> RedirectResponse:
    """
    On success: session cookie + redirect to /dashboard.
    On any failure: redirect to /login?error=invalid_link, with no hint of
    which check failed.
    """
    if not token or not email:
        return _redirect(settings.LOGIN_PATH)

    try:
        user_id = await MagicLinkService.verify(db, token, email)
    except InvalidLinkError:
        return _redirect(f"{settings.LOGIN_PATH}?error=invalid_link")

    cookie_value, session_id = SessionManager.create_session(user_id)
    await SessionManager.record_login(db, user_id, session_id)
    await db.commit()

    response = _redirect(DASHBOARD_PATH)
    SessionManager.set_session_cookie(response, cookie_value)
    # Keep the token out of the Referer header of the next page.
    response.headers["Referrer-Policy"] = "no-referrer"
    return response


@router.api_route(
    "/logout",
    methods=["GET", "POST"],
    summary="Sign out",
    response_class=RedirectResponse,
    status_code=status.HTTP_303_SEE_OTHER,
)
async def logout(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> RedirectResponse:
    claims = SessionManager.read_claims(request)
    if claims and claims.get("sid"):
        await SessionManager.record_logout(db, claims["sid"])
        await db.commit()
    return SessionManager.destroy_session(_redirect(settings.LOGIN_PATH))


@router.get(
    "/me",
    response_model=UserRead,
    summary="Get the currently authenticated user",
)
async def get_me(
    current_user: Annotated[User, Depends(get_current_user)],
) -> UserRead:
    return UserRead.model_validate(current_user)
