"""
main.py
-------
FastAPI application factory and entry point.

Application lifecycle:
  1. App is created by create_application().
  2. lifespan context manager runs on startup / shutdown.
  3. Routers are registered with their URL prefixes.
  4. Exception handlers turn the redirect-type domain errors into 303s and
     normalise unexpected errors.

Run with:
    uvicorn main:app --reload              # development
    uvicorn main:app --workers 4           # production (no --reload)
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse

from storefront.api.routes import auth, dashboard, tenants, webhooks
from storefront.core.config import settings
from storefront.core.errors import LoginRequired, NoTenantSelectedError
from storefront.core.logging import configure_logging, get_logger
from storefront.db.session import dispose_engine

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Startup / shutdown lifecycle hook.

    Startup:
      - Configure structured logging

    Shutdown:
      - Dispose the async engine (graceful connection pool drain)
    """
    configure_logging()
    logger.info(
        "Starting up",
        app=settings.APP_NAME,
        env=settings.APP_ENV,
        debug=settings.DEBUG,
        mail_provider=settings.MAIL_PROVIDER,
    )
    yield
    logger.info("Shutting down, disposing DB engine")
    await dispose_engine()


def create_application() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        description=(
            "Multi-tenant storefront admin: webhook ingestion, magic-link "
            "sign-in, and per-store analytics."
        ),
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── CORS ─────────────────────────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Routers ───────────────────────────────────────────────────────────────
    app.include_router(auth.router)
    app.include_router(tenants.router)
    app.include_router(dashboard.router)
    app.include_router(webhooks.router)

    # ── Exception Handlers ────────────────────────────────────────────────────

    @app.exception_handler(LoginRequired)
    async def login_required_handler(
        request: Request, exc: LoginRequired
    ) -> RedirectResponse:
        return RedirectResponse(
            url=settings.LOGIN_PATH, status_code=status.HTTP_303_SEE_OTHER
        )

    @app.exception_handler(NoTenantSelectedError)
    async def no_tenant_handler(
        request: Request, exc: NoTenantSelectedError
    ) -> RedirectResponse:
        logger.info("No tenant selected, redirecting", path=request.url.path)
        return RedirectResponse(
            url=settings.TENANT_SELECTION_PATH, status_code=status.HTTP_303_SEE_OTHER
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        logger.error(
            "Unhandled exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=True,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"},
        )

    # ── Health Check ──────────────────────────────────────────────────────────

    @app.get("/health", tags=["Health"], summary="Service health check")
    async def health() -> dict:
        return {"status": "ok", "app": settings.APP_NAME, "env": settings.APP_ENV}

    return app


app = create_application()
