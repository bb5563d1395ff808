"""
services/mailer.py
------------------
Outbound sign-in email.

Two implementations behind one interface, chosen once by MAIL_PROVIDER:
  - ConsoleMailer: logs the link instead of sending it (local development).
  - ResendMailer:  POSTs to the Resend HTTP API.

Call sites only ever see Mailer.send_magic_link(); nothing else branches on
which provider is configured.
"""

from abc import ABC, abstractmethod
from functools import lru_cache
from urllib.parse import quote, urlencode

import httpx

from storefront.core.config import settings
from storefront.core.errors import MailDeliveryError
from storefront.core.logging import get_logger

logger = get_logger(__name__)

_RESEND_API_URL = "https://api.resend.com/emails"
_RESEND_TIMEOUT = 10.0


def build_magic_link(email: str, token: str) -> str:
    """<origin>/login/verify?token=<hex>&email=<urlencoded>"""
    params = urlencode({"token": token, "email": email}, quote_via=quote)
    return f"{settings.APP_BASE_URL.rstrip('/')}/login/verify?{params}"


class Mailer(ABC):

    @abstractmethod
    async def send_magic_link(self, email: str, link: str) -> None:
        ...


class ConsoleMailer(Mailer):

    async def send_magic_link(self, email: str, link: str) -> None:
        if settings.is_production:
            # The link is a bearer credential; keep it out of production logs.
            logger.warning(
                "No mail provider configured, magic link not delivered",
                email=email,
            )
            return
        logger.info("Magic link (console mailer)", email=email, link=link)


class ResendMailer(Mailer):

    def __init__(
        self,
        api_key: str,
        sender: str,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._sender = sender
        self._transport = transport

    async def send_magic_link(self, email: str, link: str) -> None:
        try:
            async with httpx.AsyncClient(
                timeout=_RESEND_TIMEOUT, transport=self._transport
            ) as client:
                resp = await client.post(
                    _RESEND_API_URL,
                    headers={"Authorization": f"Bearer {self._api_key}"},
                    json={
                        "from": self._sender,
                        "to": email,
                        "subject": "Your sign-in link",
                        "html": (
                            f'<p>Click to sign in: <a href="{link}">{link}</a></p>'
                            f"<p>This link expires in {settings.MAGIC_LINK_TTL_MINUTES} minutes.</p>"
                        ),
                    },
                )
                resp.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("Magic link email failed", email=email, error=str(exc))
            raise MailDeliveryError() from exc
        logger.info("Magic link email sent", email=email)


@lru_cache()
def get_mailer() -> Mailer:
    """FastAPI dependency; one mailer per process, selected by configuration."""
    if settings.MAIL_PROVIDER == "resend":
        if not settings.RESEND_API_KEY:
            raise RuntimeError("MAIL_PROVIDER=resend requires RESEND_API_KEY")
        return ResendMailer(settings.RESEND_API_KEY, settings.MAIL_FROM)
    logger.info("Mailer in CONSOLE mode, set MAIL_PROVIDER=resend to send email")
    return ConsoleMailer()
