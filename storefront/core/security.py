"""
core/security.py
----------------
Magic-link token, session cookie, and webhook signature utilities.

Design decisions:
  - Magic-link tokens carry 32 bytes of entropy; only their SHA-256 digest
    is ever stored.
  - The session cookie is a JWT (sub = user id, sid = session id) signed
    with HS256, then encrypted as a compact JWE (dir + A256GCM) so the
    client can neither read nor forge it. Validating it needs no DB lookup.
  - Webhook signatures are base64 HMAC-SHA256 of the raw request body.
"""

import base64
import hashlib
import hmac
import json
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import jwe, jwt
from jose.exceptions import JOSEError

from storefront.core.config import settings

_JWE_ALGORITHM = "dir"
_JWE_ENCRYPTION = "A256GCM"


# ── Magic-link tokens ─────────────────────────────────────────────────────────

def generate_magic_token() -> str:
    """Return a URL-safe hex token (64 chars, 256 bits)."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


# ── Session tokens ────────────────────────────────────────────────────────────

def _encryption_key(secret: str) -> bytes:
    # A256GCM needs exactly 32 bytes; derive them from the signing secret.
    return hashlib.sha256(f"{secret}:session-encryption".encode("utf-8")).digest()


def create_session_token(
    user_id: str,
    session_id: str,
    expires_delta: Optional[timedelta] = None,
    now: Optional[datetime] = None,
) -> str:
    """
    Mint an encrypted session token.

    Args:
        user_id: User UUID (stored in 'sub' claim).
        session_id: Audit row id (stored in 'sid' claim).
        expires_delta: Optional custom TTL; defaults to SESSION_TTL_DAYS.
        now: Issue time, injectable for tests.

    Returns:
        Compact JWE string, safe to use as a cookie value.
    """
    issued = now or datetime.now(timezone.utc)
    expire = issued + (expires_delta or timedelta(days=settings.SESSION_TTL_DAYS))
    payload: Dict[str, Any] = {
        "sub": user_id,
        "sid": session_id,
        "exp": expire,
        "iat": issued,
    }
    signed = jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    encrypted = jwe.encrypt(
        signed,
        _encryption_key(settings.SECRET_KEY),
        algorithm=_JWE_ALGORITHM,
        encryption=_JWE_ENCRYPTION,
    )
    return encrypted.decode("ascii")


def decode_session_token(token: str) -> Dict[str, Any]:
    """
    Decrypt and validate a session token.

    Raises:
        JOSEError: If the token cannot be decrypted, the signature is
            invalid, or it has expired.

    Returns:
        Raw claims dict.
    """
    signed = jwe.decrypt(token, _encryption_key(settings.SECRET_KEY))
    if signed is None:
        raise JOSEError("Session token could not be decrypted")
    return jwt.decode(
        signed.decode("utf-8"),
        settings.SECRET_KEY,
        algorithms=[settings.ALGORITHM],
    )


# ── Webhook signatures ────────────────────────────────────────────────────────

def sign_webhook_body(body: bytes, secret: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_webhook_signature(body: bytes, signature: str, secret: str) -> bool:
    """Constant-time check of the platform's HMAC header. Fails closed without a secret."""
    if not secret or not signature:
        return False
    expected = sign_webhook_body(body, secret)
    return hmac.compare_digest(expected, signature.strip())


def parse_webhook_body(body: bytes) -> Dict[str, Any]:
    """Decode a webhook body into a dict. Raises ValueError on anything else."""
    payload = json.loads(body)
    if not isinstance(payload, dict):
        raise ValueError("Webhook payload must be a JSON object")
    return payload
