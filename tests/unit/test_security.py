"""Tests for core/security.py: magic tokens, session tokens, webhook signatures."""

from datetime import datetime, timedelta, timezone

import pytest
from jose.exceptions import JOSEError

from storefront.core.security import (
    create_session_token,
    decode_session_token,
    generate_magic_token,
    hash_token,
    parse_webhook_body,
    sign_webhook_body,
    verify_webhook_signature,
)

USER_ID = "7d1c2f0e-0000-4000-8000-000000000001"
SESSION_ID = "7d1c2f0e-0000-4000-8000-0000000000aa"


def _tamper(token: str) -> str:
    header, key, iv, ciphertext, tag = token.split(".")
    flipped = "A" if ciphertext[5] != "A" else "B"
    ciphertext = ciphertext[:5] + flipped + ciphertext[6:]
    return ".".join([header, key, iv, ciphertext, tag])


# ── Magic tokens ──────────────────────────────────────────────────────────────


def test_magic_token_is_64_hex_chars():
    token = generate_magic_token()
    assert len(token) == 64
    int(token, 16)


def test_magic_tokens_are_unique():
    assert len({generate_magic_token() for _ in range(50)}) == 50


def test_hash_token_is_deterministic_sha256():
    assert hash_token("abc") == hash_token("abc")
    assert hash_token("abc") != hash_token("abd")
    assert len(hash_token("abc")) == 64


# ── Session tokens ────────────────────────────────────────────────────────────


def test_session_token_roundtrip():
    token = create_session_token(USER_ID, SESSION_ID)
    claims = decode_session_token(token)
    assert claims["sub"] == USER_ID
    assert claims["sid"] == SESSION_ID
    assert claims["exp"] > claims["iat"]


def test_session_token_is_opaque():
    token = create_session_token(USER_ID, SESSION_ID)
    assert len(token.split(".")) == 5
    assert USER_ID not in token


def test_session_token_expiry_defaults_to_thirty_days():
    claims = decode_session_token(create_session_token(USER_ID, SESSION_ID))
    assert claims["exp"] - claims["iat"] == 30 * 24 * 60 * 60


def test_tampered_session_token_rejected():
    token = create_session_token(USER_ID, SESSION_ID)
    with pytest.raises(JOSEError):
        decode_session_token(_tamper(token))


def test_expired_session_token_rejected():
    issued = datetime.now(timezone.utc) - timedelta(days=31)
    token = create_session_token(
        USER_ID, SESSION_ID, expires_delta=timedelta(days=30), now=issued
    )
    with pytest.raises(JOSEError):
        decode_session_token(token)


# ── Webhook signatures ────────────────────────────────────────────────────────


def test_webhook_signature_accepts_matching_body():
    body = b'{"id": 1}'
    signature = sign_webhook_body(body, "shh")
    assert verify_webhook_signature(body, signature, "shh")


def test_webhook_signature_rejects_modified_body():
    signature = sign_webhook_body(b'{"id": 1}', "shh")
    assert not verify_webhook_signature(b'{"id": 2}', signature, "shh")


def test_webhook_signature_rejects_wrong_secret():
    body = b'{"id": 1}'
    assert not verify_webhook_signature(body, sign_webhook_body(body, "other"), "shh")


def test_webhook_signature_fails_closed():
    body = b'{"id": 1}'
    assert not verify_webhook_signature(body, "", "shh")
    assert not verify_webhook_signature(body, sign_webhook_body(body, ""), "")


def test_parse_webhook_body_requires_object():
    assert parse_webhook_body(b'{"id": 1}') == {"id": 1}
    with pytest.raises(ValueError):
        parse_webhook_body(b"[1, 2]")
    with pytest.raises(ValueError):
        parse_webhook_body(b"not json")
