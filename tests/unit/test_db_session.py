"""Tests for engine options in storefront/db/session.py."""

from storefront.db.session import connect_args_for


def test_asyncpg_sessions_are_pinned_to_utc():
    assert connect_args_for("postgresql+asyncpg://u:p@db/shop") == {
        "server_settings": {"timezone": "UTC"}
    }


def test_other_drivers_get_no_extra_options():
    assert connect_args_for("sqlite+aiosqlite://") == {}
