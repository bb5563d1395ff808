"""
db/upsert.py
------------
INSERT ... ON CONFLICT helpers.

PostgreSQL and SQLite share the ON CONFLICT syntax but SQLAlchemy exposes
it through dialect-specific insert() constructs, so the dialect is picked
from the session's bind at call time.
"""

from typing import Any, Iterable, Mapping, Optional

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _insert_for(db: AsyncSession, model):
    dialect = db.get_bind().dialect.name
    try:
        return _INSERTS[dialect](model)
    except KeyError:
        raise NotImplementedError(f"Upsert is not supported on dialect '{dialect}'")


async def upsert(
    db: AsyncSession,
    model,
    values: Mapping[str, Any],
    conflict_columns: Iterable[str],
    update_columns: Optional[Iterable[str]] = None,
) -> None:
    """
    Insert a row, or update it in place when the conflict columns match.

    update_columns defaults to every value that is not part of the key.
    Python-side column defaults (ids) still apply to the insert branch.
    """
    keys = list(conflict_columns)
    if update_columns is None:
        update_columns = [c for c in values if c not in keys]

    stmt = _insert_for(db, model).values(**values)
    stmt = stmt.on_conflict_do_update(
        index_elements=keys,
        set_={c: stmt.excluded[c] for c in update_columns},
    )
    await db.execute(stmt)


async def insert_ignore(
    db: AsyncSession,
    model,
    values: Mapping[str, Any],
    conflict_columns: Iterable[str],
) -> None:
    """Insert a row unless one with the same conflict columns already exists."""
    stmt = _insert_for(db, model).values(**values)
    stmt = stmt.on_conflict_do_nothing(index_elements=list(conflict_columns))
    await db.execute(stmt)
