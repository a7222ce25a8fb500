"""Dialect-native INSERT ... ON CONFLICT DO UPDATE statements."""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession


def upsert(
    session: AsyncSession,
    model: Any,
    values: Mapping[str, Any],
    *,
    index_elements: Iterable[str],
    update_fields: Iterable[str],
):
    """Build an upsert for ``model`` keyed on ``index_elements``.

    PostgreSQL is the production backend; SQLite is used by the test suite.
    Both accept the same ``on_conflict_do_update`` shape.
    """

    dialect = session.get_bind().dialect.name
    insert = sqlite_insert if dialect == "sqlite" else pg_insert
    stmt = insert(model).values(**values)
    return stmt.on_conflict_do_update(
        index_elements=list(index_elements),
        set_={field: stmt.excluded[field] for field in update_fields},
    )


__all__ = ["upsert"]
