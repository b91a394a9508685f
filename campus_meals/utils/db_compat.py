"""
Database compatibility helpers for SQLite and PostgreSQL.

Both dialects support ``INSERT ... ON CONFLICT DO UPDATE/DO NOTHING``; only the
construct that builds it differs.
"""
from typing import Any, Iterable, Optional

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession


def _dialect_insert(db: AsyncSession):
    if db.bind.dialect.name == "postgresql":
        return postgresql.insert
    return sqlite.insert


async def upsert(
    db: AsyncSession,
    model,
    values: dict[str, Any],
    conflict_on: Iterable[str],
    update: Iterable[str],
    returning: Optional[Any] = None,
):
    """Insert a row, or update ``update`` columns when ``conflict_on`` collides.

    ``conflict_on`` must match a unique constraint on the table. When
    ``returning`` is given, the value of that column for the written row is
    returned.
    """
    insert = _dialect_insert(db)
    stmt = insert(model).values(**values)
    stmt = stmt.on_conflict_do_update(
        index_elements=list(conflict_on),
        set_={col: stmt.excluded[col] for col in update},
    )
    if returning is not None:
        stmt = stmt.returning(returning)
        result = await db.execute(stmt)
        return result.scalar_one()

    await db.execute(stmt)
    return None


async def insert_ignore(db: AsyncSession, model, values: dict[str, Any], conflict_on: Iterable[str]) -> bool:
    """Insert a row unless ``conflict_on`` already exists; True when a row was written"""
    insert = _dialect_insert(db)
    stmt = insert(model).values(**values).on_conflict_do_nothing(index_elements=list(conflict_on))
    result = await db.execute(stmt)
    return result.rowcount == 1
