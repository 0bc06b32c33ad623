# flag_retention/services/sql_utils.py
"""
Dialect-aware INSERT ... ON CONFLICT DO UPDATE.

Both supported backends resolve a conflicting insert inside a single
statement, so two writers racing on the same key end with one row.
"""

from typing import Any, Iterable

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def upsert(
    db: Session,
    model: Any,
    values: dict[str, Any],
    conflict_columns: Iterable[str],
    update_columns: Iterable[str],
) -> None:
    """
    Insert a row, or update the listed columns of the row it collides with.

    Does not commit.
    """
    dialect = db.get_bind().dialect.name
    insert = _INSERTS.get(dialect)
    if insert is None:
        raise NotImplementedError(f"Upsert is not supported for dialect '{dialect}'")

    stmt = insert(model).values(**values)
    stmt = stmt.on_conflict_do_update(
        index_elements=list(conflict_columns),
        set_={column: stmt.excluded[column] for column in update_columns},
    )
    db.execute(stmt)
