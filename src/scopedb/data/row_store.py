"""Row-level statements against entity tables.

Every method takes an open SQLAlchemy Connection; transaction boundaries are
the caller's business. Keys are plain column -> value dicts.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from sqlalchemy import Connection, Row, Table, and_, delete, insert, select, update
from sqlalchemy.sql.elements import ColumnElement

from scopedb.core.types import WriteOutcome

logger = logging.getLogger(__name__)


def _where(table: Table, key: Mapping[str, Any]) -> ColumnElement[bool]:
    return and_(*[table.c[column] == value for column, value in key.items()])


def _same(stored: Any, candidate: Any) -> bool:
    if stored is None or candidate is None:
        return stored is candidate
    if isinstance(stored, bool) or isinstance(candidate, bool):
        return bool(stored) == bool(candidate)
    return stored == candidate


class RowStore:
    """Select / insert / update / delete single rows by key."""

    def fetch_one(
        self, conn: Connection, table: Table, key: Mapping[str, Any]
    ) -> Row[Any] | None:
        return conn.execute(select(table).where(_where(table, key))).first()

    def fetch_all(
        self, conn: Connection, table: Table, key: Mapping[str, Any], order_by: str | None = None
    ) -> list[Row[Any]]:
        stmt = select(table).where(_where(table, key))
        if order_by is not None:
            stmt = stmt.order_by(table.c[order_by])
        return list(conn.execute(stmt).all())

    def fetch_column(
        self, conn: Connection, table: Table, column: str, key: Mapping[str, Any]
    ) -> list[Any]:
        stmt = select(table.c[column]).where(_where(table, key)).order_by(table.c[column])
        return list(conn.execute(stmt).scalars().all())

    def exists(self, conn: Connection, table: Table, key: Mapping[str, Any]) -> bool:
        first_key = next(iter(key))
        stmt = select(table.c[first_key]).where(_where(table, key)).limit(1)
        return conn.execute(stmt).first() is not None

    def insert(self, conn: Connection, table: Table, values: Mapping[str, Any]) -> Any:
        """Insert a row.

        Returns:
            The first primary key value of the new row
        """
        result = conn.execute(insert(table).values(dict(values)))
        inserted = result.inserted_primary_key
        return inserted[0] if inserted else None

    def delete(self, conn: Connection, table: Table, key: Mapping[str, Any]) -> int:
        result = conn.execute(delete(table).where(_where(table, key)))
        return result.rowcount

    def apply(
        self,
        conn: Connection,
        table: Table,
        key: Mapping[str, Any],
        columns: Mapping[str, Any],
        insert_defaults: Mapping[str, Any] | None = None,
    ) -> WriteOutcome:
        """Write `columns` into the row identified by `key`.

        Only the listed columns are touched. A missing row is inserted with
        `insert_defaults` filling the columns not listed; an identical row is
        left alone.

        Returns:
            INSERTED, UPDATED or UNCHANGED
        """
        where = _where(table, key)
        existing = conn.execute(
            select(*[table.c[name] for name in columns]).where(where)
        ).first()

        if existing is None:
            conn.execute(insert(table).values({**(insert_defaults or {}), **columns, **key}))
            return WriteOutcome.INSERTED

        stored = existing._mapping
        if all(_same(stored[name], value) for name, value in columns.items()):
            return WriteOutcome.UNCHANGED

        result = conn.execute(update(table).where(where).values(dict(columns)))
        if result.rowcount == 0:
            # Row vanished between the select and the update
            logger.warning(f"Row {dict(key)} disappeared from {table.name}; re-inserting")
            conn.execute(insert(table).values({**(insert_defaults or {}), **columns, **key}))
            return WriteOutcome.INSERTED
        return WriteOutcome.UPDATED
