"""
In-Memory Backend Implementation

Behaves like the hosted store closely enough for tests and local demos:
backend-assigned ids and timestamps, equality filters, stable ordering,
and the expenses -> expense_accounts foreign key.

Rows are passed through JSON on the way in and out, so anything that would
not survive the trip to Supabase fails here too.
"""

import json
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Optional, Sequence

import structlog

from expense_ledger.services.storage.interface import (
    EXPENSE_ACCOUNTS_TABLE,
    EXPENSES_TABLE,
    BackendError,
    BackendInterface,
    OrderBy,
    Row,
)


logger = structlog.get_logger(__name__)


# (child table, column) -> parent table
DEFAULT_FOREIGN_KEYS = {
    (EXPENSES_TABLE, "account_id"): EXPENSE_ACCOUNTS_TABLE,
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _json_copy(row: Row) -> Row:
    return json.loads(json.dumps(row))


def _sort_key(column: str):
    # NULLs sort last in ascending order, like Postgres
    def key(row: Row):
        value = row.get(column)
        return (value is None, value if value is not None else 0)
    return key


class InMemoryBackend(BackendInterface):
    """
    Dict-of-tables backend.

    Extras for tests:
    - missing_tables: tables that behave as if they don't exist
    - fail_next(): make the next call of an operation on a table fail
    - calls: every (operation, table) pair, in order
    """

    def __init__(
        self,
        missing_tables: Sequence[str] = (),
        foreign_keys: Optional[dict[tuple[str, str], str]] = None,
    ):
        self._tables: dict[str, list[Row]] = defaultdict(list)
        self._next_id: dict[str, int] = defaultdict(lambda: 1)
        self._failures: dict[tuple[str, str], list[str]] = defaultdict(list)
        self.missing_tables = set(missing_tables)
        self.foreign_keys = (
            DEFAULT_FOREIGN_KEYS if foreign_keys is None else foreign_keys
        )
        self.calls: list[tuple[str, str]] = []

    # ------------------------------------------------------------------
    # Test helpers
    # ------------------------------------------------------------------

    def seed(self, table: str, rows: Sequence[Row]) -> list[Row]:
        """Insert rows directly, bypassing failure injection and the call log."""
        stored = [self._store(table, row) for row in rows]
        return [_json_copy(row) for row in stored]

    def fail_next(self, table: str, operation: str, message: str = "Simulated backend failure") -> None:
        """Make the next `operation` on `table` raise BackendError."""
        self._failures[(table, operation)].append(message)

    def calls_to(self, table: str) -> list[str]:
        """Operations issued against one table."""
        return [operation for operation, name in self.calls if name == table]

    def rows(self, table: str) -> list[Row]:
        return [_json_copy(row) for row in self._tables.get(table, [])]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _enter(self, operation: str, table: str) -> list[Row]:
        self.calls.append((operation, table))
        if table in self.missing_tables:
            raise BackendError(
                f'relation "public.{table}" does not exist',
                code="42P01",
            )
        pending = self._failures.get((table, operation))
        if pending:
            raise BackendError(pending.pop(0))
        return self._tables[table]

    def _store(self, table: str, row: Row) -> Row:
        stored = _json_copy(row)
        stored["id"] = self._next_id[table]
        self._next_id[table] += 1
        timestamp = _now()
        stored.setdefault("created_at", timestamp)
        stored.setdefault("updated_at", timestamp)
        self._tables[table].append(stored)
        return stored

    def _check_references(self, table: str, row: Row) -> None:
        for (child, column), parent in self.foreign_keys.items():
            if child != table or row.get(column) is None:
                continue
            if not any(r["id"] == row[column] for r in self._tables[parent]):
                raise BackendError(
                    f'insert or update on table "{table}" violates foreign key '
                    f'constraint "{table}_{column}_fkey"',
                    code="23503",
                )

    def _check_not_referenced(self, table: str, row_id: int) -> None:
        for (child, column), parent in self.foreign_keys.items():
            if parent != table:
                continue
            if any(r.get(column) == row_id for r in self._tables[child]):
                raise BackendError(
                    f'update or delete on table "{table}" violates foreign key '
                    f'constraint "{child}_{column}_fkey" on table "{child}"',
                    code="23503",
                )

    @staticmethod
    def _matches(row: Row, filters: Optional[dict[str, Any]]) -> bool:
        return all(row.get(column) == value for column, value in (filters or {}).items())

    @staticmethod
    def _project(row: Row, columns: str) -> Row:
        if columns.strip() == "*":
            return _json_copy(row)
        wanted = [c.strip() for c in columns.split(",") if c.strip()]
        return _json_copy({c: row.get(c) for c in wanted})

    # ------------------------------------------------------------------
    # Interface
    # ------------------------------------------------------------------

    async def select(
        self,
        table: str,
        *,
        columns: str = "*",
        filters: Optional[dict[str, Any]] = None,
        order: Sequence[OrderBy] = (),
    ) -> list[Row]:
        rows = [row for row in self._enter("select", table) if self._matches(row, filters)]
        # Sort by the last term first; Python's sort is stable, so ties
        # keep insertion order.
        for term in reversed(list(order)):
            rows.sort(key=_sort_key(term.column), reverse=term.descending)
        return [self._project(row, columns) for row in rows]

    async def select_one(self, table: str, row_id: int) -> Optional[Row]:
        for row in self._enter("select_one", table):
            if row["id"] == row_id:
                return _json_copy(row)
        return None

    async def insert(self, table: str, row: Row) -> Row:
        self._enter("insert", table)
        self._check_references(table, row)
        stored = self._store(table, row)
        logger.debug("memory_insert", table=table, row_id=stored["id"])
        return _json_copy(stored)

    async def update(self, table: str, row_id: int, fields: Row) -> Optional[Row]:
        rows = self._enter("update", table)
        for row in rows:
            if row["id"] == row_id:
                changes = _json_copy(fields)
                changes.pop("id", None)
                self._check_references(table, {**row, **changes})
                row.update(changes)
                row["updated_at"] = _now()
                return _json_copy(row)
        return None

    async def delete(self, table: str, row_id: int) -> None:
        rows = self._enter("delete", table)
        self._check_not_referenced(table, row_id)
        rows[:] = [row for row in rows if row["id"] != row_id]

    async def count(
        self,
        table: str,
        filters: Optional[dict[str, Any]] = None,
    ) -> int:
        rows = self._enter("count", table)
        return sum(1 for row in rows if self._matches(row, filters))
