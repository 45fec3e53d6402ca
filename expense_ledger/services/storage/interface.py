"""
Abstract Backend Interface

DESIGN DECISION: We define an abstract interface for the data service.
This allows us to:
1. Talk to Supabase in production
2. Use in-memory storage for testing
3. Keep the account/expense logic decoupled from the wire client

The interface is intentionally table-level - we're not building an ORM.
Rows go in and come out as plain dicts keyed by column name; turning them
into typed records is the job of the wire mapping, not the backend.

Every method may raise BackendError. None of them retry.
"""

from abc import ABC, abstractmethod
from typing import Any, NamedTuple, Optional, Sequence

from expense_ledger.errors import (
    BackendConnectionError,
    BackendError,
    NotFoundError,
)


# Table names (the effective wire contract)
EXPENSE_ACCOUNTS_TABLE = "expense_accounts"
EXPENSES_TABLE = "expenses"
SALESMEN_TABLE = "salesmen"
EXPENSE_OWNERS_TABLE = "expense_owners"


Row = dict[str, Any]


class OrderBy(NamedTuple):
    """One ordering term of a select."""
    column: str
    descending: bool = False


class BackendInterface(ABC):
    """
    Abstract interface for the hosted relational store.

    Any backend implementation (Supabase, in-memory, ...) must implement
    these methods. The backend owns ids, timestamps, uniqueness and
    foreign keys; callers never assign them.
    """

    @abstractmethod
    async def select(
        self,
        table: str,
        *,
        columns: str = "*",
        filters: Optional[dict[str, Any]] = None,
        order: Sequence[OrderBy] = (),
    ) -> list[Row]:
        """
        Select rows from a table.

        Args:
            table: Table name
            columns: Comma-separated column list, "*" for all
            filters: Equality filters {column: value}
            order: Ordering terms, applied left to right.
                   Ties keep insertion order.

        Returns:
            List of matching rows

        Raises:
            BackendError: If the query fails (including a missing table)
        """
        pass

    @abstractmethod
    async def select_one(self, table: str, row_id: int) -> Optional[Row]:
        """
        Fetch a single row by id.

        Returns:
            The row if found, None otherwise
        """
        pass

    @abstractmethod
    async def insert(self, table: str, row: Row) -> Row:
        """
        Insert one row.

        Args:
            table: Table name
            row: Column values (without id/timestamps)

        Returns:
            The stored row, including backend-assigned id and timestamps

        Raises:
            BackendError: If the insert is rejected
        """
        pass

    @abstractmethod
    async def update(self, table: str, row_id: int, fields: Row) -> Optional[Row]:
        """
        Update columns of one row.

        Returns:
            The updated row if the backend returned it, None otherwise

        Raises:
            BackendError: If the update is rejected
        """
        pass

    @abstractmethod
    async def delete(self, table: str, row_id: int) -> None:
        """
        Delete one row by id.

        Raises:
            BackendError: If the delete is rejected (e.g., foreign key)
        """
        pass

    @abstractmethod
    async def count(
        self,
        table: str,
        filters: Optional[dict[str, Any]] = None,
    ) -> int:
        """
        Exact count of rows matching equality filters.

        Raises:
            BackendError: If the query fails
        """
        pass

    async def ping(self) -> bool:
        """
        Cheap connectivity check.

        Returns True if the expense_accounts table can be read.
        """
        try:
            await self.select(EXPENSE_ACCOUNTS_TABLE, columns="id")
            return True
        except BackendError:
            return False


__all__ = [
    "BackendConnectionError",
    "BackendError",
    "BackendInterface",
    "EXPENSES_TABLE",
    "EXPENSE_ACCOUNTS_TABLE",
    "EXPENSE_OWNERS_TABLE",
    "NotFoundError",
    "OrderBy",
    "Row",
    "SALESMEN_TABLE",
]
