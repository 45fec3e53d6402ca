"""
Supabase Backend Implementation

DESIGN DECISION: Supabase is the production data service because:
1. It is a managed Postgres - transactions, constraints and ordering for free
2. Table-level CRUD over HTTP is exactly the surface the screens need
3. The same project is shared with the rest of the business front end

TRADEOFFS:
- Every call is a network round trip (we keep owned in-memory lists)
- Errors come back as PostgREST payloads (we turn them into BackendError)
- No retries: a failed request is reported once and left alone

The implementation follows the abstract interface, so tests run against
the in-memory backend without changing any business logic.
"""

import json
from typing import Any, Optional, Sequence

import httpx
import structlog
from postgrest.exceptions import APIError
from pydantic import ValidationError as SettingsValidationError
from supabase import AsyncClient, acreate_client

from expense_ledger.config import SupabaseSettings, get_settings
from expense_ledger.services.storage.interface import (
    BackendConnectionError,
    BackendError,
    BackendInterface,
    OrderBy,
    Row,
)


logger = structlog.get_logger(__name__)


def describe_backend_error(err: Any) -> str:
    """
    Best human-readable message for an error coming out of Supabase.

    PostgREST errors carry `message`; auth-style errors carry
    `error_description`; anything else is shown as a string or as JSON.
    """
    message = getattr(err, "message", None)
    if isinstance(message, str) and message:
        return message
    if isinstance(err, dict):
        for key in ("message", "error_description"):
            if isinstance(err.get(key), str) and err[key]:
                return err[key]
    description = getattr(err, "error_description", None)
    if isinstance(description, str) and description:
        return description
    if isinstance(err, str):
        return err
    if isinstance(err, Exception) and str(err):
        return str(err)
    try:
        return json.dumps(err)
    except (TypeError, ValueError):
        return "Unknown error"


def _filter_value(value: Any) -> Any:
    """PostgREST filter literal for a Python value."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return value


class SupabaseClient:
    """
    Low-level Supabase client wrapper.

    Creates the async client lazily from configuration, so importing this
    module never requires credentials.
    """

    def __init__(self, settings: Optional[SupabaseSettings] = None):
        self._client: Optional[AsyncClient] = None
        self._settings = settings

    def load_settings(self) -> SupabaseSettings:
        if self._settings is None:
            try:
                self._settings = get_settings().supabase
            except SettingsValidationError as e:
                raise BackendConnectionError(
                    "Supabase is not configured. Set SUPABASE_URL and "
                    "SUPABASE_ANON_KEY (or the VITE_ prefixed variants) in the "
                    f"environment or .env file: {e}"
                ) from e
        return self._settings

    async def connect(self) -> AsyncClient:
        """Create the Supabase client on first use."""
        if self._client is None:
            settings = self.load_settings()
            try:
                self._client = await acreate_client(settings.url, settings.anon_key)
            except Exception as e:
                raise BackendConnectionError(f"Failed to create Supabase client: {e}") from e
            logger.info("supabase_client_created", url=settings.url)
        return self._client


class SupabaseBackend(BackendInterface):
    """
    Supabase implementation of the backend interface.

    Each method builds one PostgREST request and executes it.
    """

    def __init__(self, client: Optional[SupabaseClient] = None):
        self._client = client or SupabaseClient()

    async def _execute(self, operation: str, table: str, request):
        """Run a request builder, translating failures into BackendError."""
        try:
            return await request.execute()
        except APIError as e:
            logger.error(
                "backend_request_failed",
                operation=operation,
                table=table,
                code=e.code,
                error=describe_backend_error(e),
            )
            raise BackendError(describe_backend_error(e), code=e.code) from e
        except httpx.HTTPError as e:
            logger.error(
                "backend_unreachable",
                operation=operation,
                table=table,
                error=str(e),
            )
            raise BackendError(f"Could not reach the data service: {e}") from e

    async def select(
        self,
        table: str,
        *,
        columns: str = "*",
        filters: Optional[dict[str, Any]] = None,
        order: Sequence[OrderBy] = (),
    ) -> list[Row]:
        client = await self._client.connect()
        request = client.table(table).select(columns)
        for column, value in (filters or {}).items():
            request = request.eq(column, _filter_value(value))
        for term in order:
            request = request.order(term.column, desc=term.descending)

        response = await self._execute("select", table, request)
        rows = response.data or []
        logger.debug("backend_select", table=table, filters=filters, rows=len(rows))
        return rows

    async def select_one(self, table: str, row_id: int) -> Optional[Row]:
        client = await self._client.connect()
        request = client.table(table).select("*").eq("id", row_id).limit(1)
        response = await self._execute("select_one", table, request)
        return response.data[0] if response.data else None

    async def insert(self, table: str, row: Row) -> Row:
        client = await self._client.connect()
        request = client.table(table).insert(row)
        response = await self._execute("insert", table, request)
        if not response.data:
            raise BackendError(f"Insert into {table} returned no row")
        logger.debug("backend_insert", table=table, row_id=response.data[0].get("id"))
        return response.data[0]

    async def update(self, table: str, row_id: int, fields: Row) -> Optional[Row]:
        client = await self._client.connect()
        request = client.table(table).update(fields).eq("id", row_id)
        response = await self._execute("update", table, request)
        logger.debug("backend_update", table=table, row_id=row_id, fields=sorted(fields))
        return response.data[0] if response.data else None

    async def delete(self, table: str, row_id: int) -> None:
        client = await self._client.connect()
        request = client.table(table).delete().eq("id", row_id)
        await self._execute("delete", table, request)
        logger.debug("backend_delete", table=table, row_id=row_id)

    async def count(
        self,
        table: str,
        filters: Optional[dict[str, Any]] = None,
    ) -> int:
        client = await self._client.connect()
        request = client.table(table).select("*", count="exact", head=True)
        for column, value in (filters or {}).items():
            request = request.eq(column, _filter_value(value))
        response = await self._execute("count", table, request)
        return response.count or 0
