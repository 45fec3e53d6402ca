"""
Storage Services Package

Provides the abstract backend interface and concrete implementations.
Supabase is the production backend; the in-memory backend serves tests
and local demos.
"""

from expense_ledger.services.storage.interface import (
    EXPENSES_TABLE,
    EXPENSE_ACCOUNTS_TABLE,
    EXPENSE_OWNERS_TABLE,
    SALESMEN_TABLE,
    BackendConnectionError,
    BackendError,
    BackendInterface,
    NotFoundError,
    OrderBy,
    Row,
)
from expense_ledger.services.storage.memory import InMemoryBackend
from expense_ledger.services.storage.supabase_backend import (
    SupabaseBackend,
    SupabaseClient,
    describe_backend_error,
)

__all__ = [
    # Interface
    "BackendInterface",
    "OrderBy",
    "Row",
    # Tables
    "EXPENSES_TABLE",
    "EXPENSE_ACCOUNTS_TABLE",
    "EXPENSE_OWNERS_TABLE",
    "SALESMEN_TABLE",
    # Exceptions
    "BackendConnectionError",
    "BackendError",
    "NotFoundError",
    # Implementations
    "InMemoryBackend",
    "SupabaseBackend",
    "SupabaseClient",
    "describe_backend_error",
]
