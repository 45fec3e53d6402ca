"""Services package."""

from expense_ledger.services.accounts import AccountRegistry
from expense_ledger.services.ledger import ExpenseLedger
from expense_ledger.services.owners import (
    OwnerDirectory,
    decode_owner_token,
    encode_owner_token,
)
from expense_ledger.services.storage import (
    BackendConnectionError,
    BackendError,
    BackendInterface,
    InMemoryBackend,
    NotFoundError,
    SupabaseBackend,
    SupabaseClient,
)

__all__ = [
    # Components
    "AccountRegistry",
    "ExpenseLedger",
    "OwnerDirectory",
    "decode_owner_token",
    "encode_owner_token",
    # Storage
    "BackendConnectionError",
    "BackendError",
    "BackendInterface",
    "InMemoryBackend",
    "NotFoundError",
    "SupabaseBackend",
    "SupabaseClient",
]
