"""
Wire Mapping

Translation between backend rows and typed records, one function pair per
entity. Nothing here touches the network, so the mapping is tested on its
own.

Reads are tolerant: a multi-word column is taken from its snake_case key
and, if that is missing or null, from the camelCase key (rows written by
older screens used both). Writes are strict: only snake_case keys, only
JSON-safe values.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Optional

import structlog
from pydantic import ValidationError as ModelValidationError

from expense_ledger.errors import BackendError, ValidationError
from expense_ledger.models.expense import (
    Expense,
    ExpenseAccount,
    NoOwner,
    Person,
    attribution_from_parts,
    attribution_to_parts,
)
from expense_ledger.services.storage.interface import Row


logger = structlog.get_logger(__name__)

CENTS = Decimal("0.01")


def _pick(row: Row, snake: str, camel: str, default: Any = None) -> Any:
    """Value under the snake_case key, falling back to the camelCase key."""
    value = row.get(snake)
    if value is None:
        value = row.get(camel)
    return default if value is None else value


def _to_decimal(value: Any, row: Row) -> Decimal:
    try:
        return Decimal(str(value)).quantize(CENTS)
    except (InvalidOperation, TypeError, ValueError):
        raise BackendError(f"Malformed amount {value!r} in expenses row {row.get('id')}")


# =============================================================================
# EXPENSES
# =============================================================================

def expense_from_row(row: Row) -> Expense:
    """Parse an expenses row into an Expense."""
    owner_type = _pick(row, "owner_type", "ownerType")
    owner_id = _pick(row, "owner_id", "ownerId")
    try:
        owner = attribution_from_parts(owner_type, owner_id)
    except ValidationError:
        # Half-attributed legacy rows are shown unattributed rather than
        # hiding the whole list.
        logger.warning(
            "expense_owner_inconsistent",
            expense_id=row.get("id"),
            owner_type=owner_type,
            owner_id=owner_id,
        )
        owner = NoOwner()

    amount = row.get("amount")
    try:
        return Expense.model_validate({
            "id": row.get("id"),
            "date": row.get("date"),
            "category": row.get("category"),
            "name": row.get("name"),
            "description": row.get("description"),
            "amount": _to_decimal(amount, row) if amount is not None else None,
            "payment_method": _pick(row, "payment_method", "paymentMethod"),
            "owner": owner,
            "account_id": _pick(row, "account_id", "accountId"),
            "created_at": row.get("created_at"),
            "updated_at": row.get("updated_at"),
        })
    except ModelValidationError as e:
        raise BackendError(f"Malformed expenses row {row.get('id')}: {e}") from e


def expense_to_row(expense: Expense, include_id: bool = False) -> Row:
    """
    Expense as an expenses row.

    Timestamps are never written; the backend owns them. The amount is sent
    as a numeric string so no precision is lost on the way to the numeric
    column.
    """
    owner_type, owner_id = attribution_to_parts(expense.owner)
    row: Row = {
        "date": expense.date.isoformat(),
        "category": expense.category,
        "name": expense.name,
        "description": expense.description,
        "amount": str(expense.amount),
        "payment_method": expense.payment_method.value,
        "owner_id": owner_id,
        "owner_type": owner_type.value if owner_type else None,
        "account_id": expense.account_id,
    }
    if include_id:
        row["id"] = expense.id
    return row


# =============================================================================
# ACCOUNTS
# =============================================================================

def account_from_row(row: Row) -> ExpenseAccount:
    """Parse an expense_accounts row into an ExpenseAccount."""
    try:
        return ExpenseAccount.model_validate({
            "id": row.get("id"),
            "name": row.get("name"),
            "category": row.get("category"),
            "description": row.get("description") or None,
            "is_active": _pick(row, "is_active", "isActive", default=True),
            "created_at": _pick(row, "created_at", "createdAt"),
            "updated_at": _pick(row, "updated_at", "updatedAt"),
        })
    except ModelValidationError as e:
        raise BackendError(f"Malformed expense_accounts row {row.get('id')}: {e}") from e


def account_changes_to_row(changes: dict[str, Any]) -> Row:
    """Account fields (domain field names) as expense_accounts columns.

    Used for inserts and partial updates alike; only the given fields are
    written."""
    row: Row = {}
    for field, value in changes.items():
        if field == "category" and value is not None:
            value = getattr(value, "value", value)
        row[field] = value
    return row


# =============================================================================
# PEOPLE
# =============================================================================

def person_from_row(row: Row, table: Optional[str] = None) -> Person:
    """Parse a salesmen / expense_owners row into a Person."""
    try:
        return Person.model_validate({"id": row.get("id"), "name": row.get("name")})
    except ModelValidationError as e:
        raise BackendError(f"Malformed {table or 'person'} row {row.get('id')}: {e}") from e
