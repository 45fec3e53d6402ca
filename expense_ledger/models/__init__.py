"""
Data Models Package

This package contains all Pydantic models used by the expense layer.
All data flowing between the backend and the screens must conform to these schemas.
"""

from expense_ledger.models.expense import (
    AccountUpdate,
    Attribution,
    Expense,
    ExpenseAccount,
    ExpenseCategory,
    ExpenseDraft,
    NoOwner,
    OwnerRef,
    OwnerType,
    PaymentMethod,
    Person,
    SalesmanRef,
    attribution_from_parts,
    attribution_to_parts,
)
from expense_ledger.models.notification import (
    Notification,
    NotificationLevel,
)
from expense_ledger.models.validation import (
    ValidationIssue,
    ValidationResult,
)

__all__ = [
    # Expense models
    "AccountUpdate",
    "Attribution",
    "Expense",
    "ExpenseAccount",
    "ExpenseCategory",
    "ExpenseDraft",
    "NoOwner",
    "OwnerRef",
    "OwnerType",
    "PaymentMethod",
    "Person",
    "SalesmanRef",
    "attribution_from_parts",
    "attribution_to_parts",
    # Notification models
    "Notification",
    "NotificationLevel",
    # Validation models
    "ValidationIssue",
    "ValidationResult",
]
