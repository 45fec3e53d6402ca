"""
Shared fixtures.

Every test runs against the in-memory backend; no test talks to Supabase.
"""

import asyncio
from datetime import date

import pytest

from expense_ledger.config import AppSettings
from expense_ledger.models import Notification
from expense_ledger.notifications import Notifier
from expense_ledger.orchestrator import ExpenseSession
from expense_ledger.services.storage import (
    EXPENSE_ACCOUNTS_TABLE,
    EXPENSES_TABLE,
    InMemoryBackend,
)


class GatedBackend(InMemoryBackend):
    """
    In-memory backend whose expense selects can be held open.

    A select for a gated account waits until the test releases it, which
    lets a test finish a later fetch before an earlier one.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.gates: dict[int, asyncio.Event] = {}

    def hold(self, account_id: int) -> asyncio.Event:
        gate = asyncio.Event()
        self.gates[account_id] = gate
        return gate

    async def select(self, table, *, columns="*", filters=None, order=()):
        account_id = (filters or {}).get("account_id")
        if table == EXPENSES_TABLE and account_id in self.gates:
            await self.gates[account_id].wait()
        return await super().select(table, columns=columns, filters=filters, order=order)


class Toasts:
    """Collects what the user would have seen."""

    def __init__(self):
        self.shown: list[Notification] = []

    def __call__(self, notification: Notification) -> None:
        self.shown.append(notification)

    @property
    def errors(self) -> list[str]:
        return [n.message for n in self.shown if n.level.value == "error"]

    @property
    def successes(self) -> list[str]:
        return [n.message for n in self.shown if n.level.value == "success"]


@pytest.fixture
def settings():
    return AppSettings(
        resort_expenses_after_insert=False,
        max_expense_amount=10_000_000.0,
        future_date_tolerance_days=7,
    )


@pytest.fixture
def backend():
    return InMemoryBackend()


@pytest.fixture
def gated_backend():
    return GatedBackend()


@pytest.fixture
def toasts():
    return Toasts()


@pytest.fixture
def notifier(toasts):
    return Notifier(sink=toasts)


@pytest.fixture
def session(backend, notifier, settings):
    return ExpenseSession(backend, notifier, settings)


@pytest.fixture
def seeded(backend):
    """
    Three accounts (one inactive) and a few expenses on Office Rent.

    Returns the seeded account rows keyed by name.
    """
    accounts = backend.seed(EXPENSE_ACCOUNTS_TABLE, [
        {"name": "Office Rent", "category": "Rent", "description": None, "is_active": True},
        {"name": "Electricity", "category": "Utilities", "description": "Main meter", "is_active": True},
        {"name": "Old Van", "category": "Transportation", "description": None, "is_active": False},
        {"name": "Ads", "category": "Marketing", "description": None, "is_active": True},
    ])
    by_name = {row["name"]: row for row in accounts}
    rent = by_name["Office Rent"]["id"]
    backend.seed(EXPENSES_TABLE, [
        {
            "date": date(2024, 1, 1).isoformat(),
            "category": "Rent",
            "name": "Office Rent",
            "description": "January",
            "amount": 500.0,
            "payment_method": "Bank",
            "owner_type": None,
            "owner_id": None,
            "account_id": rent,
        },
        {
            "date": date(2024, 3, 1).isoformat(),
            "category": "Rent",
            "name": "Office Rent",
            "description": "March",
            "amount": 500.0,
            "payment_method": "Bank",
            "owner_type": None,
            "owner_id": None,
            "account_id": rent,
        },
    ])
    return by_name
