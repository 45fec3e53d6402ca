"""
Tests for the owner directory and owner picker tokens.
"""

import pytest
from decimal import Decimal

from expense_ledger.errors import BackendError, ValidationError
from expense_ledger.models import ExpenseDraft, NoOwner, OwnerRef, SalesmanRef
from expense_ledger.services.owners import (
    OwnerDirectory,
    decode_owner_token,
    encode_owner_token,
)
from expense_ledger.services.storage import (
    EXPENSE_OWNERS_TABLE,
    EXPENSES_TABLE,
    SALESMEN_TABLE,
    InMemoryBackend,
)
from expense_ledger.validation import ExpenseValidator


@pytest.fixture
def directory(backend, notifier, settings):
    return OwnerDirectory(backend, notifier, ExpenseValidator(settings))


class TestOwnerTokens:
    """Tests for picker token encoding."""

    def test_encode(self):
        """Test encoding each attribution."""
        assert encode_owner_token(NoOwner()) == ""
        assert encode_owner_token(SalesmanRef(id=7)) == "salesman-7"
        assert encode_owner_token(OwnerRef(id=7)) == "owner-7"

    def test_decode(self):
        """Test decoding each token."""
        assert decode_owner_token("") == NoOwner()
        assert decode_owner_token(None) == NoOwner()
        assert decode_owner_token("salesman-7") == SalesmanRef(id=7)
        assert decode_owner_token("owner-12") == OwnerRef(id=12)

    @pytest.mark.parametrize("token", ["owner", "owner-", "customer-3", "owner-x"])
    def test_decode_malformed(self, token):
        """Test that malformed tokens are rejected."""
        with pytest.raises(ValidationError):
            decode_owner_token(token)


class TestOwnerLists:
    """Tests for listing salesmen and owners."""

    @pytest.mark.asyncio
    async def test_lists(self, directory, backend):
        """Test that both lists are loaded."""
        backend.seed(SALESMEN_TABLE, [{"name": "Sam"}, {"name": "Tara"}])
        backend.seed(EXPENSE_OWNERS_TABLE, [{"name": "Ali"}])
        assert [p.name for p in await directory.list_salesmen()] == ["Sam", "Tara"]
        assert [p.name for p in await directory.list_owners()] == ["Ali"]
        assert backend.calls == [("select", SALESMEN_TABLE), ("select", EXPENSE_OWNERS_TABLE)]

    @pytest.mark.asyncio
    async def test_missing_table_is_empty_and_silent(self, notifier, toasts, settings):
        """Test that a missing people table yields [] without a toast."""
        backend = InMemoryBackend(missing_tables=[EXPENSE_OWNERS_TABLE, SALESMEN_TABLE])
        directory = OwnerDirectory(backend, notifier, ExpenseValidator(settings))
        assert await directory.list_owners() == []
        assert await directory.list_salesmen() == []
        assert toasts.shown == []

    @pytest.mark.asyncio
    async def test_picker_options(self, directory, backend):
        """Test the combined picker: nobody first, then salesmen, then owners."""
        backend.seed(SALESMEN_TABLE, [{"name": "Sam"}])
        backend.seed(EXPENSE_OWNERS_TABLE, [{"name": "Ali"}])
        await directory.list_salesmen()
        await directory.list_owners()
        assert directory.picker_options() == [
            ("", "No owner"),
            ("salesman-1", "Sam (Salesman)"),
            ("owner-1", "Ali (Owner)"),
        ]


class TestCreateOwner:
    """Tests for creating owners."""

    @pytest.mark.asyncio
    async def test_create_owner(self, directory, backend, toasts):
        """Test that an owner is created with a trimmed name."""
        owner = await directory.create_owner("  Ali ")
        assert owner.name == "Ali"
        assert backend.rows(EXPENSE_OWNERS_TABLE)[0]["name"] == "Ali"
        assert toasts.successes == ["Owner added successfully"]
        # Not added to the list until the caller asks
        assert directory.owners == []
        directory.append_owner(owner)
        assert directory.owners == [owner]

    @pytest.mark.asyncio
    async def test_blank_name(self, directory, backend, toasts):
        """Test that a blank name is refused without a call."""
        with pytest.raises(ValidationError):
            await directory.create_owner("   ")
        assert backend.calls == []
        assert toasts.errors == ["Owner name cannot be empty"]

    @pytest.mark.asyncio
    async def test_insert_failure(self, directory, backend, toasts):
        """Test that a rejected insert is reported once."""
        backend.fail_next(EXPENSE_OWNERS_TABLE, "insert", "permission denied")
        with pytest.raises(BackendError):
            await directory.create_owner("Ali")
        assert toasts.errors == ["Failed to add owner: permission denied"]
        assert directory.is_saving is False

    @pytest.mark.asyncio
    async def test_owner_list_fails_then_create_and_use(self, session, backend, toasts, seeded):
        """Test that a failed owner list does not stop creating and using an owner."""
        backend.fail_next(EXPENSE_OWNERS_TABLE, "select", "timeout")
        assert await session.owners.list_owners() == []

        owner = await session.owners.create_owner("Ali")
        session.owners.append_owner(owner)

        saved = await session.ledger.add_expense(
            seeded["Ads"]["id"],
            ExpenseDraft(amount=Decimal("30"), owner_type="owner", owner_id=owner.id),
        )
        assert saved.owner == OwnerRef(id=owner.id)
        assert backend.rows(EXPENSES_TABLE)[-1]["owner_type"] == "owner"
        assert toasts.errors == []
