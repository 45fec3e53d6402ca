"""
Tests for the session orchestrator.
"""

import pytest
from datetime import date
from decimal import Decimal

from expense_ledger.config import get_settings
from expense_ledger.errors import BackendConnectionError, ConflictError, ValidationError
from expense_ledger.models import ExpenseDraft, OwnerRef, PaymentMethod
from expense_ledger.orchestrator import ExpenseSession, create_session
from expense_ledger.services.storage import (
    EXPENSE_OWNERS_TABLE,
    EXPENSES_TABLE,
    SALESMEN_TABLE,
    InMemoryBackend,
    SupabaseBackend,
)


class TestSessionStart:
    """Tests for mounting the expense screen."""

    @pytest.mark.asyncio
    async def test_start_selects_first_active_account(self, session, backend, seeded):
        """Test that start loads accounts, selects the first and loads people."""
        backend.seed(SALESMEN_TABLE, [{"name": "Sam"}])
        await session.start()
        assert session.ledger.selected_account_id == seeded["Ads"]["id"]
        assert session.ledger.expenses == []
        assert [p.name for p in session.owners.salesmen] == ["Sam"]
        assert session.owners.owners == []

    @pytest.mark.asyncio
    async def test_start_without_accounts(self, session, backend):
        """Test that an empty store selects nothing and fetches no expenses."""
        await session.start()
        assert session.ledger.selected_account_id is None
        assert backend.calls_to(EXPENSES_TABLE) == []

    @pytest.mark.asyncio
    async def test_switch_account(self, session, seeded):
        """Test switching to an account with expenses."""
        await session.start()
        expenses = await session.select_account(seeded["Office Rent"]["id"])
        assert len(expenses) == 2


class TestInlineOwner:
    """Tests for creating an owner while adding an expense."""

    @pytest.mark.asyncio
    async def test_add_expense_with_new_owner(self, session, backend, seeded):
        """Test that the new owner is created, listed and attributed."""
        saved = await session.add_expense_with_new_owner(
            seeded["Ads"]["id"], ExpenseDraft(amount=Decimal("12.50")), "Ali"
        )
        owner = session.owners.owners[0]
        assert owner.name == "Ali"
        assert saved.owner == OwnerRef(id=owner.id)
        assert backend.rows(EXPENSE_OWNERS_TABLE)[0]["name"] == "Ali"
        assert session.is_saving is False

    @pytest.mark.asyncio
    async def test_blank_owner_name_stops_everything(self, session, backend, seeded):
        """Test that a blank owner name creates neither owner nor expense."""
        with pytest.raises(ValidationError):
            await session.add_expense_with_new_owner(
                seeded["Ads"]["id"], ExpenseDraft(amount=Decimal("5")), " "
            )
        assert backend.rows(EXPENSE_OWNERS_TABLE) == []
        assert len(backend.rows(EXPENSES_TABLE)) == 2


class TestCreateSession:
    """Tests for the session factory."""

    def test_in_memory(self, settings):
        """Test creating a session without a backend."""
        session = create_session(use_backend=False, settings=settings)
        assert isinstance(session, ExpenseSession)
        assert isinstance(session.backend, InMemoryBackend)

    def test_unconfigured_backend_raises(self, monkeypatch, tmp_path, settings):
        """Test that missing Supabase settings are an error, not a silent in-memory store."""
        for name in ("SUPABASE_URL", "VITE_SUPABASE_URL", "SUPABASE_ANON_KEY", "VITE_SUPABASE_ANON_KEY"):
            monkeypatch.delenv(name, raising=False)
        monkeypatch.chdir(tmp_path)
        get_settings.cache_clear()
        with pytest.raises(BackendConnectionError, match="SUPABASE_URL"):
            create_session(settings=settings)

    def test_configured_backend(self, monkeypatch, settings):
        """Test that configured settings select Supabase (no connection yet)."""
        monkeypatch.setenv("SUPABASE_URL", "https://example.supabase.co")
        monkeypatch.setenv("SUPABASE_ANON_KEY", "anon-key")
        get_settings.cache_clear()
        session = create_session(settings=settings)
        assert isinstance(session.backend, SupabaseBackend)


class TestEndToEnd:
    """Whole flows through one session."""

    @pytest.mark.asyncio
    async def test_new_account_first_expense(self, session):
        """Test creating Office Rent and booking its first expense."""
        account = await session.accounts.create_account("Office Rent", "Rent")
        await session.start()
        assert session.ledger.selected_account_id == account.id

        await session.ledger.add_expense(account.id, ExpenseDraft(
            date=date(2024, 1, 15),
            amount=Decimal("5000"),
            payment_method=PaymentMethod.CASH,
        ))

        expenses = await session.ledger.list_expenses(account.id)
        assert len(expenses) == 1
        assert expenses[0].category == "Rent"
        assert expenses[0].amount == Decimal("5000")
        assert expenses[0].owner_id is None
        assert expenses[0].owner_type is None

    @pytest.mark.asyncio
    async def test_delete_after_emptying_is_refused(self, session):
        """Test that an account with a booked expense can only be deactivated."""
        account = await session.accounts.create_account("Ads", "Marketing")
        await session.ledger.add_expense(account.id, ExpenseDraft(amount=Decimal("10")))

        with pytest.raises(ConflictError):
            await session.accounts.delete_account(account.id)
        await session.accounts.set_active(account.id, False)

        assert await session.accounts.list_active_accounts() == []
        assert [a.id for a in await session.accounts.list_all_accounts()] == [account.id]
