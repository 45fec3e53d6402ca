"""
Session Orchestrator for Expense Ledger

This module ties together the components behind the expense screens:
1. Mount (load active accounts, pick the first, load its expenses and the people lists)
2. Switch account (drop the old list, fetch the new one)
3. Add an expense, optionally creating its owner on the spot

DESIGN DECISION: All mutable state lives in one ExpenseSession object.
Nothing is module-global, so two sessions (two browser tabs, two tests)
never see each other's lists.
"""

from typing import Optional

import structlog

from expense_ledger.config import AppSettings
from expense_ledger.errors import BackendConnectionError
from expense_ledger.models.expense import Expense, ExpenseDraft, OwnerRef
from expense_ledger.notifications import Notifier, NotificationSink
from expense_ledger.services.accounts import AccountRegistry
from expense_ledger.services.ledger import ExpenseLedger
from expense_ledger.services.owners import OwnerDirectory
from expense_ledger.services.storage import (
    BackendInterface,
    InMemoryBackend,
    SupabaseBackend,
    SupabaseClient,
)
from expense_ledger.validation import ExpenseValidator


logger = structlog.get_logger(__name__)


class ExpenseSession:
    """
    One user's view of accounts, expenses and owners.

    Flow:
    1. start() → active accounts, first account selected, people loaded
    2. select_account() → expenses of the chosen account
    3. add/update expenses through `ledger`, manage accounts through `accounts`
    """

    def __init__(
        self,
        backend: BackendInterface,
        notifier: Optional[Notifier] = None,
        settings: Optional[AppSettings] = None,
    ):
        self.backend = backend
        self.notifier = notifier or Notifier()
        validator = ExpenseValidator(settings)
        self.accounts = AccountRegistry(backend, self.notifier, validator)
        self.ledger = ExpenseLedger(
            backend,
            self.accounts,
            self.notifier,
            validator,
            settings,
        )
        self.owners = OwnerDirectory(backend, self.notifier, validator)

    async def start(self) -> None:
        """
        Everything the expense screen needs on mount.

        Each list is fetched once. People lists are optional and may come
        back empty.
        """
        active = await self.accounts.list_active_accounts()
        if active and self.ledger.selected_account_id is None:
            await self.ledger.select_account(active[0].id)
        await self.owners.list_salesmen()
        await self.owners.list_owners()
        logger.info(
            "session_started",
            accounts=len(active),
            selected_account_id=self.ledger.selected_account_id,
        )

    async def select_account(self, account_id: Optional[int]) -> list[Expense]:
        return await self.ledger.select_account(account_id)

    async def add_expense_with_new_owner(
        self,
        account_id: Optional[int],
        draft: ExpenseDraft,
        owner_name: str,
    ) -> Expense:
        """
        Create an owner inline and attribute a new expense to them.

        The owner is created first; if the expense then fails, the owner
        stays (it is a valid owner in its own right).
        """
        owner = await self.owners.create_owner(owner_name)
        self.owners.append_owner(owner)
        attributed = draft.model_copy(
            update={"owner": OwnerRef(id=owner.id), "owner_type": None, "owner_id": None}
        )
        return await self.ledger.add_expense(account_id, attributed)

    @property
    def is_saving(self) -> bool:
        """Any write pending anywhere in the session."""
        return self.accounts.is_saving or self.ledger.is_saving or self.owners.is_saving


def create_session(
    use_backend: bool = True,
    sink: Optional[NotificationSink] = None,
    settings: Optional[AppSettings] = None,
) -> ExpenseSession:
    """
    Factory function to create a session.

    Args:
        use_backend: Whether to use Supabase. Set to False for local demos
                     and tests; the session then runs on the in-memory backend
                     and nothing it writes outlives the process.
        sink: Optional toast function for notifications.
        settings: App settings; read from the environment if None.

    Returns:
        A ready-to-start ExpenseSession

    Raises:
        BackendConnectionError: use_backend is set but Supabase is not
                                configured
    """
    backend: BackendInterface
    if use_backend:
        client = SupabaseClient()
        # Fail fast on missing configuration; the client itself is lazy
        try:
            client.load_settings()
        except BackendConnectionError as e:
            logger.error("backend_not_configured", error=str(e))
            raise
        backend = SupabaseBackend(client)
    else:
        logger.info("session_in_memory")
        backend = InMemoryBackend()

    return ExpenseSession(backend, Notifier(sink), settings)
