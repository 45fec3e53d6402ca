"""
Expense Ledger

Expenses booked against the currently selected account.

The ledger owns one list: the expenses of the selected account. Switching
accounts discards it and fetches the new account's expenses. There is no
cross-account cache.

ORDERING:
- A fetched list is ordered by date, newest first (ties keep insertion order)
- A newly added expense is put at the front regardless of its date, so
  the user sees what they just entered (unless
  resort_expenses_after_insert is enabled)
- An updated expense stays where it was

STALE RESPONSES: every fetch is numbered. A response is applied only if no
newer fetch has started since, so a slow response for a previous account
can never overwrite (or mix into) the list for the current one.
"""

from typing import Any, Optional

import structlog

from expense_ledger.config import AppSettings, get_settings
from expense_ledger.errors import BackendError, NotFoundError, ValidationError
from expense_ledger.models.expense import Expense, ExpenseDraft
from expense_ledger.models.validation import ValidationIssue, ValidationResult
from expense_ledger.notifications import Notifier
from expense_ledger.services.accounts import AccountRegistry
from expense_ledger.services.mapping import expense_from_row, expense_to_row
from expense_ledger.services.storage import EXPENSES_TABLE, BackendInterface, OrderBy
from expense_ledger.validation import ExpenseValidator


logger = structlog.get_logger(__name__)

EXPENSE_ORDER = (OrderBy("date", descending=True),)


class ExpenseLedger:
    """
    Expenses of one selected account, kept in sync with writes.

    Flags for the screen:
    - is_loading: a fetch for the selected account is in flight
    - is_saving: an add or update is in flight (disable the submit button)
    """

    def __init__(
        self,
        backend: BackendInterface,
        accounts: AccountRegistry,
        notifier: Optional[Notifier] = None,
        validator: Optional[ExpenseValidator] = None,
        settings: Optional[AppSettings] = None,
    ):
        self._backend = backend
        self._accounts = accounts
        self._notifier = notifier or Notifier()
        self._validator = validator or ExpenseValidator(settings)
        self._settings = settings

        self._selected_account_id: Optional[int] = None
        self._loaded_account_id: Optional[int] = None
        self._expenses: list[Expense] = []
        self._generation = 0

        self.is_loading = False
        self.is_saving = False

    @property
    def settings(self) -> AppSettings:
        if self._settings is None:
            self._settings = get_settings().app
        return self._settings

    @property
    def selected_account_id(self) -> Optional[int]:
        return self._selected_account_id

    @property
    def expenses(self) -> list[Expense]:
        """The visible list for the selected account."""
        return list(self._expenses)

    def _check(self, result: ValidationResult, operation: str) -> None:
        try:
            self._validator.ensure_valid(result, operation)
        except ValidationError as e:
            self._notifier.failure(operation, e)
            raise

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def select_account(self, account_id: Optional[int]) -> list[Expense]:
        """
        Make `account_id` the selected account and fetch its expenses.

        The previous list is dropped immediately. No account means an empty
        list and no backend call.
        """
        self._generation += 1
        generation = self._generation
        self._selected_account_id = account_id
        self._loaded_account_id = None
        self._expenses = []

        if account_id is None:
            self.is_loading = False
            return []

        self.is_loading = True
        try:
            rows = await self._backend.select(
                EXPENSES_TABLE,
                filters={"account_id": account_id},
                order=EXPENSE_ORDER,
            )
            expenses = [expense_from_row(row) for row in rows]
        except BackendError as e:
            if generation != self._generation:
                logger.info(
                    "expense_fetch_failed_after_switch",
                    account_id=account_id,
                    error=str(e),
                )
                return []
            self.is_loading = False
            self._notifier.failure("list_expenses", e, "Failed to load expenses")
            return []

        if generation != self._generation:
            logger.info(
                "expense_fetch_discarded",
                account_id=account_id,
                selected_account_id=self._selected_account_id,
            )
            return expenses

        self._expenses = expenses
        self._loaded_account_id = account_id
        self.is_loading = False
        logger.info("expenses_loaded", account_id=account_id, count=len(expenses))
        return list(expenses)

    async def list_expenses(
        self,
        account_id: Optional[int],
        refresh: bool = False,
    ) -> list[Expense]:
        """
        Expenses of `account_id`, newest first.

        The account already loaded is served from the owned list (which
        includes this session's inserts and updates); any other account is
        selected and fetched.
        """
        if account_id is None:
            return await self.select_account(None)
        if (
            not refresh
            and account_id == self._loaded_account_id
            and account_id == self._selected_account_id
        ):
            return list(self._expenses)
        return await self.select_account(account_id)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def add_expense(self, account_id: Optional[int], draft: ExpenseDraft) -> Expense:
        """
        Book a new expense against an account.

        The category is copied from the account as it is right now. A blank
        name falls back to the account name.

        Raises:
            ValidationError: No account, amount not positive, half-set owner,
                             or the account is missing or inactive
            BackendError: Lookup or insert failed
        """
        operation = "add_expense"
        self._check(self._validator.validate_draft(account_id, draft), operation)
        owner = self._validator.resolve_attribution(draft)

        self.is_saving = True
        try:
            account = await self._accounts.get_account(account_id)
            if account is None:
                raise ValidationError(
                    "Selected account not found",
                    issues=[ValidationIssue(
                        field="account_id",
                        issue_type="not_found",
                        message=f"Expense account {account_id} does not exist",
                        severity="error",
                    )],
                )
            if not account.is_active:
                # Inactive accounts are not offered for new expenses
                raise ValidationError(
                    "Selected account not found",
                    issues=[ValidationIssue(
                        field="account_id",
                        issue_type="inactive",
                        message=f"Expense account {account_id} is inactive",
                        severity="error",
                    )],
                )

            name = draft.name if draft.name else account.name
            expense = Expense(
                date=draft.date,
                category=account.category.value,
                name=name,
                description=draft.description or None,
                amount=draft.amount,
                payment_method=draft.payment_method,
                owner=owner,
                account_id=account.id,
            )
            row = await self._backend.insert(EXPENSES_TABLE, expense_to_row(expense))
            saved = expense_from_row(row)
        except ValidationError as e:
            self._notifier.failure(operation, e)
            raise
        except BackendError as e:
            self._notifier.failure(operation, e, "Failed to add expense")
            raise
        finally:
            self.is_saving = False

        if account_id == self._loaded_account_id:
            expenses = [saved, *self._expenses]
            if self.settings.resort_expenses_after_insert:
                expenses.sort(key=lambda e: e.date, reverse=True)
            self._expenses = expenses

        logger.info(
            "expense_added",
            expense_id=saved.id,
            account_id=saved.account_id,
            amount=str(saved.amount),
        )
        self._notifier.success("Expense added", operation=operation)
        return saved

    async def update_expense(self, expense: Expense) -> None:
        """
        Replace an expense's mutable fields by id.

        The record in the visible list is replaced where it stands.

        Raises:
            ValidationError: The expense has no id
            NotFoundError: No such expense
            BackendError: Update rejected
        """
        operation = "update_expense"
        self._check(self._validator.validate_expense_update(expense), operation)

        self.is_saving = True
        try:
            row = await self._backend.update(
                EXPENSES_TABLE, expense.id, expense_to_row(expense)
            )
            if row is None:
                raise NotFoundError(f"Expense {expense.id} not found")
            updated = expense_from_row(row)
        except BackendError as e:
            self._notifier.failure(operation, e, "Failed to update expense")
            raise
        finally:
            self.is_saving = False

        self._expenses = [
            updated if existing.id == updated.id else existing
            for existing in self._expenses
        ]
        logger.info("expense_updated", expense_id=updated.id)
        self._notifier.success("Expense updated", operation=operation)

    @staticmethod
    def to_display(expense: Expense) -> dict[str, Any]:
        """camelCase dict for the presentation layer."""
        return expense.to_display()
