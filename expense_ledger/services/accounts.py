"""
Account Registry

Manages the expense accounts that expenses are booked against.

GUARANTEES:
- Local state changes only after the backend confirms a write
- A failed operation leaves local state untouched and produces one notification
- Accounts with expenses are never hard-deleted (deactivate them instead)

The registry owns the full account list for its session. Newly created
accounts are appended to it; the list is not re-sorted until it is
refetched.
"""

from typing import Any, Optional, Union

import structlog

from expense_ledger.errors import (
    BackendError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from expense_ledger.models.expense import AccountUpdate, ExpenseAccount, ExpenseCategory
from expense_ledger.models.validation import ValidationResult
from expense_ledger.notifications import Notifier
from expense_ledger.services.mapping import account_changes_to_row, account_from_row
from expense_ledger.services.storage import (
    EXPENSES_TABLE,
    EXPENSE_ACCOUNTS_TABLE,
    BackendInterface,
    OrderBy,
)
from expense_ledger.validation import ExpenseValidator


logger = structlog.get_logger(__name__)

ACCOUNT_ORDER = (OrderBy("category"), OrderBy("name"))


def _clean_description(description: Optional[str]) -> Optional[str]:
    if description is None:
        return None
    return description.strip() or None


class AccountRegistry:
    """
    Expense accounts for one session.

    Two views are kept apart:
    - the management list (all accounts, owned and updated in place)
    - the selection list (active accounts only, always as the backend orders it)
    """

    def __init__(
        self,
        backend: BackendInterface,
        notifier: Optional[Notifier] = None,
        validator: Optional[ExpenseValidator] = None,
    ):
        self._backend = backend
        self._notifier = notifier or Notifier()
        self._validator = validator or ExpenseValidator()
        self._accounts: list[ExpenseAccount] = []
        self._loaded = False
        self._active: Optional[list[ExpenseAccount]] = None
        self.is_loading = False
        self.is_saving = False

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _check(self, result: ValidationResult, operation: str) -> None:
        try:
            self._validator.ensure_valid(result, operation)
        except ValidationError as e:
            self._notifier.failure(operation, e)
            raise

    def _replace_local(self, account: ExpenseAccount) -> None:
        self._accounts = [
            account if existing.id == account.id else existing
            for existing in self._accounts
        ]
        # Selection list is rebuilt from the backend on next use
        self._active = None

    def _local(self, account_id: int) -> Optional[ExpenseAccount]:
        for account in self._accounts:
            if account.id == account_id:
                return account
        for account in self._active or []:
            if account.id == account_id:
                return account
        return None

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_active_accounts(self) -> list[ExpenseAccount]:
        """
        Active accounts ordered by category, then name.

        This is the list selection controls are populated from.
        """
        self.is_loading = True
        try:
            rows = await self._backend.select(
                EXPENSE_ACCOUNTS_TABLE,
                filters={"is_active": True},
                order=ACCOUNT_ORDER,
            )
            accounts = [account_from_row(row) for row in rows]
        except BackendError as e:
            self._notifier.failure(
                "list_active_accounts", e, "Failed to load expense accounts"
            )
            self._active = []
            return []
        finally:
            self.is_loading = False

        self._active = accounts
        logger.info("active_accounts_loaded", count=len(accounts))
        return list(accounts)

    async def list_all_accounts(self, refresh: bool = False) -> list[ExpenseAccount]:
        """
        Every account, active or not, for management views.

        Fetched once per session; later calls return the owned list, which
        reflects this session's writes.
        """
        if self._loaded and not refresh:
            return list(self._accounts)

        self.is_loading = True
        try:
            rows = await self._backend.select(EXPENSE_ACCOUNTS_TABLE, order=ACCOUNT_ORDER)
            accounts = [account_from_row(row) for row in rows]
        except BackendError as e:
            self._notifier.failure(
                "list_all_accounts", e, "Failed to load expense accounts"
            )
            return list(self._accounts)
        finally:
            self.is_loading = False

        self._accounts = accounts
        self._loaded = True
        logger.info("accounts_loaded", count=len(accounts))
        return list(accounts)

    async def get_account(self, account_id: int) -> Optional[ExpenseAccount]:
        """
        One account, from the owned lists or else from the backend.

        Raises:
            BackendError: If the backend lookup fails
        """
        account = self._local(account_id)
        if account is not None:
            return account
        row = await self._backend.select_one(EXPENSE_ACCOUNTS_TABLE, account_id)
        return account_from_row(row) if row else None

    async def categories_in_use(self) -> list[str]:
        """Distinct categories of the active accounts, in listing order."""
        if self._active is None:
            await self.list_active_accounts()
        seen: list[str] = []
        for account in self._active or []:
            if account.category.value not in seen:
                seen.append(account.category.value)
        return seen

    async def accounts_in_category(
        self,
        category: Union[ExpenseCategory, str, None],
    ) -> list[ExpenseAccount]:
        """Active accounts in one category (all active accounts if none given)."""
        if self._active is None:
            await self.list_active_accounts()
        accounts = list(self._active or [])
        if not category:
            return accounts
        wanted = getattr(category, "value", category)
        return [account for account in accounts if account.category.value == wanted]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create_account(
        self,
        name: str,
        category: Union[ExpenseCategory, str],
        description: Optional[str] = None,
    ) -> ExpenseAccount:
        """
        Create an active account and append it to the owned list.

        Raises:
            ValidationError: Name empty or category unknown
            BackendError: Insert rejected
        """
        operation = "create_account"
        self._check(self._validator.validate_account_fields(name, category), operation)

        row = account_changes_to_row({
            "name": name.strip(),
            "description": _clean_description(description),
            "category": ExpenseCategory(category),
            "is_active": True,
        })

        self.is_saving = True
        try:
            account = account_from_row(
                await self._backend.insert(EXPENSE_ACCOUNTS_TABLE, row)
            )
        except BackendError as e:
            self._notifier.failure(operation, e, "Failed to add expense account")
            raise
        finally:
            self.is_saving = False

        self._accounts.append(account)
        self._active = None
        logger.info("account_created", account_id=account.id, category=account.category.value)
        self._notifier.success("Expense account added successfully", operation=operation)
        return account

    async def _apply_update(
        self,
        operation: str,
        account_id: int,
        changes: dict[str, Any],
        failure_message: str,
    ) -> ExpenseAccount:
        self.is_saving = True
        try:
            row = await self._backend.update(
                EXPENSE_ACCOUNTS_TABLE,
                account_id,
                account_changes_to_row(changes),
            )
            if row is None:
                raise NotFoundError(f"Expense account {account_id} not found")
        except BackendError as e:
            self._notifier.failure(operation, e, failure_message)
            raise
        finally:
            self.is_saving = False

        current = self._local(account_id)
        if current is None:
            merged = account_from_row(row)
        else:
            # Merge: fields not in `changes` keep their local values
            merged = current.model_copy(update=changes)
        self._replace_local(merged)
        return merged

    async def update_account(
        self,
        account_id: int,
        fields: Union[AccountUpdate, dict[str, Any]],
    ) -> None:
        """
        Partial update of name/description/category/is_active.

        Raises:
            ValidationError: Resulting name empty or category unknown
            NotFoundError: No such account
            BackendError: Update rejected
        """
        operation = "update_account"
        update = fields if isinstance(fields, AccountUpdate) else AccountUpdate(**fields)
        changes = update.supplied()

        result = self._validator.validate_account_fields(
            changes.get("name", "unchanged"),
            changes.get("category", ExpenseCategory.OTHER),
        )
        self._check(result, operation)

        if "name" in changes:
            changes["name"] = changes["name"].strip()
        if "description" in changes:
            changes["description"] = _clean_description(changes["description"])
        if "category" in changes:
            changes["category"] = ExpenseCategory(changes["category"])
        if changes.get("is_active") is None:
            changes.pop("is_active", None)

        if not changes:
            return

        await self._apply_update(operation, account_id, changes, "Failed to update account")
        logger.info("account_updated", account_id=account_id, fields=sorted(changes))
        self._notifier.success("Account updated successfully", operation=operation)

    async def set_active(self, account_id: int, active: bool) -> None:
        """
        Activate or deactivate an account without touching other fields.

        Deactivation is the soft delete for accounts that have expenses.
        """
        operation = "set_active"
        await self._apply_update(
            operation,
            account_id,
            {"is_active": active},
            "Failed to update account status",
        )
        logger.info("account_status_changed", account_id=account_id, active=active)
        self._notifier.success(
            f"Account {'activated' if active else 'deactivated'} successfully",
            operation=operation,
        )

    async def delete_account(self, account_id: int) -> None:
        """
        Hard-delete an account that has no expenses.

        Raises:
            ConflictError: One or more expenses reference the account
            BackendError: Count or delete failed
        """
        operation = "delete_account"
        self.is_saving = True
        try:
            dependents = await self._backend.count(
                EXPENSES_TABLE, filters={"account_id": account_id}
            )
            if dependents > 0:
                raise ConflictError("Cannot delete account with existing expenses")
            await self._backend.delete(EXPENSE_ACCOUNTS_TABLE, account_id)
        except ConflictError as e:
            logger.info("account_delete_refused", account_id=account_id, expenses=dependents)
            self._notifier.failure(operation, e)
            raise
        except BackendError as e:
            self._notifier.failure(operation, e, "Failed to delete account")
            raise
        finally:
            self.is_saving = False

        self._accounts = [a for a in self._accounts if a.id != account_id]
        self._active = None
        logger.info("account_deleted", account_id=account_id)
        self._notifier.success("Account deleted successfully", operation=operation)

    @property
    def accounts(self) -> list[ExpenseAccount]:
        """The owned management list, as it stands."""
        return list(self._accounts)
