"""
Two-Stage Validation

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- Required field presence (account, amount, names)
- Value ranges (amount strictly positive, at most two decimals)
- Enumerations (account category, owner type)
- Owner type and owner id set together or not at all
- Errors here block the operation; nothing is sent to the backend

STAGE 2 - SEMANTIC VALIDATION:
- Dates too far in the future
- Unusually large amounts
- These are warnings only; they are logged and never block a save

IMPORTANT: Validation NEVER silently fixes issues.
Trimming whitespace is the only normalisation, and it happens in the
services, not here.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Optional, Union

import structlog

from expense_ledger.config import AppSettings, get_settings
from expense_ledger.errors import ValidationError
from expense_ledger.models.expense import (
    Attribution,
    ExpenseCategory,
    ExpenseDraft,
    attribution_from_parts,
)
from expense_ledger.models.validation import ValidationIssue, ValidationResult


logger = structlog.get_logger(__name__)


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


class ExpenseValidator:
    """
    Validates caller input for accounts, expenses and owners.

    Every check runs locally; the validator never talks to the backend.
    """

    def __init__(self, settings: Optional[AppSettings] = None):
        self._settings = settings

    @property
    def settings(self) -> AppSettings:
        if self._settings is None:
            self._settings = get_settings().app
        return self._settings

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def validate_account_fields(
        self,
        name: Optional[str],
        category: Union[ExpenseCategory, str, None],
    ) -> ValidationResult:
        """Check the name/category pair an account would end up with."""
        issues = []

        if _is_blank(name):
            issues.append(ValidationIssue(
                field="name",
                issue_type="missing",
                message="Account name is required",
                severity="error",
            ))

        if not category:
            issues.append(ValidationIssue(
                field="category",
                issue_type="missing",
                message="Account category is required",
                severity="error",
            ))
        else:
            try:
                ExpenseCategory(category)
            except ValueError:
                issues.append(ValidationIssue(
                    field="category",
                    issue_type="invalid_value",
                    message=f"Unknown account category: {category}",
                    severity="error",
                    suggested_fix=(
                        "Choose one of: "
                        + ", ".join(c.value for c in ExpenseCategory)
                    ),
                ))

        return ValidationResult(issues=issues)

    # ------------------------------------------------------------------
    # Expenses
    # ------------------------------------------------------------------

    def resolve_attribution(self, draft: ExpenseDraft) -> Attribution:
        """
        The attribution a draft asks for.

        A typed `owner` wins; otherwise the raw owner_type/owner_id pair is
        folded, which raises ValidationError when only one of them is set.
        """
        if draft.owner is not None:
            if draft.owner_type is not None or draft.owner_id is not None:
                raw = attribution_from_parts(draft.owner_type, draft.owner_id)
                if raw != draft.owner:
                    raise ValidationError(
                        "Owner given twice with different values",
                        issues=[ValidationIssue(
                            field="owner",
                            issue_type="inconsistent",
                            message="Owner and owner type/id disagree",
                            severity="error",
                        )],
                    )
            return draft.owner
        return attribution_from_parts(draft.owner_type, draft.owner_id)

    def _validate_draft_schema(
        self,
        account_id: Optional[int],
        draft: ExpenseDraft,
    ) -> list[ValidationIssue]:
        issues = []

        if account_id is None:
            issues.append(ValidationIssue(
                field="account_id",
                issue_type="missing",
                message="Please select an expense account",
                severity="error",
            ))

        if draft.amount is None:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="missing",
                message="Please enter a valid amount",
                severity="error",
            ))
        elif draft.amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be greater than zero",
                severity="error",
                suggested_fix="Please enter a valid amount",
            ))
        elif draft.amount.as_tuple().exponent < -2:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_format",
                message="Amount can have at most two decimal places",
                severity="error",
            ))

        try:
            self.resolve_attribution(draft)
        except ValidationError as e:
            issues.extend(e.issues)

        return issues

    def _validate_draft_semantic(self, draft: ExpenseDraft) -> list[ValidationIssue]:
        issues = []
        today = date.today()

        max_future = today + timedelta(days=self.settings.future_date_tolerance_days)
        if draft.date > max_future:
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Expense date ({draft.date}) is in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        max_amount = Decimal(str(self.settings.max_expense_amount))
        if draft.amount is not None and draft.amount > max_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({draft.amount:,.2f}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        return issues

    def validate_draft(
        self,
        account_id: Optional[int],
        draft: ExpenseDraft,
    ) -> ValidationResult:
        """
        Run both stages on an expense draft.

        Stage 2 only runs when stage 1 found no errors.
        """
        issues = self._validate_draft_schema(account_id, draft)
        if not any(issue.severity == "error" for issue in issues):
            issues.extend(self._validate_draft_semantic(draft))
        return ValidationResult(issues=issues)

    def validate_expense_update(self, expense: Any) -> ValidationResult:
        """An update needs the id of the record it replaces."""
        issues = []
        if getattr(expense, "id", None) is None:
            issues.append(ValidationIssue(
                field="id",
                issue_type="missing",
                message="Cannot update an expense without an id",
                severity="error",
            ))
        return ValidationResult(issues=issues)

    # ------------------------------------------------------------------
    # Owners
    # ------------------------------------------------------------------

    def validate_owner_name(self, name: Optional[str]) -> ValidationResult:
        issues = []
        if _is_blank(name):
            issues.append(ValidationIssue(
                field="name",
                issue_type="missing",
                message="Owner name cannot be empty",
                severity="error",
            ))
        return ValidationResult(issues=issues)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def ensure_valid(self, result: ValidationResult, operation: str) -> ValidationResult:
        """
        Raise ValidationError if the result has errors; log any warnings.

        Returns the result so callers can chain.
        """
        for warning in result.warnings:
            logger.warning("validation_warning", operation=operation, warning=warning)
        if result.has_errors:
            raise ValidationError(self.get_user_friendly_summary(result), issues=result.issues)
        return result

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """
        One line for the notification shown to the user.

        Error messages are joined; warnings are left to the logs.
        """
        if not result.has_errors:
            return "All checks passed"
        return "; ".join(issue.message for issue in result.errors)
