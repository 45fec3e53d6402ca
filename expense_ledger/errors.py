"""
Error taxonomy for the expense layer.

Three kinds of failure reach callers:

- ValidationError: the caller handed us data that breaks a precondition.
  Raised before any network call, so nothing was sent to the backend.
- ConflictError: the operation is refused because dependent data exists
  (deleting an account that still has expenses).
- BackendError: the data service rejected the request or could not be
  reached (network failure, constraint violation, timeout).

No operation is retried automatically. A failed write leaves local state
exactly as it was before the attempt.
"""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from expense_ledger.models.validation import ValidationIssue


class LedgerError(Exception):
    """Base exception for the expense layer."""
    pass


class ValidationError(LedgerError):
    """
    Caller-supplied data violates a precondition.

    Carries the individual issues so a form can highlight each field.
    """

    def __init__(
        self,
        message: str,
        issues: Optional[list["ValidationIssue"]] = None,
    ):
        self.issues = list(issues or [])
        super().__init__(message)

    @property
    def fields(self) -> list[str]:
        """Names of the fields with error-level issues."""
        return [issue.field for issue in self.issues if issue.severity == "error"]


class ConflictError(LedgerError):
    """Operation disallowed because dependent data exists."""
    pass


class BackendError(LedgerError):
    """The data service rejected or could not complete the request."""

    def __init__(self, message: str, code: Optional[str] = None):
        self.code = code
        super().__init__(message)


class BackendConnectionError(BackendError):
    """Could not create or reach the backend client."""
    pass


class NotFoundError(BackendError):
    """Row not found in the backend."""
    pass
