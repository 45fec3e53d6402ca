"""
Owner Directory

The people an expense can be attributed to: salesmen and expense owners.

Attribution is optional. Either table may be missing in a given
deployment; a failed lookup logs a warning and yields an empty list, it
never reaches the user and never blocks expense entry.

A combined picker needs one value per choice, so each choice is encoded as
a token "<owner_type>-<id>" ("salesman-7", "owner-7"), and the empty token
means nobody.
"""

from typing import Optional, Union

import structlog

from expense_ledger.errors import BackendError, ValidationError
from expense_ledger.models.expense import (
    NoOwner,
    OwnerRef,
    OwnerType,
    Person,
    SalesmanRef,
    attribution_from_parts,
    attribution_to_parts,
)
from expense_ledger.models.validation import ValidationIssue
from expense_ledger.notifications import Notifier
from expense_ledger.services.mapping import person_from_row
from expense_ledger.services.storage import (
    EXPENSE_OWNERS_TABLE,
    SALESMEN_TABLE,
    BackendInterface,
)
from expense_ledger.validation import ExpenseValidator


logger = structlog.get_logger(__name__)


def encode_owner_token(attribution: Union[NoOwner, SalesmanRef, OwnerRef]) -> str:
    """Picker value for an attribution."""
    owner_type, owner_id = attribution_to_parts(attribution)
    if owner_type is None:
        return ""
    return f"{owner_type.value}-{owner_id}"


def decode_owner_token(token: Optional[str]) -> Union[NoOwner, SalesmanRef, OwnerRef]:
    """Attribution for a picker value. Empty means nobody."""
    if not token:
        return NoOwner()
    kind, _, raw_id = token.partition("-")
    if kind not in {t.value for t in OwnerType} or not raw_id.isdigit():
        raise ValidationError(
            f"Invalid owner selection: {token}",
            issues=[ValidationIssue(
                field="owner",
                issue_type="invalid_format",
                message=f"Invalid owner selection: {token}",
                severity="error",
            )],
        )
    return attribution_from_parts(kind, int(raw_id))


class OwnerDirectory:
    """
    Salesmen (read-only here) and expense owners (can be created inline).

    The directory keeps only the lists returned by the last list calls.
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
        self._salesmen: list[Person] = []
        self._owners: list[Person] = []
        self.is_saving = False

    async def _list_people(self, table: str) -> list[Person]:
        try:
            rows = await self._backend.select(table, columns="id,name")
            return [person_from_row(row, table) for row in rows]
        except BackendError as e:
            logger.warning("person_table_unavailable", table=table, error=str(e))
            return []

    async def list_salesmen(self) -> list[Person]:
        self._salesmen = await self._list_people(SALESMEN_TABLE)
        return list(self._salesmen)

    async def list_owners(self) -> list[Person]:
        self._owners = await self._list_people(EXPENSE_OWNERS_TABLE)
        return list(self._owners)

    async def create_owner(self, name: str) -> Person:
        """
        Create an expense owner.

        The caller decides whether to add the new owner to a list
        (see append_owner).

        Raises:
            ValidationError: Name blank
            BackendError: Insert rejected
        """
        operation = "create_owner"
        try:
            self._validator.ensure_valid(self._validator.validate_owner_name(name), operation)
        except ValidationError as e:
            self._notifier.failure(operation, e)
            raise

        self.is_saving = True
        try:
            row = await self._backend.insert(EXPENSE_OWNERS_TABLE, {"name": name.strip()})
            owner = person_from_row(row, EXPENSE_OWNERS_TABLE)
        except BackendError as e:
            self._notifier.failure(operation, e, "Failed to add owner")
            raise
        finally:
            self.is_saving = False

        logger.info("owner_created", owner_id=owner.id)
        self._notifier.success("Owner added successfully", operation=operation)
        return owner

    def append_owner(self, owner: Person) -> None:
        self._owners.append(owner)

    @property
    def salesmen(self) -> list[Person]:
        return list(self._salesmen)

    @property
    def owners(self) -> list[Person]:
        return list(self._owners)

    def picker_options(self) -> list[tuple[str, str]]:
        """(token, label) pairs for a combined owner picker, 'nobody' first."""
        options = [("", "No owner")]
        options.extend(
            (encode_owner_token(SalesmanRef(id=p.id)), f"{p.name} (Salesman)")
            for p in self._salesmen
        )
        options.extend(
            (encode_owner_token(OwnerRef(id=p.id)), f"{p.name} (Owner)")
            for p in self._owners
        )
        return options
