"""
Core Data Models for Expense Ledger

These models define the strict schemas for the data flowing between the
backend and the screens. They are designed to:
1. Enforce type safety at the boundary (loose backend rows in, typed records out)
2. Make invalid states unrepresentable where possible
3. Produce the camelCase display shape the presentation layer expects

DESIGN DECISION: Who an expense is attributed to is a tagged union
(NoOwner | SalesmanRef | OwnerRef), not two independently nullable columns.
The database stores owner_type + owner_id; only the wire mapping ever sees
that pair.

The `datetime` module is imported under an alias because `date` is also a
field name on these models.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from expense_ledger.errors import ValidationError
from expense_ledger.models.validation import ValidationIssue


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class ExpenseCategory(str, Enum):
    """
    Account categories offered when creating an expense account.

    Values are stored verbatim in the expense_accounts.category column.
    """
    SALARY = "Salary"
    UTILITIES = "Utilities"
    RENT = "Rent"
    MARKETING = "Marketing"
    MAINTENANCE = "Maintenance"
    SUPPLIES = "Supplies"
    TRANSPORTATION = "Transportation"
    OTHER = "Other"


class PaymentMethod(str, Enum):
    """How an expense was paid."""
    CASH = "Cash"
    BANK = "Bank"


class OwnerType(str, Enum):
    """Which person list an owner id refers to."""
    SALESMAN = "salesman"
    OWNER = "owner"


# =============================================================================
# ATTRIBUTION - who is responsible for an expense
# =============================================================================

class NoOwner(BaseModel):
    """The expense is not attributed to anyone."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["none"] = "none"


class SalesmanRef(BaseModel):
    """The expense is attributed to a salesman (salesmen table)."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["salesman"] = "salesman"
    id: int


class OwnerRef(BaseModel):
    """The expense is attributed to an expense owner (expense_owners table)."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["owner"] = "owner"
    id: int


Attribution = Annotated[
    Union[NoOwner, SalesmanRef, OwnerRef],
    Field(discriminator="kind"),
]


def attribution_from_parts(
    owner_type: Union[OwnerType, str, None],
    owner_id: Optional[int],
) -> Union[NoOwner, SalesmanRef, OwnerRef]:
    """
    Fold the (owner_type, owner_id) column pair into an attribution.

    Both empty means nobody; both set selects the person list. Exactly
    one of them set is the invalid state the tagged union exists to rule out.
    """
    if owner_type in (None, "") and owner_id is None:
        return NoOwner()
    if owner_type in (None, "") or owner_id is None:
        raise ValidationError(
            "Owner type and owner id must be set together",
            issues=[ValidationIssue(
                field="owner",
                issue_type="inconsistent",
                message="Owner type and owner id must both be set or both be empty",
                severity="error",
            )],
        )
    try:
        kind = OwnerType(owner_type)
    except ValueError:
        raise ValidationError(
            f"Unknown owner type: {owner_type}",
            issues=[ValidationIssue(
                field="owner_type",
                issue_type="invalid_value",
                message=f"Owner type must be one of: {', '.join(t.value for t in OwnerType)}",
                severity="error",
            )],
        )
    if kind is OwnerType.SALESMAN:
        return SalesmanRef(id=int(owner_id))
    return OwnerRef(id=int(owner_id))


def attribution_to_parts(
    attribution: Union[NoOwner, SalesmanRef, OwnerRef],
) -> tuple[Optional[OwnerType], Optional[int]]:
    """Expand an attribution into the (owner_type, owner_id) column pair."""
    if isinstance(attribution, SalesmanRef):
        return OwnerType.SALESMAN, attribution.id
    if isinstance(attribution, OwnerRef):
        return OwnerType.OWNER, attribution.id
    return None, None


# =============================================================================
# ACCOUNTS
# =============================================================================

class ExpenseAccount(BaseModel):
    """
    A named, categorized bucket that expenses are booked against.

    Identity (id) and timestamps are assigned by the backend.
    Inactive accounts stay visible in management views but are never
    offered when creating a new expense.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: int = Field(
        ...,
        description="Backend-assigned account id"
    )
    name: str = Field(
        ...,
        min_length=1,
        description="Account name (required)"
    )
    category: ExpenseCategory = Field(
        ...,
        description="Account category"
    )
    description: Optional[str] = None
    is_active: bool = Field(
        default=True,
        description="Inactive accounts are hidden from selection lists"
    )
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    def to_display(self) -> dict[str, Any]:
        """camelCase dict for the presentation layer."""
        return self.model_dump(mode="json", by_alias=True)


class AccountUpdate(BaseModel):
    """
    Partial update of an account.

    Only the fields explicitly passed are applied; everything else keeps
    its current value. Category is a plain string here so an invalid value
    is reported by the validator rather than by pydantic.
    """

    name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    is_active: Optional[bool] = None

    def supplied(self) -> dict[str, Any]:
        """The fields the caller actually set."""
        return self.model_dump(exclude_unset=True)


# =============================================================================
# EXPENSES
# =============================================================================

class Expense(BaseModel):
    """
    A single dated, categorized outflow booked against one account.

    `category` is a snapshot of the account category taken when the
    expense was created; it is not re-derived if the account changes later.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: Optional[int] = Field(
        default=None,
        description="Backend-assigned id (absent only before the first save)"
    )
    date: dt.date
    category: str
    name: str
    description: Optional[str] = None
    amount: Annotated[
        Decimal,
        Field(ge=0, decimal_places=2, description="Amount (non-negative)")
    ]
    payment_method: PaymentMethod = PaymentMethod.CASH
    owner: Attribution = Field(default_factory=NoOwner)
    account_id: int
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    @property
    def owner_type(self) -> Optional[OwnerType]:
        return attribution_to_parts(self.owner)[0]

    @property
    def owner_id(self) -> Optional[int]:
        return attribution_to_parts(self.owner)[1]

    def to_display(self) -> dict[str, Any]:
        """
        camelCase dict for the presentation layer.

        The attribution is flattened back into ownerType/ownerId because
        that is what the forms bind to.
        """
        data = self.model_dump(mode="json", by_alias=True, exclude={"owner"})
        owner_type, owner_id = attribution_to_parts(self.owner)
        data["ownerType"] = owner_type.value if owner_type else None
        data["ownerId"] = owner_id
        return data


class ExpenseDraft(BaseModel):
    """
    What the expense form submits.

    This is UNTRUSTED input. Nothing is enforced here beyond basic types;
    the validator decides whether a draft may be sent to the backend.
    Attribution may be given either as an already-typed `owner` or as the
    raw owner_type/owner_id pair a form produces.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    date: dt.date = Field(default_factory=dt.date.today)
    name: Optional[str] = None
    description: Optional[str] = None
    amount: Optional[Decimal] = None
    payment_method: PaymentMethod = PaymentMethod.CASH
    owner: Optional[Attribution] = None
    owner_type: Optional[str] = None
    owner_id: Optional[int] = None


# =============================================================================
# PEOPLE
# =============================================================================

class Person(BaseModel):
    """A salesman or an expense owner. The two lists are separate namespaces."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: int
    name: str
