"""
Core Domain Models for Rental Manager

These models define the entities shared by the ledger engine, both stores
and the sync coordinator. They are designed to:
1. Carry a stable UUID from creation onwards
2. Serialize field-for-field into the snapshot document (camelCase keys,
   ISO-8601 dates)
3. Tolerate partially-filled documents written by older app versions

Tenant owns its property link. Property.tenant_id and Property.is_vacant
are a back-reference maintained by RentalManager, never edited directly.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TenantStatus(str, Enum):
    """Tenant lifecycle status."""
    ACTIVE = "Active"
    ARCHIVED = "Archived"


class TransactionType(str, Enum):
    """Whether a category classifies incomes or expenses."""
    INCOME = "Income"
    EXPENSE = "Expense"


class PaymentCycle(str, Enum):
    """Billing cycle of a property's rent."""
    DAILY = "Daily"
    WEEKLY = "Weekly"
    MONTHLY = "Monthly"
    YEARLY = "Yearly"


class PaymentStatus(str, Enum):
    """Derived rent status of a tenant (never stored)."""
    PAID = "Paid"
    DUE = "Due"
    OVERDUE = "Overdue"


class AppointmentStatus(str, Enum):
    SCHEDULED = "Scheduled"
    COMPLETED = "Completed"
    CANCELED = "Canceled"


class CategoryTag(str, Enum):
    """
    Well-known category identities.

    Ledger logic keys off the tag, so renaming a category's display
    name does not change how its transactions are treated.
    """
    SECURITY_DEPOSIT = "security_deposit"


# =============================================================================
# BASE
# =============================================================================

class DomainModel(BaseModel):
    """Base for every persisted entity: camelCase on the wire, snake_case in Python."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    id: UUID = Field(
        default_factory=uuid4,
        description="Stable unique identifier"
    )

    @field_validator('*', mode='after')
    @classmethod
    def to_local_wall_clock(cls, v):
        """
        Dates are naive local times, like Clock.now().

        Offset-carrying values (a "...Z" snapshot, a Firestore timestamp)
        are converted to local time and stripped of their tzinfo.
        """
        if isinstance(v, datetime) and v.tzinfo is not None:
            return v.astimezone().replace(tzinfo=None)
        return v


# =============================================================================
# ENTITIES
# =============================================================================

class TransactionCategory(DomainModel):
    """Classifies incomes and expenses."""

    name: str = Field(..., min_length=1, max_length=100)
    type: TransactionType
    icon_name: str = Field(default="tag.fill")
    tag: Optional[CategoryTag] = Field(
        default=None,
        description="Well-known identity, if any"
    )

    @property
    def is_security_deposit(self) -> bool:
        return self.tag == CategoryTag.SECURITY_DEPOSIT


class PropertyDeadline(DomainModel):
    """A dated obligation attached to a property (insurance renewal, inspection...)."""

    title: str = Field(..., min_length=1, max_length=200)
    expiry_date: datetime


class Property(DomainModel):
    name: str = Field(..., min_length=1, max_length=200)
    address: str = Field(default="", max_length=500)
    rent_amount: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Rent charged once per payment cycle"
    )
    is_vacant: bool = True
    tenant_id: Optional[UUID] = None
    payment_cycle: PaymentCycle = PaymentCycle.MONTHLY
    deadlines: list[PropertyDeadline] = Field(default_factory=list)


class Tenant(DomainModel):
    """
    A tenant and their cached ledger position.

    amount_owed and next_due_date are written by the ledger engine;
    is_deposit_paid is derived from deposit-category incomes.
    """

    name: str = Field(..., min_length=1, max_length=200)
    phone: str = ""
    email: str = ""
    lease_start_date: datetime = Field(default_factory=datetime.now)
    lease_end_date: datetime = Field(default_factory=datetime.now)
    property_id: Optional[UUID] = None
    next_due_date: Optional[datetime] = None
    amount_owed: Decimal = Decimal("0")
    deposit_amount: Decimal = Field(default=Decimal("0"), ge=0)
    is_deposit_paid: bool = False
    status: TenantStatus = TenantStatus.ACTIVE

    @model_validator(mode='after')
    def default_next_due_date(self) -> 'Tenant':
        """A tenant that was never recalculated is first due at lease start."""
        if self.next_due_date is None:
            self.next_due_date = self.lease_start_date
        return self

    @property
    def is_active(self) -> bool:
        return self.status == TenantStatus.ACTIVE


class Income(DomainModel):
    """A payment received."""

    description: str = Field(default="", max_length=500)
    amount: Decimal = Field(..., ge=0)
    date: datetime = Field(default_factory=datetime.now)
    tenant_id: Optional[UUID] = None
    property_id: UUID
    category_id: Optional[UUID] = None


class Expense(DomainModel):
    description: str = Field(default="", max_length=500)
    amount: Decimal = Field(..., ge=0)
    date: datetime = Field(default_factory=datetime.now)
    property_id: UUID
    category_id: Optional[UUID] = None
    is_billable_to_tenant: bool = False


class MaintenanceRequest(DomainModel):
    property_id: UUID
    description: str = Field(..., min_length=1, max_length=1000)
    is_resolved: bool = False
    reported_date: datetime = Field(default_factory=datetime.now)


class Appointment(DomainModel):
    property_id: UUID
    title: str = Field(..., min_length=1, max_length=200)
    date: datetime
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
