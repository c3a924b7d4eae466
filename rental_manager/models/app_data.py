"""
AppData - the aggregate root.

The whole dataset is the unit of persistence: the local snapshot and
the remote user document both hold exactly one serialized AppData.
"""

import json
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from rental_manager.models.domain import (
    Appointment,
    CategoryTag,
    Expense,
    Income,
    MaintenanceRequest,
    Property,
    Tenant,
    TransactionCategory,
    TransactionType,
)


# (name, type, icon, tag) seeded when a loaded dataset has no categories
DEFAULT_CATEGORIES: list[tuple[str, TransactionType, str, Optional[CategoryTag]]] = [
    ("Rent Payment", TransactionType.INCOME, "house.fill", None),
    ("Late Fee", TransactionType.INCOME, "clock.badge.exclamationmark.fill", None),
    ("Parking", TransactionType.INCOME, "car.fill", None),
    ("Laundry", TransactionType.INCOME, "washer.fill", None),
    ("Security Deposit", TransactionType.INCOME, "lock.shield.fill", CategoryTag.SECURITY_DEPOSIT),
    ("Other Income", TransactionType.INCOME, "dollarsign.circle.fill", None),
    ("Repairs", TransactionType.EXPENSE, "wrench.and.screwdriver.fill", None),
    ("Utilities", TransactionType.EXPENSE, "bolt.fill", None),
    ("Taxes", TransactionType.EXPENSE, "building.columns.fill", None),
    ("Mortgage", TransactionType.EXPENSE, "banknote.fill", None),
    ("Insurance", TransactionType.EXPENSE, "shield.fill", None),
    ("Management", TransactionType.EXPENSE, "person.2.badge.gearshape.fill", None),
    ("Deposit Refund", TransactionType.EXPENSE, "arrow.uturn.backward.circle.fill", None),
    ("Landscaping", TransactionType.EXPENSE, "leaf.fill", None),
    ("Other Expense", TransactionType.EXPENSE, "creditcard.fill", None),
]

# Display name older snapshots used to mark the deposit category
LEGACY_SECURITY_DEPOSIT_NAME = "Security Deposit"


def default_categories() -> list[TransactionCategory]:
    """Build a fresh default category set (new ids every call)."""
    return [
        TransactionCategory(name=name, type=kind, icon_name=icon, tag=tag)
        for name, kind, icon, tag in DEFAULT_CATEGORIES
    ]


class AppData(BaseModel):
    """Every collection of the application."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    properties: list[Property] = Field(default_factory=list)
    tenants: list[Tenant] = Field(default_factory=list)
    incomes: list[Income] = Field(default_factory=list)
    expenses: list[Expense] = Field(default_factory=list)
    transaction_categories: list[TransactionCategory] = Field(default_factory=list)
    maintenance_requests: list[MaintenanceRequest] = Field(default_factory=list)
    appointments: list[Appointment] = Field(default_factory=list)

    @classmethod
    def empty(cls) -> "AppData":
        """An empty dataset carrying the default categories."""
        data = cls()
        data.ensure_default_categories()
        return data

    @property
    def is_empty(self) -> bool:
        return not (
            self.properties
            or self.tenants
            or self.incomes
            or self.expenses
            or self.maintenance_requests
            or self.appointments
        )

    def ensure_default_categories(self) -> bool:
        """
        Seed default categories when there are none, and tag a legacy
        "Security Deposit" category when no category carries the tag.

        Returns True if anything changed.
        """
        if not self.transaction_categories:
            self.transaction_categories = default_categories()
            return True

        if self.security_deposit_category() is not None:
            return False

        for category in self.transaction_categories:
            if (
                category.type == TransactionType.INCOME
                and category.tag is None
                and category.name == LEGACY_SECURITY_DEPOSIT_NAME
            ):
                category.tag = CategoryTag.SECURITY_DEPOSIT
                return True
        return False

    def security_deposit_category(self) -> Optional[TransactionCategory]:
        for category in self.transaction_categories:
            if category.is_security_deposit:
                return category
        return None

    # -------------------------------------------------------------------------
    # Lookups. Dangling references resolve to None.
    # -------------------------------------------------------------------------

    def get_property(self, property_id: Optional[UUID]) -> Optional[Property]:
        if property_id is None:
            return None
        return next((p for p in self.properties if p.id == property_id), None)

    def get_tenant(self, tenant_id: Optional[UUID]) -> Optional[Tenant]:
        if tenant_id is None:
            return None
        return next((t for t in self.tenants if t.id == tenant_id), None)

    def get_category(self, category_id: Optional[UUID]) -> Optional[TransactionCategory]:
        if category_id is None:
            return None
        return next((c for c in self.transaction_categories if c.id == category_id), None)

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def to_document(self) -> dict[str, Any]:
        """JSON-compatible dict with camelCase keys and ISO-8601 dates."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> "AppData":
        return cls.model_validate(document)

    def to_json_bytes(self) -> bytes:
        return json.dumps(self.to_document(), indent=2, ensure_ascii=False).encode("utf-8")

    @classmethod
    def from_json_bytes(cls, blob: bytes) -> "AppData":
        return cls.model_validate_json(blob)
