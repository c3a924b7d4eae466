"""
Portfolio Queries

Read-only figures for the dashboard and the dues list, computed from the
dataset as it is. Nothing here mutates tenants; balances and due dates
are whatever the ledger last wrote.
"""

from decimal import Decimal

from pydantic import BaseModel, Field

from rental_manager.ledger.engine import ZERO, LedgerEngine
from rental_manager.models.app_data import AppData
from rental_manager.models.domain import PaymentStatus, Tenant


class PortfolioSummary(BaseModel):
    """Dashboard figures."""

    total_properties: int = 0
    occupied_properties: int = 0
    vacant_properties: int = 0
    overdue_tenants: int = 0
    due_soon_tenants: int = 0
    open_maintenance_requests: int = 0
    upcoming_appointments: int = 0
    total_income: Decimal = Field(default=ZERO)
    total_expenses: Decimal = Field(default=ZERO)

    @property
    def net_income(self) -> Decimal:
        return self.total_income - self.total_expenses


class PortfolioQueries:
    """
    Aggregations over an AppData.

    Payment status comes from the ledger engine so the due-soon window
    and the clock are the same ones the balances were computed with.
    """

    def __init__(self, ledger: LedgerEngine):
        self._ledger = ledger

    def summary(self, data: AppData) -> PortfolioSummary:
        groups = self.tenants_by_payment_status(data)
        today = self._ledger.clock.today()

        occupied = sum(1 for p in data.properties if not p.is_vacant)

        return PortfolioSummary(
            total_properties=len(data.properties),
            occupied_properties=occupied,
            vacant_properties=len(data.properties) - occupied,
            overdue_tenants=len(groups[PaymentStatus.OVERDUE]),
            due_soon_tenants=len(groups[PaymentStatus.DUE]),
            open_maintenance_requests=sum(
                1 for r in data.maintenance_requests if not r.is_resolved
            ),
            upcoming_appointments=sum(1 for a in data.appointments if a.date >= today),
            total_income=sum((i.amount for i in data.incomes), ZERO),
            total_expenses=sum((e.amount for e in data.expenses), ZERO),
        )

    def tenants_by_payment_status(self, data: AppData) -> dict[PaymentStatus, list[Tenant]]:
        """
        Active tenants with a property, grouped by payment status and
        sorted by next due date within each group.
        """
        groups: dict[PaymentStatus, list[Tenant]] = {status: [] for status in PaymentStatus}

        for tenant in data.tenants:
            if not tenant.is_active or tenant.property_id is None:
                continue
            groups[self._ledger.payment_status(tenant)].append(tenant)

        for tenants in groups.values():
            tenants.sort(key=lambda t: t.next_due_date or t.lease_start_date)

        return groups
