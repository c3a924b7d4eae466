"""
Tenant Financial Ledger Engine

Re-derives what a tenant owes from scratch on every call:

    amount_owed = accrued rent + billable expenses - payments

1. Rent accrues one charge per billing-cycle boundary, starting at the
   lease start and advancing the cursor one cycle at a time, for every
   boundary strictly before "now". The first
   boundary at or after "now" is the tenant's next due date.
2. Every expense on the tenant's property flagged billable-to-tenant is
   added, whatever its date.
3. Every income linked to the tenant is subtracted, except incomes in
   the security-deposit category.

No partial sums are cached between calls, so the result only depends
on the dataset and the clock.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

import structlog

from rental_manager.config import LedgerSettings, get_settings
from rental_manager.ledger.calendar import Clock, advance, start_of_day
from rental_manager.models.app_data import AppData
from rental_manager.models.domain import (
    PaymentStatus,
    Property,
    Tenant,
)


logger = structlog.get_logger(__name__)

ZERO = Decimal("0")


class LedgerEngine:
    """
    Computes tenant balances against an AppData.

    Mutates the tenants of the dataset it is given; owns no state of its own
    besides the clock and thresholds.
    """

    def __init__(
        self,
        clock: Optional[Clock] = None,
        settings: Optional[LedgerSettings] = None,
    ):
        self._clock = clock or Clock()
        self._settings = settings or get_settings().ledger

    @property
    def clock(self) -> Clock:
        return self._clock

    # -------------------------------------------------------------------------
    # Balance
    # -------------------------------------------------------------------------

    def recalculate_balance(self, data: AppData, tenant_id: UUID) -> Optional[Tenant]:
        """
        Update amount_owed and next_due_date of one tenant in place.

        Returns the tenant, or None if no tenant has that id.
        """
        tenant = data.get_tenant(tenant_id)
        if tenant is None:
            return None

        prop = data.get_property(tenant.property_id)
        if prop is None:
            # No charges without a leased property
            tenant.amount_owed = ZERO
            return tenant

        rent, next_due = self.accrue_rent(tenant.lease_start_date, prop)
        billable = self.billable_expenses(data, prop.id)
        paid = self.payments_received(data, tenant.id)

        tenant.next_due_date = next_due
        tenant.amount_owed = rent + billable - paid
        return tenant

    def recalculate_all(self, data: AppData) -> int:
        """Re-derive every tenant's balance. Returns the number of tenants."""
        for tenant in data.tenants:
            self.recalculate_balance(data, tenant.id)
        logger.debug("balances_recalculated", tenant_count=len(data.tenants))
        return len(data.tenants)

    def accrue_rent(self, lease_start: datetime, prop: Property) -> tuple[Decimal, datetime]:
        """
        Rent accrued from lease_start until now, and the next charge boundary.

        A lease starting in the future accrues nothing and is next due at
        its start.
        """
        now = self._clock.now()
        total = ZERO
        periods = 0
        cursor = lease_start

        while cursor < now:
            if periods >= self._settings.max_accrual_periods:
                logger.warning(
                    "accrual_period_limit_reached",
                    property_id=str(prop.id),
                    periods=periods,
                )
                break

            total += prop.rent_amount
            periods += 1
            try:
                cursor = advance(cursor, prop.payment_cycle)
            except OverflowError:
                logger.warning(
                    "accrual_calendar_overflow",
                    property_id=str(prop.id),
                    periods=periods,
                )
                break

        return total, cursor

    def billable_expenses(self, data: AppData, property_id: UUID) -> Decimal:
        return sum(
            (e.amount for e in data.expenses
             if e.property_id == property_id and e.is_billable_to_tenant),
            ZERO,
        )

    def payments_received(self, data: AppData, tenant_id: UUID) -> Decimal:
        """Sum of the tenant's incomes, security deposits excluded."""
        total = ZERO
        for income in data.incomes:
            if income.tenant_id != tenant_id:
                continue
            category = data.get_category(income.category_id)
            if category is not None and category.is_security_deposit:
                continue
            total += income.amount
        return total

    # -------------------------------------------------------------------------
    # Deposit
    # -------------------------------------------------------------------------

    def has_paid_deposit(self, data: AppData, tenant_id: UUID) -> bool:
        for income in data.incomes:
            if income.tenant_id != tenant_id:
                continue
            category = data.get_category(income.category_id)
            if category is not None and category.is_security_deposit:
                return True
        return False

    def refresh_deposit_status(self, data: AppData, tenant_id: UUID) -> Optional[bool]:
        """Set is_deposit_paid from the deposit incomes on record."""
        tenant = data.get_tenant(tenant_id)
        if tenant is None:
            return None
        tenant.is_deposit_paid = self.has_paid_deposit(data, tenant_id)
        return tenant.is_deposit_paid

    # -------------------------------------------------------------------------
    # Status
    # -------------------------------------------------------------------------

    def payment_status(self, tenant: Tenant) -> PaymentStatus:
        """
        Overdue while anything is owed for charges already due, or once
        the due day has passed. Due within the configured window before
        the next due day. Paid otherwise.

        After recalculation the next due date is never in the past, so a
        positive balance is what marks a tenant overdue.
        """
        today = self._clock.today()
        due_day = start_of_day(tenant.next_due_date or tenant.lease_start_date)

        if tenant.amount_owed > ZERO or today > due_day:
            return PaymentStatus.OVERDUE
        if (due_day - today).days <= self._settings.due_soon_window_days:
            return PaymentStatus.DUE
        return PaymentStatus.PAID
