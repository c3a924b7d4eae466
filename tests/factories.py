"""Entity builders shared by the test modules."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from rental_manager.models import PaymentCycle, Property, Tenant


def make_property(rent: str = "1000", cycle: PaymentCycle = PaymentCycle.MONTHLY, **kwargs) -> Property:
    return Property(
        name=kwargs.pop("name", "Sunrise Villa"),
        address=kwargs.pop("address", "123 Sunny Lane"),
        rent_amount=Decimal(rent),
        payment_cycle=cycle,
        **kwargs,
    )


def make_tenant(prop: Optional[Property], lease_start: datetime, **kwargs) -> Tenant:
    return Tenant(
        name=kwargs.pop("name", "John Appleseed"),
        lease_start_date=lease_start,
        lease_end_date=kwargs.pop("lease_end", datetime(2025, 3, 15)),
        property_id=prop.id if prop else None,
        **kwargs,
    )
