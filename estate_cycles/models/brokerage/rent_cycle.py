"""Rent cycle models."""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal

from estate_cycles.models.brokerage.communication import CommunicationEntry
from estate_cycles.models.brokerage.enums import (
    ApplicationStatus,
    RentCycleStatus,
    RentPaymentStatus,
    SellerType,
)


@dataclass
class TenantApplication:
    """Rental application submitted by a prospective tenant."""

    application_id: str
    tenant_id: str
    tenant_name: str
    submitted_date: date
    status: ApplicationStatus = ApplicationStatus.PENDING
    tenant_contact: str | None = None
    offered_rent: Decimal | None = None
    notes: str | None = None


@dataclass
class RentPayment:
    """Rent due for one month of a lease (``month`` is ``YYYY-MM``)."""

    month: str
    amount: Decimal
    status: RentPaymentStatus = RentPaymentStatus.PENDING
    amount_paid: Decimal | None = None
    paid_date: date | None = None
    notes: str | None = None


@dataclass
class Deduction:
    reason: str
    amount: Decimal


@dataclass
class LeaseRecord:
    """Archived lease, kept after the tenant moves out or renews."""

    lease_id: str
    tenant_id: str
    tenant_name: str
    start_date: date
    end_date: date
    monthly_rent: Decimal
    security_deposit: Decimal
    move_out_date: date | None = None
    deposit_returned: Decimal | None = None
    deductions: list[Deduction] = field(default_factory=list)


@dataclass
class RentCycle:
    """One period of marketing a property for rent and managing its leases."""

    cycle_id: str
    property_id: str
    landlord_id: str
    landlord_name: str
    agent_id: str
    agent_name: str
    monthly_rent: Decimal
    security_deposit: Decimal
    status: RentCycleStatus = RentCycleStatus.AVAILABLE
    landlord_type: SellerType = SellerType.CLIENT
    lease_period_months: int = 12
    available_from: date | None = None
    rent_due_day: int = 1
    applications: list[TenantApplication] = field(default_factory=list)
    current_tenant_id: str | None = None
    current_tenant_name: str | None = None
    current_tenant_contact: str | None = None
    lease_start_date: date | None = None
    lease_end_date: date | None = None
    rent_payments: list[RentPayment] = field(default_factory=list)
    lease_history: list[LeaseRecord] = field(default_factory=list)
    notes: str | None = None
    communication_log: list[CommunicationEntry] = field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def find_application(self, application_id: str) -> TenantApplication | None:
        for application in self.applications:
            if application.application_id == application_id:
                return application
        return None
