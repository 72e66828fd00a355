"""Rent cycles: applications, leases and the monthly rent schedule."""

import calendar
import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from estate_cycles.config import AgencyConfig
from estate_cycles.cycles.base import CycleService, to_decimal
from estate_cycles.cycles.ownership import OwnershipTransferEngine
from estate_cycles.events import EventBus
from estate_cycles.exceptions import EntityNotFoundError, InvalidEntityStateError, ValidationError
from estate_cycles.logging import log_fields
from estate_cycles.models.brokerage import (
    ApplicationStatus,
    CycleType,
    Deduction,
    LeaseRecord,
    RentCycle,
    RentCycleStatus,
    RentPayment,
    RentPaymentStatus,
    TenantApplication,
    Transaction,
    TransactionType,
)
from estate_cycles.store import BrokerageDataStore, generate_id

logger = logging.getLogger(__name__)

ACCEPTING_APPLICATIONS = frozenset(
    {RentCycleStatus.AVAILABLE, RentCycleStatus.SHOWING, RentCycleStatus.APPLICATION_RECEIVED}
)
UNDER_LEASE = frozenset(
    {
        RentCycleStatus.LEASED,
        RentCycleStatus.ACTIVE,
        RentCycleStatus.RENEWAL_PENDING,
        RentCycleStatus.ENDING,
    }
)


def add_months(start: date, months: int) -> date:
    """Same day ``months`` later, clamped to the end of shorter months."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def rent_schedule(start: date, months: int, amount: Decimal) -> list[RentPayment]:
    """One pending payment per month of the lease, keyed ``YYYY-MM``."""
    return [
        RentPayment(month=add_months(start, offset).strftime("%Y-%m"), amount=amount)
        for offset in range(months)
    ]


class RentCycleService(CycleService[RentCycle]):
    """Rent cycles of properties marketed for lease."""

    cycle_type = CycleType.RENT
    model = RentCycle
    id_prefix = "rent"

    def __init__(
        self,
        store: BrokerageDataStore,
        events: EventBus,
        status_sync: Any,
        ownership: OwnershipTransferEngine,
        agency: AgencyConfig | None = None,
    ) -> None:
        super().__init__(store, events, status_sync, agency)
        self.ownership = ownership

    def _initial_status(self, requested: Any) -> RentCycleStatus:
        return RentCycleStatus.AVAILABLE

    def _prepare(self, data: dict[str, Any]) -> dict[str, Any]:
        data.setdefault("available_from", date.today())
        months = data.get("lease_period_months")
        if months is not None and int(months) <= 0:
            raise ValidationError("Lease period must be at least one month")
        return data

    def _extra_stats(self, cycles: list[RentCycle]) -> dict[str, Any]:
        leased = [cycle for cycle in cycles if cycle.status in UNDER_LEASE]
        return {
            "active_leases": len(leased),
            "monthly_revenue": sum((cycle.monthly_rent for cycle in leased), Decimal("0")),
            "total_applications": sum(len(cycle.applications) for cycle in cycles),
        }

    # -- applications ------------------------------------------------------

    def add_application(
        self,
        cycle_id: str,
        tenant_name: str,
        tenant_id: str | None = None,
        tenant_contact: str | None = None,
        offered_rent: Decimal | None = None,
        notes: str | None = None,
        submitted_date: date | None = None,
    ) -> TenantApplication:
        """Take a tenant application while the property is still on the market."""
        if not tenant_name or not tenant_name.strip():
            raise ValidationError("Tenant name is required")

        with self.store.transaction():
            cycle = self._require_open(cycle_id)
            if cycle.status not in ACCEPTING_APPLICATIONS:
                raise InvalidEntityStateError(
                    f"Rent cycle {cycle_id} is {cycle.status.value} and not taking applications"
                )
            application = TenantApplication(
                application_id=generate_id("app"),
                tenant_id=tenant_id or generate_id("tenant"),
                tenant_name=tenant_name.strip(),
                submitted_date=submitted_date or date.today(),
                tenant_contact=tenant_contact,
                offered_rent=to_decimal(offered_rent, "offered_rent") if offered_rent is not None else None,
                notes=notes,
            )
            cycle.applications.append(application)
            cycle.updated_at = datetime.now()
            self._set_status(cycle, RentCycleStatus.APPLICATION_RECEIVED)
            self._publish_updated(cycle, ["applications"])
        return application

    def approve_application(self, cycle_id: str, application_id: str) -> TenantApplication:
        return self._decide_application(cycle_id, application_id, ApplicationStatus.APPROVED)

    def reject_application(self, cycle_id: str, application_id: str) -> TenantApplication:
        return self._decide_application(cycle_id, application_id, ApplicationStatus.REJECTED)

    # -- leases ------------------------------------------------------------

    def sign_lease(
        self,
        cycle_id: str,
        application_id: str | None = None,
        tenant_id: str | None = None,
        tenant_name: str | None = None,
        tenant_contact: str | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> RentCycle:
        """Put a tenant in place and build the rent schedule.

        The tenant comes from ``application_id`` when given, otherwise from
        the explicit tenant fields. The end date defaults to the start plus
        the cycle's lease period. A ``rental`` receipt is recorded.
        """
        with self.store.transaction():
            cycle = self._require_open(cycle_id)
            if cycle.status in UNDER_LEASE and cycle.current_tenant_id:
                raise InvalidEntityStateError(f"Rent cycle {cycle_id} already has an active lease")

            if application_id:
                application = cycle.find_application(application_id)
                if application is None:
                    raise EntityNotFoundError(f"Application {application_id} not found")
                application.status = ApplicationStatus.APPROVED
                tenant_id = application.tenant_id
                tenant_name = application.tenant_name
                tenant_contact = tenant_contact or application.tenant_contact
            if not tenant_name:
                raise ValidationError("Tenant name is required to sign a lease")

            start = start_date or date.today()
            end = end_date or add_months(start, cycle.lease_period_months)
            if end <= start:
                raise ValidationError("Lease end date must be after its start date")
            months = max(1, (end.year - start.year) * 12 + end.month - start.month)

            cycle.current_tenant_id = tenant_id or generate_id("tenant")
            cycle.current_tenant_name = tenant_name
            cycle.current_tenant_contact = tenant_contact
            cycle.lease_start_date = start
            cycle.lease_end_date = end
            cycle.rent_payments = rent_schedule(start, months, cycle.monthly_rent)
            self._set_status(cycle, RentCycleStatus.ACTIVE)

            self.ownership.record_transaction(
                Transaction(
                    transaction_id=generate_id("txn"),
                    property_id=cycle.property_id,
                    transaction_type=TransactionType.RENTAL,
                    agent_id=cycle.agent_id,
                    counterpart_id=cycle.current_tenant_id,
                    counterpart_name=tenant_name,
                    accepted_amount=cycle.monthly_rent,
                    accepted_date=start,
                    source_cycle_id=cycle.cycle_id,
                )
            )
            self._publish_updated(cycle, ["current_tenant_id", "lease_end_date", "lease_start_date", "status"])

        logger.info(
            "Lease signed on rent cycle %s with %s until %s",
            cycle_id,
            tenant_name,
            end,
            extra=log_fields(cycle_id=cycle_id, tenant_id=cycle.current_tenant_id),
        )
        return cycle

    def record_rent_payment(
        self,
        cycle_id: str,
        month: str,
        amount_paid: Decimal,
        paid_date: date | None = None,
        notes: str | None = None,
    ) -> RentPayment:
        """Mark a month ``paid`` when the full amount arrived, otherwise ``partial``."""
        paid = to_decimal(amount_paid, "amount_paid")
        if paid <= 0:
            raise ValidationError("Payment amount must be greater than zero")

        with self.store.transaction():
            cycle = self.repository.require(cycle_id)
            payment = next((p for p in cycle.rent_payments if p.month == month), None)
            if payment is None:
                raise EntityNotFoundError(f"No rent due for {month} on rent cycle {cycle_id}")
            payment.amount_paid = paid
            payment.paid_date = paid_date or date.today()
            payment.status = RentPaymentStatus.PAID if paid >= payment.amount else RentPaymentStatus.PARTIAL
            payment.notes = notes
            cycle.updated_at = datetime.now()
            self._publish_updated(cycle, ["rent_payments"])
        return payment

    def end_lease(
        self,
        cycle_id: str,
        move_out_date: date | None = None,
        deposit_returned: Decimal | None = None,
        deductions: list[Deduction] | None = None,
    ) -> LeaseRecord:
        """Archive the current lease and put the property back on the market."""
        with self.store.transaction():
            cycle = self._require_open(cycle_id)
            record = self._archive_lease(cycle, move_out_date or date.today(), deposit_returned, deductions)
            cycle.current_tenant_id = None
            cycle.current_tenant_name = None
            cycle.current_tenant_contact = None
            cycle.lease_start_date = None
            cycle.lease_end_date = None
            cycle.rent_payments = []
            self._set_status(cycle, RentCycleStatus.AVAILABLE)
            self._publish_updated(cycle, ["lease_history", "status"])
        return record

    def renew_lease(
        self,
        cycle_id: str,
        new_monthly_rent: Decimal | None = None,
        new_lease_period_months: int | None = None,
        start_date: date | None = None,
    ) -> RentCycle:
        """Archive the current lease and start a new term with the same tenant."""
        with self.store.transaction():
            cycle = self._require_open(cycle_id)
            self._archive_lease(cycle, None, None, None)

            if new_monthly_rent is not None:
                cycle.monthly_rent = to_decimal(new_monthly_rent, "new_monthly_rent")
            if new_lease_period_months is not None:
                if new_lease_period_months <= 0:
                    raise ValidationError("Lease period must be at least one month")
                cycle.lease_period_months = new_lease_period_months

            start = start_date or date.today()
            cycle.lease_start_date = start
            cycle.lease_end_date = add_months(start, cycle.lease_period_months)
            cycle.rent_payments = rent_schedule(start, cycle.lease_period_months, cycle.monthly_rent)
            cycle.updated_at = datetime.now()
            self._set_status(cycle, RentCycleStatus.ACTIVE)
            self._publish_updated(cycle, ["lease_history", "lease_start_date", "monthly_rent"])
        return cycle

    def close(self, cycle_id: str) -> RentCycle:
        """End the rent cycle for good. No receipt: the lease signing recorded it."""
        with self.store.transaction():
            cycle = self._require_open(cycle_id)
            if cycle.status in UNDER_LEASE and cycle.current_tenant_id:
                self._archive_lease(cycle, date.today(), None, None)
                cycle.current_tenant_id = None
                cycle.current_tenant_name = None
                cycle.current_tenant_contact = None
            self._set_status(cycle, RentCycleStatus.ENDED)
            self._publish_updated(cycle, ["status"])
        logger.info("Rent cycle %s closed", cycle_id, extra=log_fields(cycle_id=cycle_id))
        return cycle

    # -- helpers -----------------------------------------------------------

    def _decide_application(
        self, cycle_id: str, application_id: str, status: ApplicationStatus
    ) -> TenantApplication:
        with self.store.transaction():
            cycle = self.repository.require(cycle_id)
            application = cycle.find_application(application_id)
            if application is None:
                raise EntityNotFoundError(f"Application {application_id} not found")
            application.status = status
            cycle.updated_at = datetime.now()
            self._publish_updated(cycle, ["applications"])
        return application

    @staticmethod
    def _archive_lease(
        cycle: RentCycle,
        move_out_date: date | None,
        deposit_returned: Decimal | None,
        deductions: list[Deduction] | None,
    ) -> LeaseRecord:
        if not cycle.current_tenant_id or cycle.lease_start_date is None:
            raise InvalidEntityStateError(f"Rent cycle {cycle.cycle_id} has no active lease")

        record = LeaseRecord(
            lease_id=generate_id("lease"),
            tenant_id=cycle.current_tenant_id,
            tenant_name=cycle.current_tenant_name or "",
            start_date=cycle.lease_start_date,
            end_date=cycle.lease_end_date or move_out_date or date.today(),
            monthly_rent=cycle.monthly_rent,
            security_deposit=cycle.security_deposit,
            move_out_date=move_out_date,
            deposit_returned=to_decimal(deposit_returned, "deposit_returned") if deposit_returned is not None else None,
            deductions=list(deductions or []),
        )
        cycle.lease_history.append(record)
        cycle.updated_at = datetime.now()
        return record
