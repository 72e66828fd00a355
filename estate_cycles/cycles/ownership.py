"""Ownership transfer: closing purchase cycles and moving title between owners."""

import copy
import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from estate_cycles.config import AgencyConfig
from estate_cycles.cycles.base import CENT, compute_commission, retire_cycle, to_decimal
from estate_cycles.events import (
    CYCLE_UPDATED,
    PROPERTY_OWNERSHIP_TRANSFERRED,
    TRANSACTION_RECORDED,
    EventBus,
)
from estate_cycles.exceptions import (
    EstateCyclesError,
    InvalidEntityStateError,
    ReferentialIntegrityError,
    ValidationError,
)
from estate_cycles.logging import log_fields
from estate_cycles.models import OperationResult, ValidationResult
from estate_cycles.models.brokerage import (
    AgencyPurchaser,
    ClientPurchaser,
    CycleType,
    InvestorPurchaser,
    InvestorShare,
    OwnershipRecord,
    OwnerType,
    Property,
    PurchaseCycle,
    PurchaseCycleStatus,
    Transaction,
    TransactionType,
)
from estate_cycles.models.brokerage.enums import TERMINAL_STATUSES
from estate_cycles.store import BrokerageDataStore, generate_id

logger = logging.getLogger(__name__)

# Owner id used when several investors hold a property together.
INVESTOR_GROUP_ID = "INVESTORS"

DEFAULT_SHARE_TOLERANCE = Decimal("0.01")


def validate_investor_shares(
    shares: list[InvestorShare] | None,
    tolerance: Decimal = DEFAULT_SHARE_TOLERANCE,
) -> ValidationResult:
    """Check a set of investor shares before any ownership is moved.

    Parameters
    ----------
    shares : list[InvestorShare] | None
        The investors taking part in one purchase.
    tolerance : Decimal
        Allowed distance of the percentage total from 100.

    Returns
    -------
    ValidationResult
        ``valid`` is False with a readable ``error`` on the first problem found.
    """
    if not shares:
        return ValidationResult(valid=False, error="At least one investor is required")

    for share in shares:
        if not share.investor_id or not share.investor_name:
            return ValidationResult(valid=False, error="All investors must have ID and name")
        percentage = to_decimal(share.share_percentage, "share_percentage")
        if percentage <= 0 or percentage > 100:
            return ValidationResult(
                valid=False, error="Each investor percentage must be between 0 and 100"
            )
        if share.investment_amount is None or to_decimal(share.investment_amount) <= 0:
            return ValidationResult(
                valid=False, error="All investors must have valid investment amounts"
            )

    total = sum((to_decimal(share.share_percentage) for share in shares), Decimal("0"))
    if abs(total - 100) > tolerance:
        return ValidationResult(
            valid=False,
            error=f"Total percentage must equal 100% (currently {total.quantize(CENT)}%)",
        )
    return ValidationResult(valid=True)


def investment_amounts(shares: list[InvestorShare], total_price: Decimal) -> list[InvestorShare]:
    """Return copies of ``shares`` with each investment set to its slice of ``total_price``."""
    price = to_decimal(total_price, "total_price")
    return [
        InvestorShare(
            investor_id=share.investor_id,
            investor_name=share.investor_name,
            share_percentage=share.share_percentage,
            investment_amount=(price * to_decimal(share.share_percentage) / 100).quantize(CENT),
            notes=share.notes,
        )
        for share in shares
    ]


def ownership_duration_days(record: OwnershipRecord, today: datetime | None = None) -> int:
    """Days the owner held the property; open records count up to ``today``."""
    end = record.sold_at or today or datetime.now()
    seconds = abs((end - record.acquired_at).total_seconds())
    days, remainder = divmod(seconds, 86400)
    return int(days) + (1 if remainder else 0)


class OwnershipTransferEngine:
    """Moves ownership between parties and completes purchase cycles atomically."""

    source = "ownership-engine"

    def __init__(
        self,
        store: BrokerageDataStore,
        events: EventBus,
        status_sync: Any,
        agency: AgencyConfig | None = None,
    ) -> None:
        self.store = store
        self.events = events
        self.status_sync = status_sync
        self.agency = agency or AgencyConfig()

    def validate_investor_shares(self, shares: list[InvestorShare] | None) -> ValidationResult:
        return validate_investor_shares(shares, self.agency.share_tolerance)

    def transfer_ownership(
        self,
        property_id: str,
        new_owner_id: str,
        new_owner_name: str,
        new_owner_type: OwnerType,
        transaction_id: str | None = None,
        investor_shares: list[InvestorShare] | None = None,
        sale_price: Decimal | None = None,
        note: str | None = None,
    ) -> Property:
        """Close the current ownership record and open one for the new owner.

        Earlier records are only ever stamped with ``sold_at`` and
        ``exit_price``; the chain itself is append-only.
        """
        with self.store.transaction():
            prop = self.store.properties.get(property_id)
            if prop is None:
                raise ReferentialIntegrityError(f"Property {property_id} not found")

            now = datetime.now()
            price = to_decimal(sale_price, "sale_price") if sale_price is not None else None
            shares = copy.deepcopy(investor_shares) if investor_shares else []

            current = self._open_record(prop)
            if current is not None:
                current.sold_at = now
                current.exit_price = price

            prop.ownership_history.append(
                OwnershipRecord(
                    owner_id=new_owner_id,
                    owner_name=new_owner_name,
                    owner_type=OwnerType(new_owner_type),
                    acquired_at=now,
                    previous_owner_id=prop.current_owner_id,
                    previous_owner_name=prop.current_owner_name,
                    transaction_id=transaction_id,
                    sale_price=price,
                    investor_shares=shares,
                    notes=note,
                )
            )
            previous_owner_id = prop.current_owner_id
            prop.current_owner_id = new_owner_id
            prop.current_owner_name = new_owner_name
            prop.current_owner_type = OwnerType(new_owner_type)
            prop.investor_shares = copy.deepcopy(shares)
            prop.updated_at = now

            self.events.publish(
                PROPERTY_OWNERSHIP_TRANSFERRED,
                property_id,
                {
                    "property_id": property_id,
                    "previous_owner_id": previous_owner_id,
                    "owner_id": new_owner_id,
                    "owner_type": OwnerType(new_owner_type).value,
                    "transaction_id": transaction_id,
                },
                source=self.source,
            )

        logger.info(
            "Ownership of %s transferred to %s (%s)",
            property_id,
            new_owner_name,
            OwnerType(new_owner_type).value,
            extra=log_fields(property_id=property_id, owner_id=new_owner_id, transaction_id=transaction_id),
        )
        return prop

    def record_transaction(self, transaction: Transaction) -> Transaction:
        """Store an immutable receipt and announce it."""
        with self.store.transaction():
            stored = self.store.add_transaction(transaction)
            self.events.publish(
                TRANSACTION_RECORDED,
                stored.transaction_id,
                {
                    "property_id": stored.property_id,
                    "transaction_id": stored.transaction_id,
                    "transaction_type": stored.transaction_type.value,
                    "amount": str(stored.accepted_amount),
                },
                source=self.source,
            )
        return stored

    def complete_purchase(self, cycle_id: str, final_price: Decimal) -> OperationResult:
        """Close a purchase cycle: receipt, ownership transfer, ``acquired`` status.

        Failures come back as ``OperationResult(success=False)`` and leave the
        store exactly as it was.
        """
        cycle = self.store.purchase_cycles.get(cycle_id)
        if cycle is None:
            return OperationResult.fail("Purchase cycle not found")

        try:
            if cycle.status in TERMINAL_STATUSES[CycleType.PURCHASE]:
                raise InvalidEntityStateError(f"Purchase cycle {cycle_id} is already {cycle.status.value}")
            price = to_decimal(final_price, "final_price")
            if price <= 0:
                raise ValidationError("Final price must be greater than zero")
            owner_id, owner_name, owner_type, commission, shares = self._resolve_buyer(cycle, price)

            with self.store.transaction():
                transaction = self.record_transaction(
                    Transaction(
                        transaction_id=generate_id("txn"),
                        property_id=cycle.property_id,
                        transaction_type=TransactionType.PURCHASE,
                        agent_id=cycle.agent_id,
                        counterpart_id=owner_id,
                        counterpart_name=owner_name,
                        accepted_amount=price,
                        accepted_date=date.today(),
                        source_cycle_id=cycle.cycle_id,
                        commission_amount=commission,
                    )
                )
                self.transfer_ownership(
                    cycle.property_id,
                    owner_id,
                    owner_name,
                    owner_type,
                    transaction_id=transaction.transaction_id,
                    investor_shares=shares,
                    sale_price=price,
                    note=f"Purchased via {cycle.purchaser_type.value} purchase cycle. Seller: {cycle.seller_name}",
                )

                cycle.status = PurchaseCycleStatus.ACQUIRED
                cycle.negotiated_price = price
                cycle.actual_close_date = date.today()
                cycle.commission_amount = commission
                cycle.updated_at = datetime.now()
                retire_cycle(self.store, CycleType.PURCHASE, cycle.cycle_id, cycle.property_id)
                self.status_sync.sync(cycle.property_id)
                self.events.publish(
                    CYCLE_UPDATED,
                    cycle.cycle_id,
                    {
                        "property_id": cycle.property_id,
                        "cycle_id": cycle.cycle_id,
                        "cycle_type": CycleType.PURCHASE.value,
                        "status": cycle.status.value,
                        "changed": ["actual_close_date", "commission_amount", "negotiated_price", "status"],
                    },
                    source=self.source,
                )
        except EstateCyclesError as exc:
            logger.warning(
                "Purchase cycle %s could not be completed: %s",
                cycle_id,
                exc,
                extra=log_fields(cycle_id=cycle_id, property_id=cycle.property_id),
            )
            return OperationResult.fail(str(exc))

        logger.info(
            "Purchase cycle %s completed at %s",
            cycle_id,
            price,
            extra=log_fields(cycle_id=cycle_id, transaction_id=transaction.transaction_id),
        )
        return OperationResult.ok(transaction_id=transaction.transaction_id, entity_id=cycle_id)

    def _resolve_buyer(
        self, cycle: PurchaseCycle, price: Decimal
    ) -> tuple[str, str, OwnerType, Decimal, list[InvestorShare] | None]:
        """Who ends up owning the property, and what the agency earns."""
        purchaser = cycle.purchaser

        if isinstance(purchaser, AgencyPurchaser):
            return (
                purchaser.purchaser_id,
                purchaser.purchaser_name,
                OwnerType.AGENCY,
                Decimal("0"),
                None,
            )

        if isinstance(purchaser, InvestorPurchaser):
            result = self.validate_investor_shares(purchaser.investors)
            if not result.valid:
                raise ValidationError(result.error)
            fee = to_decimal(purchaser.facilitation_fee, "facilitation_fee")
            if len(purchaser.investors) > 1:
                names = ", ".join(share.investor_name for share in purchaser.investors)
                return INVESTOR_GROUP_ID, names, OwnerType.INVESTOR, fee, purchaser.investors
            return (
                purchaser.purchaser_id,
                purchaser.purchaser_name,
                OwnerType.INVESTOR,
                fee,
                purchaser.investors,
            )

        if isinstance(purchaser, ClientPurchaser):
            commission = compute_commission(price, purchaser.commission_rate, purchaser.commission_type)
            return (
                purchaser.purchaser_id,
                purchaser.purchaser_name,
                OwnerType.CLIENT,
                commission,
                None,
            )

        raise ValidationError("Invalid purchaser type")

    # -- queries -----------------------------------------------------------

    def current_owner(self, property_id: str) -> OwnershipRecord | None:
        """The open ownership record of a property, if any."""
        prop = self.store.properties.get(property_id)
        if prop is None:
            return None
        return self._open_record(prop)

    def ownership_history(self, property_id: str) -> list[OwnershipRecord]:
        prop = self.store.properties.get(property_id)
        if prop is None:
            return []
        return list(prop.ownership_history)

    def sales_count(self, property_id: str) -> int:
        """How many times the property changed hands (closed ownership records)."""
        return sum(1 for record in self.ownership_history(property_id) if record.sold_at is not None)

    def can_relist(self, property_id: str) -> ValidationResult:
        """Whether the agency may buy a sold property back into its inventory."""
        prop = self.store.properties.get(property_id)
        if prop is None:
            return ValidationResult(valid=False, error="Property not found")
        if prop.current_owner_id == self.agency.agency_id:
            return ValidationResult(valid=False, error="Property already owned by agency")
        if not prop.current_owner_id or prop.active_sell_cycle_ids:
            return ValidationResult(valid=False, error="Property is not in a sold state")
        return ValidationResult(valid=True)

    def relist_property(
        self,
        property_id: str,
        purchase_price: Decimal,
        seller_name: str,
        agent_id: str,
        purchase_date: date | None = None,
    ) -> OperationResult:
        """Buy a sold property back for the agency inventory."""
        eligibility = self.can_relist(property_id)
        if not eligibility.valid:
            return OperationResult.fail(eligibility.error)

        try:
            price = to_decimal(purchase_price, "purchase_price")
            with self.store.transaction():
                prop = self.store.properties.require(property_id)
                transaction = self.record_transaction(
                    Transaction(
                        transaction_id=generate_id("txn"),
                        property_id=property_id,
                        transaction_type=TransactionType.PURCHASE,
                        agent_id=agent_id,
                        counterpart_id=prop.current_owner_id,
                        counterpart_name=seller_name,
                        accepted_amount=price,
                        accepted_date=purchase_date or date.today(),
                        source_cycle_id=property_id,
                    )
                )
                self.transfer_ownership(
                    property_id,
                    self.agency.agency_id,
                    self.agency.agency_name,
                    OwnerType.AGENCY,
                    transaction_id=transaction.transaction_id,
                    sale_price=price,
                    note=f"Re-purchased from {seller_name} for {price}",
                )
        except EstateCyclesError as exc:
            logger.warning("Relisting %s failed: %s", property_id, exc)
            return OperationResult.fail(str(exc))
        return OperationResult.ok(transaction_id=transaction.transaction_id, entity_id=property_id)

    @staticmethod
    def _open_record(prop: Property) -> OwnershipRecord | None:
        for record in reversed(prop.ownership_history):
            if record.owner_id == prop.current_owner_id and record.sold_at is None:
                return record
        return None
