"""Cycle manager: the single entry point over all cycle services."""

import logging
from datetime import date
from decimal import Decimal
from typing import Any

from estate_cycles.config import EngineConfig
from estate_cycles.cycles.base import CycleService
from estate_cycles.cycles.matching import InternalMatchDetector
from estate_cycles.cycles.ownership import OwnershipTransferEngine
from estate_cycles.cycles.purchase import PurchaseCycleService
from estate_cycles.cycles.rent import RentCycleService
from estate_cycles.cycles.sell import SellCycleService
from estate_cycles.cycles.status import StatusSynchronizer
from estate_cycles.events import EventBus
from estate_cycles.exceptions import EstateCyclesError, ValidationError
from estate_cycles.logging import log_fields
from estate_cycles.models import OperationResult
from estate_cycles.models.brokerage import (
    CycleType,
    Deal,
    DualRepresentation,
    InternalMatch,
    Property,
    PropertyCycles,
    TimelineEntry,
)
from estate_cycles.store import BrokerageDataStore, generate_id
from estate_cycles.validation import validate_as

logger = logging.getLogger(__name__)


class CycleManager:
    """Wires the cycle services, ownership engine, status synchronizer and match detector.

    Parameters
    ----------
    store : BrokerageDataStore | None
        Repositories to work on; a fresh in-memory store when omitted.
    events : EventBus | None
        Event channel; observers register with ``manager.events.subscribe``.
    config : EngineConfig | None
        Agency identity, commission defaults and topic prefix.
    """

    def __init__(
        self,
        store: BrokerageDataStore | None = None,
        events: EventBus | None = None,
        config: EngineConfig | None = None,
    ) -> None:
        self.config = config or EngineConfig()
        self.store = store if store is not None else BrokerageDataStore()
        self.events = events or EventBus(self.store, topic_prefix=self.config.kafka.topic_prefix)

        agency = self.config.agency
        self.status = StatusSynchronizer(self.store, self.events)
        self.ownership = OwnershipTransferEngine(self.store, self.events, self.status, agency)
        self.sell = SellCycleService(self.store, self.events, self.status, self.ownership, agency)
        self.purchase = PurchaseCycleService(
            self.store, self.events, self.status, self.ownership, self.sell, agency
        )
        self.rent = RentCycleService(self.store, self.events, self.status, self.ownership, agency)
        self.matches = InternalMatchDetector(self.store)

    def service(self, cycle_type: CycleType | str) -> CycleService:
        """Return the service for a cycle type (``sell``, ``purchase`` or ``rent``)."""
        try:
            kind = CycleType(cycle_type)
        except ValueError as exc:
            raise ValidationError(f"Unknown cycle type: {cycle_type!r}") from exc
        return {CycleType.SELL: self.sell, CycleType.PURCHASE: self.purchase, CycleType.RENT: self.rent}[kind]

    # -- properties --------------------------------------------------------

    def add_property(self, address: str, created_by: str, **data: Any) -> Property:
        """Register a property so cycles can run against it."""
        property_id = data.pop("property_id", None) or generate_id("prop")
        prop = validate_as(
            Property,
            {"property_id": property_id, "address": address, "created_by": created_by, **data},
        )
        with self.store.transaction():
            self.store.add_property(prop)
            self.status.sync(prop.property_id)
        logger.info("Property %s registered", prop.property_id, extra=log_fields(property_id=prop.property_id))
        return prop

    def get_property(self, property_id: str) -> Property | None:
        return self.store.properties.get(property_id)

    def list_properties(self, user_id: str | None = None, role: str | None = None) -> list[Property]:
        return self.store.properties.filter(lambda prop: prop.is_visible_to(user_id, role))

    # -- reads -------------------------------------------------------------

    def get_deal(self, deal_id: str) -> Deal | None:
        return self.store.deals.get(deal_id)

    def get_property_deals(self, property_id: str) -> list[Deal]:
        """Every deal struck on a property, oldest first."""
        with self.store.read():
            return self.store.deals.by_property(property_id)

    def get_property_cycles(self, property_id: str) -> PropertyCycles:
        """Full cycle history of a property, open and closed."""
        return PropertyCycles(
            sell_cycles=self.sell.get_by_property(property_id),
            purchase_cycles=self.purchase.get_by_property(property_id),
            rent_cycles=self.rent.get_by_property(property_id),
        )

    def get_property_cycle_timeline(self, property_id: str) -> list[TimelineEntry]:
        """Dated milestones of every cycle and receipt on a property, newest first."""
        cycles = self.get_property_cycles(property_id)
        timeline: list[TimelineEntry] = []

        for cycle in cycles.sell_cycles:
            timeline.append(
                TimelineEntry(
                    on=cycle.listed_date or cycle.created_at.date(),
                    kind="sell-cycle",
                    action="Sell Cycle Started",
                    details={
                        "cycle_id": cycle.cycle_id,
                        "agent": cycle.agent_name,
                        "asking_price": cycle.asking_price,
                        "status": cycle.status.value,
                    },
                )
            )
            if cycle.sold_date:
                timeline.append(
                    TimelineEntry(
                        on=cycle.sold_date,
                        kind="sell-cycle",
                        action="Property Sold",
                        details={"cycle_id": cycle.cycle_id, "agent": cycle.agent_name},
                    )
                )

        for cycle in cycles.purchase_cycles:
            timeline.append(
                TimelineEntry(
                    on=cycle.offer_date or cycle.created_at.date(),
                    kind="purchase-cycle",
                    action=f"Purchase Cycle Started ({cycle.purchaser_type.value})",
                    details={
                        "cycle_id": cycle.cycle_id,
                        "agent": cycle.agent_name,
                        "purchaser": cycle.purchaser_name,
                        "offer_amount": cycle.offer_amount,
                        "status": cycle.status.value,
                    },
                )
            )
            if cycle.actual_close_date:
                timeline.append(
                    TimelineEntry(
                        on=cycle.actual_close_date,
                        kind="purchase-cycle",
                        action="Purchase Completed",
                        details={
                            "cycle_id": cycle.cycle_id,
                            "agent": cycle.agent_name,
                            "purchaser": cycle.purchaser_name,
                        },
                    )
                )

        for cycle in cycles.rent_cycles:
            timeline.append(
                TimelineEntry(
                    on=cycle.available_from or cycle.created_at.date(),
                    kind="rent-cycle",
                    action="Rent Cycle Started",
                    details={
                        "cycle_id": cycle.cycle_id,
                        "agent": cycle.agent_name,
                        "monthly_rent": cycle.monthly_rent,
                        "status": cycle.status.value,
                    },
                )
            )
            for lease in cycle.lease_history:
                timeline.append(
                    TimelineEntry(
                        on=lease.start_date,
                        kind="rent-cycle",
                        action="Lease Signed",
                        details={"cycle_id": cycle.cycle_id, "tenant": lease.tenant_name},
                    )
                )
            if cycle.lease_start_date:
                timeline.append(
                    TimelineEntry(
                        on=cycle.lease_start_date,
                        kind="rent-cycle",
                        action="Lease Signed",
                        details={"cycle_id": cycle.cycle_id, "tenant": cycle.current_tenant_name},
                    )
                )

        for transaction in self.store.get_property_transactions(property_id):
            timeline.append(
                TimelineEntry(
                    on=transaction.accepted_date,
                    kind="transaction",
                    action=f"Transaction: {transaction.transaction_type.value}",
                    details={
                        "transaction_id": transaction.transaction_id,
                        "counterpart": transaction.counterpart_name,
                        "amount": transaction.accepted_amount,
                        "commission": transaction.commission_amount,
                    },
                )
            )

        timeline.sort(key=lambda entry: entry.on, reverse=True)
        return timeline

    def check_agent_dual_representation(self, property_id: str, agent_id: str) -> DualRepresentation:
        """Whether one agent holds both a sell and a purchase cycle on the property."""
        sell_ids = [c.cycle_id for c in self.sell.get_by_property(property_id) if c.agent_id == agent_id]
        purchase_ids = [c.cycle_id for c in self.purchase.get_by_property(property_id) if c.agent_id == agent_id]
        return DualRepresentation(
            has_dual_rep=bool(sell_ids) and bool(purchase_ids),
            sell_cycle_ids=sell_ids,
            purchase_cycle_ids=purchase_ids,
        )

    def get_all_cycle_stats(self, user_id: str | None = None, role: str | None = None) -> dict[str, Any]:
        return {
            "sell": self.sell.stats(user_id, role),
            "purchase": self.purchase.stats(user_id, role),
            "rent": self.rent.stats(user_id, role),
            "internal_matches": len(self.detect_internal_matches(user_id, role)),
        }

    def detect_internal_matches(self, user_id: str | None = None, role: str | None = None) -> list[InternalMatch]:
        return self.matches.detect(user_id, role)

    def compute_property_status(self, prop: Property | str) -> str:
        """Label for a property (or property id); ``No Active Cycle`` for unknown ids."""
        if isinstance(prop, str):
            found = self.store.properties.get(prop)
            if found is None:
                return "No Active Cycle"
            prop = found
        return self.status.compute_status(prop)

    # -- writes ------------------------------------------------------------

    def create_cycle(self, cycle_type: CycleType | str, /, **data: Any) -> Any:
        """Open a cycle of the given type; raises for unknown properties or bad data."""
        return self.service(cycle_type).create(**data)

    def update_cycle(self, cycle_type: CycleType | str, cycle_id: str, /, **changes: Any) -> OperationResult:
        try:
            self.service(cycle_type).update(cycle_id, **changes)
        except EstateCyclesError as exc:
            logger.warning("Update of %s cycle %s failed: %s", cycle_type, cycle_id, exc)
            return OperationResult.fail(str(exc))
        return OperationResult.ok(entity_id=cycle_id)

    def cancel_cycle(self, cycle_type: CycleType | str, cycle_id: str, reason: str | None = None) -> OperationResult:
        try:
            self.service(cycle_type).cancel(cycle_id, reason)
        except EstateCyclesError as exc:
            logger.warning("Cancel of %s cycle %s failed: %s", cycle_type, cycle_id, exc)
            return OperationResult.fail(str(exc))
        return OperationResult.ok(entity_id=cycle_id)

    def complete_purchase(self, cycle_id: str, final_price: Decimal) -> OperationResult:
        return self.ownership.complete_purchase(cycle_id, final_price)

    def complete_sale(
        self,
        cycle_id: str,
        sold_price: Decimal,
        buyer_id: str | None = None,
        buyer_name: str | None = None,
        sold_date: date | None = None,
    ) -> OperationResult:
        return self.sell.complete_sale(cycle_id, sold_price, buyer_id, buyer_name, sold_date)

    def send_offer_to_sell_cycle(
        self, purchase_cycle_id: str, sell_cycle_id: str, **offer: Any
    ) -> OperationResult:
        return self.purchase.send_offer_to_sell_cycle(purchase_cycle_id, sell_cycle_id, **offer)
