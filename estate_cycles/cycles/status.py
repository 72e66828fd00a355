"""Derive a property's display status from the cycles open against it."""

import logging

from estate_cycles.events import PROPERTY_STATUS_CHANGED, EventBus
from estate_cycles.logging import log_fields
from estate_cycles.models.brokerage import (
    Property,
    PurchaseCycleStatus,
    RentCycleStatus,
    SellCycleStatus,
)
from estate_cycles.store import BrokerageDataStore

logger = logging.getLogger(__name__)

NO_ACTIVE_CYCLE = "No Active Cycle"
LABEL_SEPARATOR = " & "

OFFER_STAGE = frozenset({PurchaseCycleStatus.OFFER_MADE, PurchaseCycleStatus.NEGOTIATION})
LEASED = frozenset({RentCycleStatus.ACTIVE, RentCycleStatus.LEASED})
MARKETED_FOR_RENT = frozenset({RentCycleStatus.AVAILABLE, RentCycleStatus.SHOWING})
MARKETED_FOR_SALE = frozenset({SellCycleStatus.LISTED, SellCycleStatus.OFFER_RECEIVED})


class StatusSynchronizer:
    """Keeps ``Property.status_label`` in step with the property's open cycles."""

    source = "status-synchronizer"

    def __init__(self, store: BrokerageDataStore, events: EventBus) -> None:
        self.store = store
        self.events = events

    def compute_status(self, prop: Property) -> str:
        """Build the label from scratch; never mutates anything.

        Ids in the active lists that no longer resolve are skipped.
        """
        labels = [
            self._sell_label(prop),
            self._purchase_label(prop),
            self._rent_label(prop),
        ]
        labels = [label for label in labels if label]
        return LABEL_SEPARATOR.join(labels) if labels else NO_ACTIVE_CYCLE

    def sync(self, property_id: str) -> str | None:
        """Recompute and store the label, announcing it only when it moved."""
        with self.store.transaction():
            prop = self.store.properties.get(property_id)
            if prop is None:
                logger.warning(
                    "Cannot sync status of unknown property %s",
                    property_id,
                    extra=log_fields(property_id=property_id),
                )
                return None

            label = self.compute_status(prop)
            previous = prop.status_label
            if label != previous:
                prop.status_label = label
                self.events.publish(
                    PROPERTY_STATUS_CHANGED,
                    property_id,
                    {"property_id": property_id, "previous_status": previous, "status": label},
                    source=self.source,
                )
                logger.debug("Property %s status: %s -> %s", property_id, previous, label)
        return label

    def sync_all(self) -> dict[str, str]:
        """Re-derive every property's label, e.g. after loading a persisted store."""
        with self.store.transaction():
            return {prop.property_id: self.sync(prop.property_id) for prop in self.store.properties}

    def _statuses(self, repository, cycle_ids: list[str]) -> list:
        cycles = (repository.get(cycle_id) for cycle_id in cycle_ids)
        return [cycle.status for cycle in cycles if cycle is not None]

    def _sell_label(self, prop: Property) -> str | None:
        statuses = self._statuses(self.store.sell_cycles, prop.active_sell_cycle_ids)
        if SellCycleStatus.UNDER_CONTRACT in statuses:
            return "Under Contract"
        if SellCycleStatus.NEGOTIATION in statuses:
            return "Negotiation"
        if any(status in MARKETED_FOR_SALE for status in statuses):
            return "For Sale"
        return None

    def _purchase_label(self, prop: Property) -> str | None:
        statuses = self._statuses(self.store.purchase_cycles, prop.active_purchase_cycle_ids)
        if not statuses:
            return None
        offers = sum(1 for status in statuses if status in OFFER_STAGE)
        if offers > 1:
            return f"{offers} Purchase Offers"
        if offers == 1:
            return "Purchase Offer"
        return "In Acquisition"

    def _rent_label(self, prop: Property) -> str | None:
        statuses = self._statuses(self.store.rent_cycles, prop.active_rent_cycle_ids)
        if any(status in LEASED for status in statuses):
            return "Leased"
        if RentCycleStatus.APPLICATION_RECEIVED in statuses:
            return "Applications Received"
        if any(status in MARKETED_FOR_RENT for status in statuses):
            return "For Rent"
        return None
