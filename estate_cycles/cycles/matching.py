"""Internal match detection between our own sell and purchase cycles."""

import logging
from decimal import Decimal

from estate_cycles.cycles.base import CENT, compute_commission
from estate_cycles.models.brokerage import (
    ClientPurchaser,
    InternalMatch,
    InvestorPurchaser,
    Property,
    PurchaseCycle,
    PurchaseCycleStatus,
    PurchaseSide,
    SellCycle,
    SellCycleStatus,
    SellSide,
)
from estate_cycles.store import BrokerageDataStore

logger = logging.getLogger(__name__)

LIVE_SELL_STATUSES = frozenset(
    {SellCycleStatus.LISTED, SellCycleStatus.OFFER_RECEIVED, SellCycleStatus.NEGOTIATION}
)
LIVE_PURCHASE_STATUSES = frozenset(
    {PurchaseCycleStatus.OFFER_MADE, PurchaseCycleStatus.NEGOTIATION, PurchaseCycleStatus.ACCEPTED}
)


def purchase_commission(cycle: PurchaseCycle) -> Decimal:
    """What the agency earns from the buy side of a purchase cycle."""
    purchaser = cycle.purchaser
    if isinstance(purchaser, ClientPurchaser):
        return compute_commission(cycle.offer_amount, purchaser.commission_rate, purchaser.commission_type)
    if isinstance(purchaser, InvestorPurchaser):
        return purchaser.facilitation_fee
    # Agency purchases earn no commission.
    return Decimal("0")


def sell_commission(cycle: SellCycle) -> Decimal:
    return compute_commission(cycle.asking_price, cycle.commission_rate, cycle.commission_type)


class InternalMatchDetector:
    """Finds properties where a live listing and live buy-side cycles meet.

    Nothing is cached: every call reads the current cycle statuses.
    """

    def __init__(self, store: BrokerageDataStore) -> None:
        self.store = store

    def detect(self, user_id: str | None = None, role: str | None = None) -> list[InternalMatch]:
        """Return matches ordered by the absolute gap between asking price and best offer."""
        matches = []
        with self.store.read():
            for prop in self.store.properties:
                if not prop.is_visible_to(user_id, role):
                    continue
                match = self._match_property(prop)
                if match is not None:
                    matches.append(match)

        matches.sort(key=lambda match: abs(match.gap))
        logger.debug("Detected %d internal matches", len(matches))
        return matches

    def _match_property(self, prop: Property) -> InternalMatch | None:
        if not prop.active_sell_cycle_ids or not prop.active_purchase_cycle_ids:
            return None

        sell_cycles = [
            cycle
            for cycle in (self.store.sell_cycles.get(cid) for cid in prop.active_sell_cycle_ids)
            if cycle is not None and cycle.status in LIVE_SELL_STATUSES
        ]
        purchase_cycles = [
            cycle
            for cycle in (self.store.purchase_cycles.get(cid) for cid in prop.active_purchase_cycle_ids)
            if cycle is not None and cycle.status in LIVE_PURCHASE_STATUSES
        ]
        if not sell_cycles or not purchase_cycles:
            return None

        primary = sell_cycles[0]
        sides = [
            PurchaseSide(
                cycle_id=cycle.cycle_id,
                agent_id=cycle.agent_id,
                agent_name=cycle.agent_name,
                purchaser_type=cycle.purchaser_type,
                purchaser_name=cycle.purchaser_name,
                offer_amount=cycle.offer_amount,
                commission_amount=purchase_commission(cycle),
                is_dual_rep=cycle.agent_id == primary.agent_id,
            )
            for cycle in purchase_cycles
        ]

        best_offer = max(side.offer_amount for side in sides)
        gap = primary.asking_price - best_offer
        gap_percentage = (gap / primary.asking_price * 100).quantize(CENT) if primary.asking_price else Decimal("0")

        return InternalMatch(
            property_id=prop.property_id,
            property_address=prop.address,
            sell_cycle=SellSide(
                cycle_id=primary.cycle_id,
                agent_id=primary.agent_id,
                agent_name=primary.agent_name,
                seller_name=primary.seller_name,
                asking_price=primary.asking_price,
                commission_rate=primary.commission_rate,
                commission_type=primary.commission_type,
            ),
            purchase_cycles=sides,
            potential_revenue=sell_commission(primary) + sum((side.commission_amount for side in sides), Decimal("0")),
            best_offer=best_offer,
            gap=gap,
            gap_percentage=gap_percentage,
        )
