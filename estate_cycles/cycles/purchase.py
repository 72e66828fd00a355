"""Purchase cycles for agency, investor and client buyers."""

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from estate_cycles.config import AgencyConfig
from estate_cycles.cycles.base import CENT, CycleService, to_decimal
from estate_cycles.cycles.ownership import OwnershipTransferEngine
from estate_cycles.cycles.sell import SellCycleService
from estate_cycles.events import EventBus
from estate_cycles.exceptions import EstateCyclesError, InconsistentLinkError, ValidationError
from estate_cycles.logging import log_fields
from estate_cycles.models import OperationResult
from estate_cycles.models.brokerage import (
    AgencyPurchaser,
    ClientPurchaser,
    CycleType,
    InvestorPurchaser,
    OfferSource,
    PurchaseCycle,
    PurchaseCycleStatus,
    PurchaserType,
)
from estate_cycles.store import BrokerageDataStore
from estate_cycles.validation import validate_as

logger = logging.getLogger(__name__)

PURCHASER_VARIANTS = {
    PurchaserType.AGENCY: AgencyPurchaser,
    PurchaserType.INVESTOR: InvestorPurchaser,
    PurchaserType.CLIENT: ClientPurchaser,
}


def build_purchaser(data: dict[str, Any]) -> AgencyPurchaser | InvestorPurchaser | ClientPurchaser:
    """Build a purchaser variant from a mapping carrying ``purchaser_type``."""
    raw_type = data.get("purchaser_type")
    try:
        purchaser_type = PurchaserType(raw_type)
    except ValueError as exc:
        raise ValidationError(f"Invalid purchaser type: {raw_type!r}") from exc

    values = {**data, "purchaser_type": purchaser_type}
    return validate_as(
        PURCHASER_VARIANTS[purchaser_type],
        values,
        error_prefix=f"Cannot build {purchaser_type.value} purchaser",
    )


class PurchaseCycleService(CycleService[PurchaseCycle]):
    """Purchase cycles: the agency or its clients buying a property."""

    cycle_type = CycleType.PURCHASE
    model = PurchaseCycle
    id_prefix = "purchase"

    def __init__(
        self,
        store: BrokerageDataStore,
        events: EventBus,
        status_sync: Any,
        ownership: OwnershipTransferEngine,
        sell: SellCycleService,
        agency: AgencyConfig | None = None,
    ) -> None:
        super().__init__(store, events, status_sync, agency)
        self.ownership = ownership
        self.sell = sell

    def _initial_status(self, requested: Any) -> PurchaseCycleStatus:
        if requested in (PurchaseCycleStatus.PROSPECTING, PurchaseCycleStatus.PROSPECTING.value):
            return PurchaseCycleStatus.PROSPECTING
        return PurchaseCycleStatus.OFFER_MADE

    def _prepare(self, data: dict[str, Any]) -> dict[str, Any]:
        purchaser = data.get("purchaser")
        if isinstance(purchaser, dict):
            data["purchaser"] = build_purchaser(purchaser)
        elif purchaser is None:
            raise ValidationError("purchaser is required")
        elif not isinstance(purchaser, tuple(PURCHASER_VARIANTS.values())):
            raise ValidationError(f"Invalid purchaser: {purchaser!r}")
        data.setdefault("offer_date", date.today())
        return data

    def _extra_stats(self, cycles: list[PurchaseCycle]) -> dict[str, Any]:
        by_type = {member.value: 0 for member in PurchaserType}
        for cycle in cycles:
            by_type[cycle.purchaser_type.value] += 1

        offers = [cycle.offer_amount for cycle in cycles]
        average = (sum(offers, Decimal("0")) / len(offers)).quantize(CENT) if offers else Decimal("0")
        agency_investment = sum(
            (
                cycle.negotiated_price or cycle.offer_amount
                for cycle in cycles
                if cycle.purchaser_type == PurchaserType.AGENCY
                and cycle.status != PurchaseCycleStatus.CANCELLED
            ),
            Decimal("0"),
        )
        return {
            "by_purchaser_type": by_type,
            "average_offer_amount": average,
            "total_investment": agency_investment,
        }

    # -- operations --------------------------------------------------------

    def complete(self, cycle_id: str, final_price: Decimal) -> OperationResult:
        return self.ownership.complete_purchase(cycle_id, final_price)

    def send_offer_to_sell_cycle(
        self,
        purchase_cycle_id: str,
        sell_cycle_id: str,
        offer_amount: Decimal | None = None,
        token_amount: Decimal | None = None,
        conditions: str | None = None,
        notes: str | None = None,
    ) -> OperationResult:
        """Submit this purchase cycle's offer to one of our own sell cycles.

        Both sides end up pointing at each other. Cycles on different
        properties are refused without touching either.
        """
        try:
            with self.store.transaction():
                purchase = self._require_open(purchase_cycle_id)
                sell_cycle = self.store.sell_cycles.require(sell_cycle_id)
                if purchase.property_id != sell_cycle.property_id:
                    logger.warning(
                        "Refusing to link purchase cycle %s (%s) to sell cycle %s (%s)",
                        purchase.cycle_id,
                        purchase.property_id,
                        sell_cycle.cycle_id,
                        sell_cycle.property_id,
                        extra=log_fields(cycle_id=purchase.cycle_id, sell_cycle_id=sell_cycle.cycle_id),
                    )
                    raise InconsistentLinkError("Purchase and sell cycles are on different properties")

                amount = to_decimal(offer_amount, "offer_amount") if offer_amount is not None else purchase.offer_amount
                offer = self.sell.add_offer(
                    sell_cycle.cycle_id,
                    buyer_name=purchase.purchaser_name,
                    offer_amount=amount,
                    buyer_id=purchase.purchaser_id,
                    token_amount=token_amount,
                    conditions=conditions,
                    notes=notes,
                    source_type=OfferSource.PURCHASE_CYCLE,
                    buyer_agent_id=purchase.agent_id,
                    buyer_agent_name=purchase.agent_name,
                    linked_purchase_cycle_id=purchase.cycle_id,
                )

                purchase.linked_sell_cycle_id = sell_cycle.cycle_id
                purchase.linked_sell_cycle_offer_id = offer.offer_id
                purchase.offer_amount = amount
                if token_amount is not None:
                    purchase.token_amount = to_decimal(token_amount, "token_amount")
                purchase.updated_at = datetime.now()
                if purchase.status == PurchaseCycleStatus.PROSPECTING:
                    self._set_status(purchase, PurchaseCycleStatus.OFFER_MADE)
                self._publish_updated(
                    purchase, ["linked_sell_cycle_id", "linked_sell_cycle_offer_id", "offer_amount"]
                )
        except EstateCyclesError as exc:
            return OperationResult.fail(str(exc))

        logger.info(
            "Purchase cycle %s sent offer %s to sell cycle %s",
            purchase_cycle_id,
            offer.offer_id,
            sell_cycle_id,
            extra=log_fields(cycle_id=purchase_cycle_id, offer_id=offer.offer_id),
        )
        return OperationResult.ok(entity_id=offer.offer_id)

    def mark_offer_accepted(
        self,
        cycle_id: str,
        negotiated_price: Decimal | None = None,
        accepted_on: date | None = None,
    ) -> PurchaseCycle:
        """Record the seller's acceptance; defaults to the current offer amount."""
        with self.store.transaction():
            cycle = self._require_open(cycle_id)
            price = to_decimal(negotiated_price, "negotiated_price") if negotiated_price is not None else cycle.offer_amount
            previous = cycle.status
            cycle.mark_accepted(price, accepted_on or date.today())
            cycle.updated_at = datetime.now()
            if previous != cycle.status:
                self.status_sync.sync(cycle.property_id)
            self._publish_updated(cycle, ["acceptance_date", "negotiated_price", "status"])
        return cycle

    def agency_investment_roi(self, cycle_id: str) -> dict[str, Any] | None:
        """Projected return of an agency purchase; None for other purchasers or unknown ids.

        ``invested`` is the negotiated price (or offer) plus the renovation
        budget; ``roi_percentage`` is ``(expected resale - invested) /
        invested * 100`` and stays None without an expected resale value.
        """
        cycle = self.get(cycle_id)
        if cycle is None or not isinstance(cycle.purchaser, AgencyPurchaser):
            return None

        purchaser = cycle.purchaser
        invested = (cycle.negotiated_price or cycle.offer_amount) + (purchaser.renovation_budget or Decimal("0"))
        expected = purchaser.expected_resale_value

        roi = None
        profit = None
        if expected is not None and invested > 0:
            profit = expected - invested
            roi = (profit / invested * 100).quantize(CENT)

        return {
            "invested": invested,
            "expected_resale_value": expected,
            "expected_profit": profit,
            "roi_percentage": roi,
            "target_roi": purchaser.target_roi,
            "meets_target": None if roi is None or purchaser.target_roi is None else roi >= purchaser.target_roi,
        }
