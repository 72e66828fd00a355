"""Sell cycles: listings, buyer offers and completed sales."""

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from estate_cycles.config import AgencyConfig
from estate_cycles.cycles.base import CycleService, compute_commission, to_decimal
from estate_cycles.cycles.ownership import OwnershipTransferEngine
from estate_cycles.events import DEAL_CREATED, EventBus
from estate_cycles.exceptions import (
    EntityNotFoundError,
    EstateCyclesError,
    InvalidEntityStateError,
    ValidationError,
)
from estate_cycles.logging import log_fields
from estate_cycles.models import OperationResult
from estate_cycles.models.brokerage import (
    CycleType,
    Deal,
    DealStatus,
    Offer,
    OfferSource,
    OfferStatus,
    OwnerType,
    Property,
    PurchaseCycle,
    SellCycle,
    SellCycleStatus,
    Transaction,
    TransactionType,
)
from estate_cycles.models.brokerage.enums import TERMINAL_STATUSES
from estate_cycles.store import BrokerageDataStore, generate_id

logger = logging.getLogger(__name__)

OPEN_OFFER_STATUSES = frozenset({OfferStatus.PENDING, OfferStatus.COUNTERED})


class SellCycleService(CycleService[SellCycle]):
    """Sell cycles of the agency's listings."""

    cycle_type = CycleType.SELL
    model = SellCycle
    id_prefix = "sell"

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

    def _initial_status(self, requested: Any) -> SellCycleStatus:
        return SellCycleStatus.LISTED

    def _prepare(self, data: dict[str, Any]) -> dict[str, Any]:
        data.setdefault("listed_date", date.today())
        data.setdefault("commission_rate", self.agency.default_commission_rate)
        if data.get("shared_with"):
            data["is_shared"] = True
        return data

    def _after_write(self, cycle: SellCycle, prop: Property) -> None:
        # The property's asking price follows its primary (first open) sell cycle.
        for cycle_id in prop.active_sell_cycle_ids:
            primary = self.repository.get(cycle_id)
            if primary is not None:
                prop.price = primary.asking_price
                return

    def _is_visible(self, cycle: SellCycle, user_id: str) -> bool:
        return cycle.agent_id == user_id or user_id in cycle.shared_with

    def _extra_stats(self, cycles: list[SellCycle]) -> dict[str, Any]:
        offers = [offer for cycle in cycles for offer in cycle.offers]
        live = [
            cycle
            for cycle in cycles
            if cycle.status not in (SellCycleStatus.SOLD, SellCycleStatus.CANCELLED)
        ]
        return {
            "total_offers": len(offers),
            "pending_offers": sum(1 for offer in offers if offer.status in OPEN_OFFER_STATUSES),
            "total_listing_value": sum((cycle.asking_price for cycle in live), Decimal("0")),
        }

    # -- offers ------------------------------------------------------------

    def add_offer(
        self,
        cycle_id: str,
        buyer_name: str,
        offer_amount: Decimal,
        buyer_id: str | None = None,
        token_amount: Decimal | None = None,
        buyer_contact: str | None = None,
        conditions: str | None = None,
        notes: str | None = None,
        source_type: OfferSource = OfferSource.MANUAL,
        buyer_agent_id: str | None = None,
        buyer_agent_name: str | None = None,
        linked_purchase_cycle_id: str | None = None,
        offered_date: date | None = None,
    ) -> Offer:
        """Record a buyer offer; the first one moves a listing to ``offer-received``."""
        amount = to_decimal(offer_amount, "offer_amount")
        token = to_decimal(token_amount, "token_amount") if token_amount is not None else None
        if amount <= 0:
            raise ValidationError("Offer amount must be greater than zero")
        if not buyer_name or not buyer_name.strip():
            raise ValidationError("Buyer name is required")
        if token is not None and token > amount:
            raise ValidationError("Token amount cannot exceed the offer amount")

        with self.store.transaction():
            cycle = self._require_open(cycle_id)
            now = datetime.now()
            offer = Offer(
                offer_id=generate_id("offer"),
                buyer_id=buyer_id or generate_id("buyer"),
                buyer_name=buyer_name.strip(),
                offer_amount=amount,
                offered_date=offered_date or date.today(),
                buyer_contact=buyer_contact,
                token_amount=token,
                conditions=conditions,
                notes=notes,
                source_type=OfferSource(source_type),
                buyer_agent_id=buyer_agent_id,
                buyer_agent_name=buyer_agent_name,
                linked_purchase_cycle_id=linked_purchase_cycle_id,
                created_at=now,
                updated_at=now,
            )
            cycle.offers.append(offer)
            cycle.updated_at = now
            if cycle.status == SellCycleStatus.LISTED:
                self._set_status(cycle, SellCycleStatus.OFFER_RECEIVED)
            self._publish_updated(cycle, ["offers"])

        logger.info(
            "Offer %s of %s on sell cycle %s",
            offer.offer_id,
            amount,
            cycle_id,
            extra=log_fields(cycle_id=cycle_id, offer_id=offer.offer_id),
        )
        return offer

    def counter_offer(
        self,
        cycle_id: str,
        offer_id: str,
        counter_amount: Decimal,
        notes: str | None = None,
    ) -> Offer:
        """Answer an offer with a counter amount and move into negotiation."""
        amount = to_decimal(counter_amount, "counter_amount")
        if amount <= 0:
            raise ValidationError("Counter amount must be greater than zero")

        with self.store.transaction():
            cycle = self._require_open(cycle_id)
            offer = self._require_offer(cycle, offer_id, OPEN_OFFER_STATUSES)
            offer.status = OfferStatus.COUNTERED
            offer.counter_offer_amount = amount
            if notes:
                offer.agent_notes = notes
            offer.updated_at = datetime.now()
            self._set_status(cycle, SellCycleStatus.NEGOTIATION)
            self._publish_updated(cycle, ["offers", "status"])
        return offer

    def reject_offer(self, cycle_id: str, offer_id: str, reason: str | None = None) -> Offer:
        return self._close_offer(cycle_id, offer_id, OfferStatus.REJECTED, reason)

    def withdraw_offer(self, cycle_id: str, offer_id: str, reason: str | None = None) -> Offer:
        return self._close_offer(cycle_id, offer_id, OfferStatus.WITHDRAWN, reason)

    def accept_offer(self, cycle_id: str, offer_id: str) -> Offer:
        """Accept one offer, reject the other open ones and go under contract.

        A :class:`Deal` is recorded and linked from the sell cycle. When the
        offer came from one of our open purchase cycles, that cycle is marked
        accepted at the offered amount and linked to the deal as well.
        """
        with self.store.transaction():
            cycle = self._require_open(cycle_id)
            offer = self._require_offer(cycle, offer_id, OPEN_OFFER_STATUSES)
            now = datetime.now()

            for other in cycle.offers:
                if other is not offer and other.status in OPEN_OFFER_STATUSES:
                    other.status = OfferStatus.REJECTED
                    other.updated_at = now
            offer.status = OfferStatus.ACCEPTED
            offer.updated_at = now
            cycle.accepted_offer_id = offer.offer_id

            purchase = self._linked_open_purchase(offer)
            if purchase is not None:
                purchase.mark_accepted(offer.offer_amount, date.today())
                purchase.updated_at = now
            cycle.winning_purchase_cycle_id = purchase.cycle_id if purchase is not None else None

            self._set_deal_status(cycle, DealStatus.CANCELLED)
            deal = self.store.add_deal(
                Deal(
                    deal_id=generate_id("deal"),
                    property_id=cycle.property_id,
                    sell_cycle_id=cycle.cycle_id,
                    offer_id=offer.offer_id,
                    seller_id=cycle.seller_id,
                    seller_name=cycle.seller_name,
                    buyer_id=offer.buyer_id,
                    buyer_name=offer.buyer_name,
                    agreed_price=offer.offer_amount,
                    commission_amount=compute_commission(
                        offer.offer_amount, cycle.commission_rate, cycle.commission_type
                    ),
                    primary_agent_id=cycle.agent_id,
                    purchase_cycle_id=cycle.winning_purchase_cycle_id,
                    secondary_agent_id=purchase.agent_id if purchase is not None else None,
                    created_at=now,
                    updated_at=now,
                )
            )
            cycle.deal_id = deal.deal_id
            if purchase is not None:
                purchase.deal_id = deal.deal_id

            self._set_status(cycle, SellCycleStatus.UNDER_CONTRACT)
            self._publish_updated(cycle, ["accepted_offer_id", "deal_id", "offers", "status"])
            self.events.publish(
                DEAL_CREATED,
                deal.deal_id,
                {
                    "property_id": deal.property_id,
                    "deal_id": deal.deal_id,
                    "sell_cycle_id": deal.sell_cycle_id,
                    "purchase_cycle_id": deal.purchase_cycle_id,
                },
                source=self.source,
            )

        logger.info(
            "Offer %s accepted on sell cycle %s",
            offer_id,
            cycle_id,
            extra=log_fields(cycle_id=cycle_id, offer_id=offer_id),
        )
        return offer

    def cancel(self, cycle_id: str, reason: str | None = None) -> SellCycle:
        """Cancel the listing; an active deal on it is cancelled too."""
        with self.store.transaction():
            cycle = super().cancel(cycle_id, reason)
            self._set_deal_status(cycle, DealStatus.CANCELLED)
        return cycle

    # -- sharing -----------------------------------------------------------

    def share(self, cycle_id: str, agent_ids: list[str]) -> SellCycle:
        """Let other agents see and work this listing."""
        with self.store.transaction():
            cycle = self.repository.require(cycle_id)
            for agent_id in agent_ids:
                if agent_id != cycle.agent_id and agent_id not in cycle.shared_with:
                    cycle.shared_with.append(agent_id)
            cycle.is_shared = bool(cycle.shared_with)
            cycle.updated_at = datetime.now()
            self._publish_updated(cycle, ["is_shared", "shared_with"])
        return cycle

    def unshare(self, cycle_id: str, agent_id: str | None = None) -> SellCycle:
        """Stop sharing with one agent, or with everyone when ``agent_id`` is None."""
        with self.store.transaction():
            cycle = self.repository.require(cycle_id)
            if agent_id is None:
                cycle.shared_with.clear()
            elif agent_id in cycle.shared_with:
                cycle.shared_with.remove(agent_id)
            cycle.is_shared = bool(cycle.shared_with)
            cycle.updated_at = datetime.now()
            self._publish_updated(cycle, ["is_shared", "shared_with"])
        return cycle

    # -- completion --------------------------------------------------------

    def complete_sale(
        self,
        cycle_id: str,
        sold_price: Decimal,
        buyer_id: str | None = None,
        buyer_name: str | None = None,
        sold_date: date | None = None,
    ) -> OperationResult:
        """Close a sale: commission, receipt, ownership to the buyer, status ``sold``.

        The buyer defaults to the accepted offer's buyer.
        """
        try:
            price = to_decimal(sold_price, "sold_price")
            if price <= 0:
                raise ValidationError("Sold price must be greater than zero")

            with self.store.transaction():
                cycle = self._require_open(cycle_id)
                accepted = cycle.find_offer(cycle.accepted_offer_id) if cycle.accepted_offer_id else None
                buyer_id = buyer_id or (accepted.buyer_id if accepted else None)
                buyer_name = buyer_name or (accepted.buyer_name if accepted else None)
                if not buyer_id or not buyer_name:
                    raise ValidationError("Buyer is required to complete a sale")

                commission = compute_commission(price, cycle.commission_rate, cycle.commission_type)
                closed_on = sold_date or date.today()
                transaction = self.ownership.record_transaction(
                    Transaction(
                        transaction_id=generate_id("txn"),
                        property_id=cycle.property_id,
                        transaction_type=TransactionType.SALE,
                        agent_id=cycle.agent_id,
                        counterpart_id=buyer_id,
                        counterpart_name=buyer_name,
                        accepted_amount=price,
                        accepted_date=closed_on,
                        source_cycle_id=cycle.cycle_id,
                        commission_amount=commission,
                    )
                )
                self.ownership.transfer_ownership(
                    cycle.property_id,
                    buyer_id,
                    buyer_name,
                    OwnerType.CLIENT,
                    transaction_id=transaction.transaction_id,
                    sale_price=price,
                    note=f"Sold to {buyer_name} for {price}",
                )
                cycle.sold_date = closed_on
                self._set_status(cycle, SellCycleStatus.SOLD)
                self._set_deal_status(cycle, DealStatus.COMPLETED)
                self._publish_updated(cycle, ["sold_date", "status"])
        except EstateCyclesError as exc:
            logger.warning(
                "Sell cycle %s could not be completed: %s",
                cycle_id,
                exc,
                extra=log_fields(cycle_id=cycle_id),
            )
            return OperationResult.fail(str(exc))

        logger.info(
            "Sell cycle %s sold for %s (commission %s)",
            cycle_id,
            price,
            commission,
            extra=log_fields(cycle_id=cycle_id, transaction_id=transaction.transaction_id),
        )
        return OperationResult.ok(transaction_id=transaction.transaction_id, entity_id=cycle_id)

    def _linked_open_purchase(self, offer: Offer) -> PurchaseCycle | None:
        """The open purchase cycle behind ``offer``, if any."""
        if not offer.linked_purchase_cycle_id:
            return None
        purchase = self.store.purchase_cycles.get(offer.linked_purchase_cycle_id)
        if purchase is None:
            logger.warning(
                "Accepted offer %s links to missing purchase cycle %s",
                offer.offer_id,
                offer.linked_purchase_cycle_id,
            )
            return None
        if purchase.status in TERMINAL_STATUSES[CycleType.PURCHASE]:
            logger.warning(
                "Accepted offer %s links to purchase cycle %s which is already %s",
                offer.offer_id,
                purchase.cycle_id,
                purchase.status.value,
                extra=log_fields(cycle_id=purchase.cycle_id, offer_id=offer.offer_id),
            )
            return None
        return purchase

    def _set_deal_status(self, cycle: SellCycle, status: DealStatus) -> None:
        """Close the cycle's active deal, if it has one."""
        deal = self.store.deals.get(cycle.deal_id) if cycle.deal_id else None
        if deal is None or deal.status is not DealStatus.ACTIVE:
            return
        deal.status = status
        deal.updated_at = datetime.now()

    # -- helpers -----------------------------------------------------------

    def _close_offer(
        self, cycle_id: str, offer_id: str, status: OfferStatus, reason: str | None
    ) -> Offer:
        with self.store.transaction():
            cycle = self.repository.require(cycle_id)
            offer = self._require_offer(cycle, offer_id, OPEN_OFFER_STATUSES)
            offer.status = status
            if reason:
                offer.agent_notes = reason
            offer.updated_at = datetime.now()
            self._publish_updated(cycle, ["offers"])
        return offer

    @staticmethod
    def _require_offer(cycle: SellCycle, offer_id: str, allowed: frozenset) -> Offer:
        offer = cycle.find_offer(offer_id)
        if offer is None:
            raise EntityNotFoundError(f"Offer {offer_id} not found on sell cycle {cycle.cycle_id}")
        if offer.status not in allowed:
            raise InvalidEntityStateError(f"Offer {offer_id} is already {offer.status.value}")
        return offer
