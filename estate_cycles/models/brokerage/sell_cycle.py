"""Sell cycle models."""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal

from estate_cycles.models.brokerage.communication import CommunicationEntry
from estate_cycles.models.brokerage.enums import (
    CommissionType,
    OfferSource,
    OfferStatus,
    SellCycleStatus,
    SellerType,
)


@dataclass
class Offer:
    """Buyer offer received on a sell cycle."""

    offer_id: str
    buyer_id: str
    buyer_name: str
    offer_amount: Decimal
    offered_date: date
    status: OfferStatus = OfferStatus.PENDING
    buyer_contact: str | None = None
    token_amount: Decimal | None = None
    counter_offer_amount: Decimal | None = None
    conditions: str | None = None
    notes: str | None = None
    agent_notes: str | None = None
    source_type: OfferSource = OfferSource.MANUAL
    buyer_agent_id: str | None = None
    buyer_agent_name: str | None = None
    linked_purchase_cycle_id: str | None = None  # Set when the offer came from our own purchase cycle
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class SellCycle:
    """One attempt to sell a property on behalf of its owner."""

    cycle_id: str
    property_id: str
    seller_id: str
    seller_name: str
    agent_id: str
    agent_name: str
    asking_price: Decimal
    status: SellCycleStatus = SellCycleStatus.LISTED
    seller_type: SellerType = SellerType.CLIENT
    commission_rate: Decimal = Decimal("2")  # Percent, or a flat amount when FIXED
    commission_type: CommissionType = CommissionType.PERCENTAGE
    title: str = ""
    shared_with: list[str] = field(default_factory=list)
    is_shared: bool = False
    offers: list[Offer] = field(default_factory=list)
    accepted_offer_id: str | None = None
    winning_purchase_cycle_id: str | None = None
    deal_id: str | None = None
    listed_date: date | None = None
    expected_close_date: date | None = None
    sold_date: date | None = None
    notes: str | None = None
    communication_log: list[CommunicationEntry] = field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def find_offer(self, offer_id: str) -> Offer | None:
        for offer in self.offers:
            if offer.offer_id == offer_id:
                return offer
        return None
