"""Deal model: the agreement that ties an accepted offer to both cycles."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from estate_cycles.models.brokerage.enums import DealStatus


@dataclass
class Deal:
    """Created when a sell cycle accepts an offer.

    ``purchase_cycle_id`` is set when the buyer is one of our own purchase
    cycles; the deal then has an agent on each side.
    """

    deal_id: str
    property_id: str
    sell_cycle_id: str
    offer_id: str
    seller_id: str
    seller_name: str
    buyer_id: str
    buyer_name: str
    agreed_price: Decimal
    commission_amount: Decimal
    primary_agent_id: str
    purchase_cycle_id: str | None = None
    secondary_agent_id: str | None = None
    status: DealStatus = DealStatus.ACTIVE
    created_at: datetime | None = None
    updated_at: datetime | None = None
