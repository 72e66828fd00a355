"""Derived internal-match models. Computed on demand, never stored."""

from dataclasses import dataclass, field
from decimal import Decimal

from estate_cycles.models.brokerage.enums import CommissionType, PurchaserType


@dataclass
class SellSide:
    cycle_id: str
    agent_id: str
    agent_name: str
    seller_name: str
    asking_price: Decimal
    commission_rate: Decimal
    commission_type: CommissionType


@dataclass
class PurchaseSide:
    cycle_id: str
    agent_id: str
    agent_name: str
    purchaser_type: PurchaserType
    purchaser_name: str
    offer_amount: Decimal
    commission_amount: Decimal
    is_dual_rep: bool


@dataclass
class InternalMatch:
    """A live sell cycle and the live purchase cycles competing for the same property."""

    property_id: str
    property_address: str
    sell_cycle: SellSide
    purchase_cycles: list[PurchaseSide] = field(default_factory=list)
    potential_revenue: Decimal = Decimal("0")
    best_offer: Decimal = Decimal("0")
    gap: Decimal = Decimal("0")
    gap_percentage: Decimal = Decimal("0")

    @property
    def has_dual_rep(self) -> bool:
        return any(pc.is_dual_rep for pc in self.purchase_cycles)
