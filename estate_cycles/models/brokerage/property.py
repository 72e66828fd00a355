"""Property model: the permanent asset every cycle runs against."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from estate_cycles.models.brokerage.enums import CycleType, OwnerType
from estate_cycles.models.brokerage.ownership import InvestorShare, OwnershipRecord


@dataclass
class CycleHistory:
    """Ids of every cycle that has closed against a property (sold, acquired, cancelled, ended)."""

    sell_cycles: list[str] = field(default_factory=list)
    purchase_cycles: list[str] = field(default_factory=list)
    rent_cycles: list[str] = field(default_factory=list)

    def for_type(self, cycle_type: CycleType) -> list[str]:
        """Return the history list for one cycle type."""
        return {
            CycleType.SELL: self.sell_cycles,
            CycleType.PURCHASE: self.purchase_cycles,
            CycleType.RENT: self.rent_cycles,
        }[cycle_type]


@dataclass
class Property:
    """Real estate asset tracked across unlimited sell, purchase and rent cycles."""

    property_id: str
    address: str
    created_by: str  # Agent who registered the asset
    title: str = ""
    price: Decimal | None = None  # Follows the primary sell cycle's asking price
    shared_with: list[str] = field(default_factory=list)
    active_sell_cycle_ids: list[str] = field(default_factory=list)
    active_purchase_cycle_ids: list[str] = field(default_factory=list)
    active_rent_cycle_ids: list[str] = field(default_factory=list)
    current_owner_id: str | None = None
    current_owner_name: str | None = None
    current_owner_type: OwnerType | None = None
    investor_shares: list[InvestorShare] = field(default_factory=list)
    ownership_history: list[OwnershipRecord] = field(default_factory=list)
    cycle_history: CycleHistory = field(default_factory=CycleHistory)
    transaction_ids: list[str] = field(default_factory=list)
    status_label: str = "No Active Cycle"
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def active_ids(self, cycle_type: CycleType) -> list[str]:
        """Return the open cycle ids for one cycle type."""
        return {
            CycleType.SELL: self.active_sell_cycle_ids,
            CycleType.PURCHASE: self.active_purchase_cycle_ids,
            CycleType.RENT: self.active_rent_cycle_ids,
        }[cycle_type]

    def is_visible_to(self, user_id: str | None, role: str | None = None) -> bool:
        """Admins and anonymous callers see everything, agents their own and shared assets."""
        if not user_id or role == "admin":
            return True
        return self.created_by == user_id or user_id in self.shared_with
