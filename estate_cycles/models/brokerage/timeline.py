"""Read-side views assembled by the cycle manager."""

from dataclasses import dataclass, field
from datetime import date
from typing import Any

from estate_cycles.models.brokerage.purchase_cycle import PurchaseCycle
from estate_cycles.models.brokerage.rent_cycle import RentCycle
from estate_cycles.models.brokerage.sell_cycle import SellCycle


@dataclass
class PropertyCycles:
    """Every cycle ever opened on one property, grouped by type."""

    sell_cycles: list[SellCycle] = field(default_factory=list)
    purchase_cycles: list[PurchaseCycle] = field(default_factory=list)
    rent_cycles: list[RentCycle] = field(default_factory=list)


@dataclass
class TimelineEntry:
    """One dated event in a property's cycle history."""

    on: date
    kind: str  # sell-cycle, purchase-cycle, rent-cycle, transaction
    action: str
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class DualRepresentation:
    """Cycles where one agent sits on both the sell and the buy side of a property."""

    has_dual_rep: bool
    sell_cycle_ids: list[str] = field(default_factory=list)
    purchase_cycle_ids: list[str] = field(default_factory=list)
