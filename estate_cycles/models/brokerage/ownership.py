"""Ownership models: fractional investor shares and the ownership chain."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from estate_cycles.models.brokerage.enums import OwnerType


@dataclass
class InvestorShare:
    """One investor's stake in a multi-investor purchase."""

    investor_id: str
    investor_name: str
    share_percentage: Decimal  # 0-100
    investment_amount: Decimal
    notes: str | None = None


@dataclass
class OwnershipRecord:
    """One link in a property's ownership chain.

    ``sold_at`` stays empty while the record describes the current owner and
    is stamped when a later transfer supersedes it.
    """

    owner_id: str
    owner_name: str
    owner_type: OwnerType
    acquired_at: datetime
    previous_owner_id: str | None = None
    previous_owner_name: str | None = None
    transaction_id: str | None = None
    sale_price: Decimal | None = None
    investor_shares: list[InvestorShare] = field(default_factory=list)
    sold_at: datetime | None = None
    exit_price: Decimal | None = None
    notes: str | None = None
