"""Purchase cycle models.

The purchaser is a tagged union: each variant carries only the fields that
are meaningful for that kind of buyer.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Literal, Union

from pydantic import ConfigDict, Field

from estate_cycles.models.brokerage.communication import CommunicationEntry
from estate_cycles.models.brokerage.enums import (
    CommissionSource,
    CommissionType,
    FinancingType,
    PurchaseCycleStatus,
    PurchaserType,
)
from estate_cycles.models.brokerage.ownership import InvestorShare


@dataclass
class AgencyPurchaser:
    """The agency buys for its own inventory; no commission applies."""

    purchaser_id: str
    purchaser_name: str
    purpose: str = "investment"
    expected_resale_value: Decimal | None = None
    renovation_budget: Decimal | None = None
    target_roi: Decimal | None = None
    purchaser_type: Literal["agency"] = "agency"

    __pydantic_config__ = ConfigDict(extra="forbid")


@dataclass
class InvestorPurchaser:
    """One or more investors buy; the agency charges a facilitation fee."""

    purchaser_id: str
    purchaser_name: str
    investors: list[InvestorShare] = field(default_factory=list)
    facilitation_fee: Decimal = Decimal("0")
    purchaser_type: Literal["investor"] = "investor"

    __pydantic_config__ = ConfigDict(extra="forbid")


@dataclass
class ClientPurchaser:
    """A client buyer represented by the agency on commission."""

    purchaser_id: str
    purchaser_name: str
    commission_rate: Decimal = Decimal("2")  # Percent, or a flat amount when FIXED
    commission_type: CommissionType = CommissionType.PERCENTAGE
    commission_source: CommissionSource = CommissionSource.BUYER
    buyer_budget_min: Decimal | None = None
    buyer_budget_max: Decimal | None = None
    prequalified: bool = False
    purchaser_type: Literal["client"] = "client"

    __pydantic_config__ = ConfigDict(extra="forbid")


Purchaser = Annotated[
    Union[AgencyPurchaser, InvestorPurchaser, ClientPurchaser],
    Field(discriminator="purchaser_type"),
]


@dataclass
class PurchaseCycle:
    """One attempt to acquire a property for the agency, an investor group or a client."""

    cycle_id: str
    property_id: str
    purchaser: Purchaser
    seller_id: str
    seller_name: str
    asking_price: Decimal
    offer_amount: Decimal
    agent_id: str
    agent_name: str
    status: PurchaseCycleStatus = PurchaseCycleStatus.OFFER_MADE
    negotiated_price: Decimal | None = None
    token_amount: Decimal | None = None
    financing_type: FinancingType = FinancingType.CASH
    offer_date: date | None = None
    target_close_date: date | None = None
    acceptance_date: date | None = None
    actual_close_date: date | None = None
    commission_amount: Decimal | None = None
    linked_sell_cycle_id: str | None = None
    linked_sell_cycle_offer_id: str | None = None
    deal_id: str | None = None
    notes: str | None = None
    communication_log: list[CommunicationEntry] = field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def purchaser_type(self) -> PurchaserType:
        return PurchaserType(self.purchaser.purchaser_type)

    @property
    def purchaser_id(self) -> str:
        return self.purchaser.purchaser_id

    @property
    def purchaser_name(self) -> str:
        return self.purchaser.purchaser_name

    def mark_accepted(self, negotiated_price: Decimal, accepted_on: date) -> None:
        """Record that the seller accepted this cycle's offer."""
        self.status = PurchaseCycleStatus.ACCEPTED
        self.negotiated_price = negotiated_price
        self.acceptance_date = accepted_on
