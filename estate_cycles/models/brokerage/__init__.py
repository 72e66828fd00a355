"""Brokerage domain models."""

from estate_cycles.models.brokerage.communication import CommunicationEntry
from estate_cycles.models.brokerage.deal import Deal
from estate_cycles.models.brokerage.enums import (
    ApplicationStatus,
    CommissionSource,
    CommissionType,
    CommunicationKind,
    CycleType,
    DealStatus,
    FinancingType,
    OfferSource,
    OfferStatus,
    OwnerType,
    PurchaseCycleStatus,
    PurchaserType,
    RentCycleStatus,
    RentPaymentStatus,
    SellCycleStatus,
    SellerType,
    TransactionStatus,
    TransactionType,
)
from estate_cycles.models.brokerage.match import InternalMatch, PurchaseSide, SellSide
from estate_cycles.models.brokerage.ownership import InvestorShare, OwnershipRecord
from estate_cycles.models.brokerage.property import CycleHistory, Property
from estate_cycles.models.brokerage.purchase_cycle import (
    AgencyPurchaser,
    ClientPurchaser,
    InvestorPurchaser,
    Purchaser,
    PurchaseCycle,
)
from estate_cycles.models.brokerage.rent_cycle import (
    Deduction,
    LeaseRecord,
    RentCycle,
    RentPayment,
    TenantApplication,
)
from estate_cycles.models.brokerage.sell_cycle import Offer, SellCycle
from estate_cycles.models.brokerage.timeline import DualRepresentation, PropertyCycles, TimelineEntry
from estate_cycles.models.brokerage.transaction import Transaction

__all__ = [
    "AgencyPurchaser",
    "ApplicationStatus",
    "ClientPurchaser",
    "CommissionSource",
    "CommissionType",
    "CommunicationEntry",
    "CommunicationKind",
    "CycleHistory",
    "CycleType",
    "Deal",
    "DealStatus",
    "Deduction",
    "DualRepresentation",
    "FinancingType",
    "InternalMatch",
    "InvestorPurchaser",
    "InvestorShare",
    "LeaseRecord",
    "Offer",
    "OfferSource",
    "OfferStatus",
    "OwnerType",
    "OwnershipRecord",
    "Property",
    "PropertyCycles",
    "PurchaseCycle",
    "PurchaseCycleStatus",
    "PurchaseSide",
    "Purchaser",
    "PurchaserType",
    "RentCycle",
    "RentCycleStatus",
    "RentPayment",
    "RentPaymentStatus",
    "SellCycle",
    "SellCycleStatus",
    "SellSide",
    "SellerType",
    "TenantApplication",
    "TimelineEntry",
    "Transaction",
    "TransactionStatus",
    "TransactionType",
]
