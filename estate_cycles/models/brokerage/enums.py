"""Enumeration types for brokerage cycle entities."""

from enum import Enum


class CycleType(str, Enum):
    SELL = "sell"
    PURCHASE = "purchase"
    RENT = "rent"


class OwnerType(str, Enum):
    CLIENT = "client"
    AGENCY = "agency"
    INVESTOR = "investor"
    EXTERNAL = "external"


class PurchaserType(str, Enum):
    AGENCY = "agency"
    INVESTOR = "investor"
    CLIENT = "client"


class SellerType(str, Enum):
    CLIENT = "client"
    AGENCY = "agency"
    INVESTOR = "investor"
    INDIVIDUAL = "individual"
    DEVELOPER = "developer"


class CommissionType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class CommissionSource(str, Enum):
    BUYER = "buyer"
    SELLER = "seller"
    BOTH = "both"


class FinancingType(str, Enum):
    CASH = "cash"
    LOAN = "loan"
    INSTALLMENT = "installment"


class SellCycleStatus(str, Enum):
    LISTED = "listed"
    OFFER_RECEIVED = "offer-received"
    NEGOTIATION = "negotiation"
    UNDER_CONTRACT = "under-contract"
    SOLD = "sold"
    CANCELLED = "cancelled"


class PurchaseCycleStatus(str, Enum):
    PROSPECTING = "prospecting"
    OFFER_MADE = "offer-made"
    NEGOTIATION = "negotiation"
    ACCEPTED = "accepted"
    DUE_DILIGENCE = "due-diligence"
    FINANCING = "financing"
    CLOSING = "closing"
    ACQUIRED = "acquired"
    CANCELLED = "cancelled"


class RentCycleStatus(str, Enum):
    AVAILABLE = "available"
    SHOWING = "showing"
    APPLICATION_RECEIVED = "application-received"
    LEASED = "leased"
    ACTIVE = "active"
    RENEWAL_PENDING = "renewal-pending"
    ENDING = "ending"
    ENDED = "ended"
    CANCELLED = "cancelled"


class OfferStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"
    COUNTERED = "countered"


class OfferSource(str, Enum):
    MANUAL = "manual"
    PURCHASE_CYCLE = "purchase-cycle"
    BUYER_REQUIREMENT = "buyer-requirement"


class ApplicationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class RentPaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    PARTIAL = "partial"


class TransactionType(str, Enum):
    PURCHASE = "purchase"
    SALE = "sale"
    RENTAL = "rental"


class TransactionStatus(str, Enum):
    COMPLETED = "completed"


class DealStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class CommunicationKind(str, Enum):
    CALL = "call"
    EMAIL = "email"
    MEETING = "meeting"
    NOTE = "note"


# Terminal values: once reached the cycle leaves the property's active list.
TERMINAL_STATUSES: dict[CycleType, frozenset] = {
    CycleType.SELL: frozenset({SellCycleStatus.SOLD, SellCycleStatus.CANCELLED}),
    CycleType.PURCHASE: frozenset({PurchaseCycleStatus.ACQUIRED, PurchaseCycleStatus.CANCELLED}),
    CycleType.RENT: frozenset({RentCycleStatus.ENDED, RentCycleStatus.CANCELLED}),
}

STATUS_ENUMS: dict[CycleType, type[Enum]] = {
    CycleType.SELL: SellCycleStatus,
    CycleType.PURCHASE: PurchaseCycleStatus,
    CycleType.RENT: RentCycleStatus,
}
