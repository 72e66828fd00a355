"""Cycle engine: per-type cycle services, ownership transfer, status and matching."""

from estate_cycles.cycles.base import CycleService, compute_commission
from estate_cycles.cycles.manager import CycleManager
from estate_cycles.cycles.matching import InternalMatchDetector
from estate_cycles.cycles.ownership import OwnershipTransferEngine, validate_investor_shares
from estate_cycles.cycles.purchase import PurchaseCycleService, build_purchaser
from estate_cycles.cycles.rent import RentCycleService
from estate_cycles.cycles.sell import SellCycleService
from estate_cycles.cycles.status import NO_ACTIVE_CYCLE, StatusSynchronizer

__all__ = [
    "NO_ACTIVE_CYCLE",
    "CycleManager",
    "CycleService",
    "InternalMatchDetector",
    "OwnershipTransferEngine",
    "PurchaseCycleService",
    "RentCycleService",
    "SellCycleService",
    "StatusSynchronizer",
    "build_purchaser",
    "compute_commission",
    "validate_investor_shares",
]
