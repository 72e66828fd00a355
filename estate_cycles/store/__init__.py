"""Data store with referential integrity and JSON persistence."""

from estate_cycles.store.brokerage import BrokerageDataStore
from estate_cycles.store.persistence import load_store, save_store
from estate_cycles.store.repositories import (
    DealRepository,
    PropertyRepository,
    PurchaseCycleRepository,
    RentCycleRepository,
    Repository,
    SellCycleRepository,
    TransactionRepository,
    generate_id,
)

__all__ = [
    "BrokerageDataStore",
    "DealRepository",
    "PropertyRepository",
    "PurchaseCycleRepository",
    "RentCycleRepository",
    "Repository",
    "SellCycleRepository",
    "TransactionRepository",
    "generate_id",
    "load_store",
    "save_store",
]
