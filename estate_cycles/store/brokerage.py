"""Brokerage data store with referential integrity and transactional writes."""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Callable, Iterator

from estate_cycles.exceptions import ReferentialIntegrityError
from estate_cycles.models.brokerage import (
    CycleType,
    Deal,
    Property,
    PurchaseCycle,
    RentCycle,
    SellCycle,
    Transaction,
)
from estate_cycles.store.repositories import (
    DealRepository,
    PropertyRepository,
    PurchaseCycleRepository,
    RentCycleRepository,
    SellCycleRepository,
    TransactionRepository,
)

logger = logging.getLogger(__name__)


@dataclass
class BrokerageDataStore:
    """In-memory store for properties, cycles, receipts and deals.

    Every read-modify-write runs inside :meth:`transaction`, which holds a
    re-entrant lock and rolls all collections back to a checkpoint when the
    block raises. Rollback restores field values into the same entity
    objects, so references held by callers stay attached to the store.
    Callbacks queued with :meth:`after_commit` run once the outermost
    transaction finishes cleanly and are discarded on rollback; a failing
    callback is logged and does not stop the others.
    """

    properties: PropertyRepository = field(default_factory=PropertyRepository)
    sell_cycles: SellCycleRepository = field(default_factory=SellCycleRepository)
    purchase_cycles: PurchaseCycleRepository = field(default_factory=PurchaseCycleRepository)
    rent_cycles: RentCycleRepository = field(default_factory=RentCycleRepository)
    transactions: TransactionRepository = field(default_factory=TransactionRepository)
    deals: DealRepository = field(default_factory=DealRepository)

    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)
    _depth: int = field(default=0, repr=False)
    _pending: list[Callable[[], None]] = field(default_factory=list, repr=False)

    _COLLECTIONS = ("properties", "sell_cycles", "purchase_cycles", "rent_cycles", "transactions", "deals")

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    @contextmanager
    def transaction(self) -> Iterator["BrokerageDataStore"]:
        """Run a block atomically with respect to other store users."""
        with self._lock:
            if self._depth:
                self._depth += 1
                try:
                    yield self
                finally:
                    self._depth -= 1
                return

            checkpoints = {name: getattr(self, name).checkpoint() for name in self._COLLECTIONS}
            self._depth = 1
            try:
                yield self
            except BaseException:
                for name, checkpoint in checkpoints.items():
                    getattr(self, name).rollback(checkpoint)
                self._pending.clear()
                raise
            finally:
                self._depth = 0

            pending, self._pending = self._pending, []
            for callback in pending:
                self._run_callback(callback)

    @contextmanager
    def read(self) -> Iterator["BrokerageDataStore"]:
        """Hold the store lock for a consistent multi-collection read."""
        with self._lock:
            yield self

    def after_commit(self, callback: Callable[[], None]) -> None:
        """Run ``callback`` after the current transaction commits, or now if none is open."""
        if self.in_transaction:
            self._pending.append(callback)
        else:
            self._run_callback(callback)

    def _run_callback(self, callback: Callable[[], None]) -> None:
        try:
            callback()
        except Exception:
            logger.exception("After-commit callback %r failed", callback)

    def cycles(self, cycle_type: CycleType) -> SellCycleRepository | PurchaseCycleRepository | RentCycleRepository:
        """Return the repository for one cycle type."""
        return {
            CycleType.SELL: self.sell_cycles,
            CycleType.PURCHASE: self.purchase_cycles,
            CycleType.RENT: self.rent_cycles,
        }[cycle_type]

    def add_property(self, prop: Property) -> Property:
        """Add a property to the store."""
        if prop.created_at is None:
            prop.created_at = datetime.now()
        with self.transaction():
            return self.properties.add(prop)

    def add_sell_cycle(self, cycle: SellCycle) -> SellCycle:
        """Add a sell cycle to the store."""
        self._require_property(cycle.property_id)
        return self.sell_cycles.add(cycle)

    def add_purchase_cycle(self, cycle: PurchaseCycle) -> PurchaseCycle:
        """Add a purchase cycle to the store."""
        self._require_property(cycle.property_id)
        return self.purchase_cycles.add(cycle)

    def add_rent_cycle(self, cycle: RentCycle) -> RentCycle:
        """Add a rent cycle to the store."""
        self._require_property(cycle.property_id)
        return self.rent_cycles.add(cycle)

    def add_transaction(self, transaction: Transaction) -> Transaction:
        """Record an immutable transaction receipt."""
        prop = self._require_property(transaction.property_id)
        if transaction.created_at is None:
            transaction = replace(transaction, created_at=datetime.now())
        self.transactions.save(transaction)
        prop.transaction_ids.append(transaction.transaction_id)
        return transaction

    def add_deal(self, deal: Deal) -> Deal:
        """Record the deal created by an accepted offer."""
        self._require_property(deal.property_id)
        if deal.created_at is None:
            deal.created_at = datetime.now()
        return self.deals.add(deal)

    def _require_property(self, property_id: str) -> Property:
        prop = self.properties.get(property_id)
        if prop is None:
            raise ReferentialIntegrityError(f"Property {property_id} not found")
        return prop

    def get_property_transactions(self, property_id: str) -> list[Transaction]:
        """Get all receipts recorded against a property."""
        return self.transactions.by_property(property_id)

    def summary(self) -> dict[str, int]:
        """Return summary counts of all entities."""
        return {name: len(getattr(self, name)) for name in self._COLLECTIONS}
