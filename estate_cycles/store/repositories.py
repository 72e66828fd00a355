"""In-memory repositories, one per entity collection."""

import copy
import uuid
from typing import Any, Callable, Generic, Iterator, TypeVar

from estate_cycles.exceptions import EntityNotFoundError, InvalidEntityStateError
from estate_cycles.models.brokerage import Deal, Property, PurchaseCycle, RentCycle, SellCycle, Transaction

T = TypeVar("T")


def generate_id(prefix: str) -> str:
    """Return an opaque identifier such as ``sell_3f9c0a1b2d4e``."""
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


class Repository(Generic[T]):
    """Dictionary-backed collection keyed by the entity's id attribute."""

    entity_name = "Entity"
    key_field = "id"

    def __init__(self) -> None:
        self._items: dict[str, T] = {}

    def _key(self, item: T) -> str:
        return getattr(item, self.key_field)

    def add(self, item: T) -> T:
        """Insert a new entity."""
        key = self._key(item)
        if key in self._items:
            raise InvalidEntityStateError(f"{self.entity_name} {key} already exists")
        self._items[key] = item
        return item

    def save(self, item: T) -> T:
        """Insert or replace an entity (last write wins)."""
        self._items[self._key(item)] = item
        return item

    def get(self, key: str) -> T | None:
        return self._items.get(key)

    def require(self, key: str) -> T:
        """Get an entity or raise :class:`EntityNotFoundError`."""
        item = self._items.get(key)
        if item is None:
            raise EntityNotFoundError(f"{self.entity_name} {key} not found")
        return item

    def all(self) -> list[T]:
        return list(self._items.values())

    def filter(self, predicate: Callable[[T], bool]) -> list[T]:
        return [item for item in self._items.values() if predicate(item)]

    def __contains__(self, key: object) -> bool:
        return key in self._items

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._items.values()))

    def __len__(self) -> int:
        return len(self._items)

    def checkpoint(self) -> dict[str, tuple[T, dict[str, Any]]]:
        """Capture every entity together with a deep copy of its field values."""
        return {key: (item, copy.deepcopy(vars(item))) for key, item in self._items.items()}

    def rollback(self, checkpoint: dict[str, tuple[T, dict[str, Any]]]) -> None:
        """Return to ``checkpoint``, writing the saved values back into the original objects.

        Entities added since the checkpoint are dropped.
        """
        self._items = {}
        for key, (item, state) in checkpoint.items():
            vars(item).update(state)
            self._items[key] = item


class PropertyRepository(Repository[Property]):
    entity_name = "Property"
    key_field = "property_id"


class _PropertyIndexedRepository(Repository[T]):
    """Repository that also indexes entities by ``property_id``."""

    def __init__(self) -> None:
        super().__init__()
        self._by_property: dict[str, list[str]] = {}

    def add(self, item: T) -> T:
        super().add(item)
        self._by_property.setdefault(item.property_id, []).append(self._key(item))
        return item

    def save(self, item: T) -> T:
        if self._key(item) not in self._items:
            return self.add(item)
        return super().save(item)

    def rollback(self, checkpoint: dict[str, tuple[T, dict[str, Any]]]) -> None:
        super().rollback(checkpoint)
        self._by_property = {}
        for key, item in self._items.items():
            self._by_property.setdefault(item.property_id, []).append(key)

    def by_property(self, property_id: str) -> list[T]:
        """All entities ever recorded against a property, in insertion order."""
        keys = self._by_property.get(property_id, [])
        return [self._items[key] for key in keys]


class SellCycleRepository(_PropertyIndexedRepository[SellCycle]):
    entity_name = "Sell cycle"
    key_field = "cycle_id"


class PurchaseCycleRepository(_PropertyIndexedRepository[PurchaseCycle]):
    entity_name = "Purchase cycle"
    key_field = "cycle_id"


class RentCycleRepository(_PropertyIndexedRepository[RentCycle]):
    entity_name = "Rent cycle"
    key_field = "cycle_id"


class DealRepository(_PropertyIndexedRepository[Deal]):
    entity_name = "Deal"
    key_field = "deal_id"


class TransactionRepository(_PropertyIndexedRepository[Transaction]):
    """Append-only: receipts are never replaced once recorded."""

    entity_name = "Transaction"
    key_field = "transaction_id"

    def save(self, item: Transaction) -> Transaction:
        if self._key(item) in self._items:
            raise InvalidEntityStateError(f"Transaction {self._key(item)} is immutable")
        return self.add(item)
