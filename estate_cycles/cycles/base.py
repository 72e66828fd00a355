"""Shared behaviour of the sell, purchase and rent cycle services."""

import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, ClassVar, Generic, TypeVar

from estate_cycles.config import AgencyConfig
from estate_cycles.events import CYCLE_CREATED, CYCLE_UPDATED, EventBus
from estate_cycles.exceptions import (
    InvalidEntityStateError,
    ReferentialIntegrityError,
    ValidationError,
)
from estate_cycles.logging import log_fields
from estate_cycles.models.brokerage import (
    CommissionType,
    CommunicationEntry,
    CommunicationKind,
    CycleType,
    Property,
)
from estate_cycles.models.brokerage.enums import STATUS_ENUMS, TERMINAL_STATUSES
from estate_cycles.store import BrokerageDataStore, generate_id
from estate_cycles.validation import validate_as, validate_changes

logger = logging.getLogger(__name__)

C = TypeVar("C")

CENT = Decimal("0.01")

# Fields a caller may never rewrite through ``update``; ``deal_id`` is set by accepted offers.
IMMUTABLE_FIELDS = frozenset({"cycle_id", "property_id", "created_at", "deal_id"})


def to_decimal(value: Any, field_name: str = "amount") -> Decimal:
    """Coerce ints, floats and numeric strings to Decimal."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a number, got {value!r}")
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"{field_name} must be a number, got {value!r}") from exc


def compute_commission(amount: Decimal, rate: Decimal, commission_type: CommissionType) -> Decimal:
    """Commission on ``amount``: ``rate`` percent, or ``rate`` itself when fixed."""
    if commission_type == CommissionType.FIXED:
        return to_decimal(rate, "commission_rate")
    return (to_decimal(amount) * to_decimal(rate, "commission_rate") / 100).quantize(CENT)


def retire_cycle(store: BrokerageDataStore, cycle_type: CycleType, cycle_id: str, property_id: str) -> None:
    """Move a cycle id from the property's active list into its cycle history."""
    prop = store.properties.get(property_id)
    if prop is None:
        return
    active = prop.active_ids(cycle_type)
    if cycle_id in active:
        active.remove(cycle_id)
    history = prop.cycle_history.for_type(cycle_type)
    if cycle_id not in history:
        history.append(cycle_id)
    prop.updated_at = datetime.now()


class CycleService(Generic[C]):
    """Create, update, cancel and query one kind of cycle.

    Subclasses set ``cycle_type``, ``model`` and ``id_prefix`` and decide
    the initial status. Every write runs inside a store transaction and
    re-derives the property status when a cycle's status moves.
    """

    cycle_type: ClassVar[CycleType]
    model: ClassVar[type]
    id_prefix: ClassVar[str]
    source: ClassVar[str] = "cycle-store"

    def __init__(
        self,
        store: BrokerageDataStore,
        events: EventBus,
        status_sync: Any,
        agency: AgencyConfig | None = None,
    ) -> None:
        self.store = store
        self.events = events
        self.status_sync = status_sync
        self.agency = agency or AgencyConfig()

    @property
    def repository(self) -> Any:
        return self.store.cycles(self.cycle_type)

    @property
    def status_enum(self) -> type[Enum]:
        return STATUS_ENUMS[self.cycle_type]

    # -- hooks -------------------------------------------------------------

    def _initial_status(self, requested: Any) -> Enum:
        raise NotImplementedError

    def _prepare(self, data: dict[str, Any]) -> dict[str, Any]:
        """Fill type-specific defaults before the model is built."""
        return data

    def _after_write(self, cycle: C, prop: Property) -> None:
        """Propagate cycle fields onto the property after create or update."""

    def _is_visible(self, cycle: C, user_id: str) -> bool:
        return cycle.agent_id == user_id

    def _extra_stats(self, cycles: list[C]) -> dict[str, Any]:
        return {}

    # -- commands ----------------------------------------------------------

    def create(self, **data: Any) -> C:
        """Open a new cycle against an existing property."""
        property_id = data.get("property_id")
        if not property_id:
            raise ValidationError("property_id is required")

        with self.store.transaction():
            prop = self.store.properties.get(property_id)
            if prop is None:
                raise ReferentialIntegrityError(f"Property {property_id} not found")

            cycle_id = data.pop("cycle_id", None) or generate_id(self.id_prefix)
            requested_status = data.pop("status", None)
            values = self._prepare(data)
            now = datetime.now()
            values.update(
                cycle_id=cycle_id,
                status=self._initial_status(requested_status),
                created_at=now,
                updated_at=now,
            )
            cycle = validate_as(self.model, values, error_prefix=f"Cannot create {self.cycle_type.value} cycle")

            getattr(self.store, f"add_{self.cycle_type.value}_cycle")(cycle)
            prop.active_ids(self.cycle_type).append(cycle.cycle_id)
            prop.updated_at = now
            self._after_write(cycle, prop)
            self.status_sync.sync(property_id)
            self.events.publish(
                CYCLE_CREATED,
                cycle.cycle_id,
                {"property_id": property_id, "cycle_id": cycle.cycle_id, "cycle_type": self.cycle_type.value},
                source=self.source,
            )

        logger.info(
            "Created %s cycle %s on property %s",
            self.cycle_type.value,
            cycle.cycle_id,
            property_id,
            extra=log_fields(cycle_id=cycle.cycle_id, property_id=property_id),
        )
        return cycle

    def update(self, cycle_id: str, /, **changes: Any) -> C:
        """Merge ``changes`` into a cycle; re-sync the property only when status moved.

        Changes are validated against the whole cycle before anything is written.
        """
        locked = IMMUTABLE_FIELDS.intersection(changes)
        if locked:
            raise ValidationError(f"Field(s) cannot be changed: {', '.join(sorted(locked))}")

        with self.store.transaction():
            cycle = self.repository.require(cycle_id)
            values = validate_changes(cycle, changes)
            previous_status = cycle.status

            for name, value in values.items():
                setattr(cycle, name, value)
            cycle.updated_at = datetime.now()

            status_changed = "status" in values and cycle.status != previous_status
            prop = self.store.properties.get(cycle.property_id)
            if prop is not None:
                self._after_write(cycle, prop)
            if status_changed:
                if cycle.status in TERMINAL_STATUSES[self.cycle_type]:
                    retire_cycle(self.store, self.cycle_type, cycle.cycle_id, cycle.property_id)
                self.status_sync.sync(cycle.property_id)
            self._publish_updated(cycle, sorted(values))

        logger.debug("Updated %s cycle %s: %s", self.cycle_type.value, cycle_id, sorted(values))
        return cycle

    def cancel(self, cycle_id: str, reason: str | None = None) -> C:
        """Move a cycle to ``cancelled`` and into the property's history."""
        with self.store.transaction():
            cycle = self.repository.require(cycle_id)
            if cycle.status in TERMINAL_STATUSES[self.cycle_type]:
                raise InvalidEntityStateError(
                    f"{self.cycle_type.value.title()} cycle {cycle_id} is already {cycle.status.value}"
                )

            note = f"Cancelled: {reason}" if reason else "Cancelled"
            cycle.notes = f"{cycle.notes}\n{note}" if cycle.notes else note
            cycle.status = self.status_enum("cancelled")
            cycle.updated_at = datetime.now()
            retire_cycle(self.store, self.cycle_type, cycle.cycle_id, cycle.property_id)
            self.status_sync.sync(cycle.property_id)
            self._publish_updated(cycle, ["notes", "status"])

        logger.info(
            "Cancelled %s cycle %s",
            self.cycle_type.value,
            cycle_id,
            extra=log_fields(cycle_id=cycle_id, reason=reason),
        )
        return cycle

    def add_communication(
        self,
        cycle_id: str,
        kind: CommunicationKind | str,
        summary: str,
        by: str,
    ) -> CommunicationEntry:
        """Append an entry to a cycle's communication log."""
        if not summary:
            raise ValidationError("Communication summary is required")

        with self.store.transaction():
            cycle = self.repository.require(cycle_id)
            entry = validate_as(
                CommunicationEntry,
                {"logged_at": datetime.now(), "kind": kind, "summary": summary, "by": by},
                error_prefix="Invalid communication entry",
            )
            cycle.communication_log.append(entry)
            cycle.updated_at = entry.logged_at
            self._publish_updated(cycle, ["communication_log"])
        return entry

    # -- queries -----------------------------------------------------------

    def get(self, cycle_id: str) -> C | None:
        return self.repository.get(cycle_id)

    def get_by_property(self, property_id: str) -> list[C]:
        """Every cycle of this type ever opened on the property, open or closed."""
        with self.store.read():
            return self.repository.by_property(property_id)

    def stats(self, user_id: str | None = None, role: str | None = None) -> dict[str, Any]:
        """Count cycles per status, plus type-specific figures."""
        cycles = self.list(user_id, role)
        by_status = {member.value: 0 for member in self.status_enum}
        for cycle in cycles:
            by_status[cycle.status.value] += 1

        result: dict[str, Any] = {"total": len(cycles), "by_status": by_status}
        result.update(self._extra_stats(cycles))
        return result

    # -- helpers -----------------------------------------------------------

    def _require_open(self, cycle_id: str) -> C:
        cycle = self.repository.require(cycle_id)
        if cycle.status in TERMINAL_STATUSES[self.cycle_type]:
            raise InvalidEntityStateError(
                f"{self.cycle_type.value.title()} cycle {cycle_id} is {cycle.status.value}"
            )
        return cycle

    def _set_status(self, cycle: C, status: Enum) -> None:
        """Change status in place and re-sync the property if it moved."""
        if cycle.status == status:
            return
        cycle.status = status
        cycle.updated_at = datetime.now()
        if status in TERMINAL_STATUSES[self.cycle_type]:
            retire_cycle(self.store, self.cycle_type, cycle.cycle_id, cycle.property_id)
        self.status_sync.sync(cycle.property_id)

    def _publish_updated(self, cycle: C, changed: list[str]) -> None:
        self.events.publish(
            CYCLE_UPDATED,
            cycle.cycle_id,
            {
                "property_id": cycle.property_id,
                "cycle_id": cycle.cycle_id,
                "cycle_type": self.cycle_type.value,
                "status": cycle.status.value,
                "changed": changed,
            },
            source=self.source,
        )

    # Defined last so ``list`` still names the builtin in the annotations above.
    def list(self, user_id: str | None = None, role: str | None = None) -> list[C]:
        """All cycles for admins or anonymous callers, otherwise the agent's own."""
        with self.store.read():
            if not user_id or role == "admin":
                return self.repository.all()
            return self.repository.filter(lambda cycle: self._is_visible(cycle, user_id))
