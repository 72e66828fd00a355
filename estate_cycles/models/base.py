"""Base models shared across the engine."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class Event:
    """Standard event envelope for domain notifications."""

    event_id: str
    event_type: str  # entity.action (e.g., cycle.created)
    event_time: datetime
    source: str  # Component that raised it
    subject: str  # Entity ID affected
    data: dict
    metadata: dict = field(default_factory=dict)


@dataclass
class OperationResult:
    """Outcome of a mutating operation that reports failures instead of raising."""

    success: bool
    error: str | None = None
    transaction_id: str | None = None
    entity_id: str | None = None

    @classmethod
    def ok(cls, transaction_id: str | None = None, entity_id: str | None = None) -> "OperationResult":
        return cls(success=True, transaction_id=transaction_id, entity_id=entity_id)

    @classmethod
    def fail(cls, error: str) -> "OperationResult":
        return cls(success=False, error=error)


@dataclass
class ValidationResult:
    """Result of a pure validation check."""

    valid: bool
    error: str | None = None
