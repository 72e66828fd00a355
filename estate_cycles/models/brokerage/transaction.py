"""Transaction receipt model."""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from estate_cycles.models.brokerage.enums import TransactionStatus, TransactionType


@dataclass(frozen=True)
class Transaction:
    """Immutable receipt of a completed cycle."""

    transaction_id: str
    property_id: str
    transaction_type: TransactionType
    agent_id: str
    counterpart_id: str
    counterpart_name: str
    accepted_amount: Decimal
    accepted_date: date
    source_cycle_id: str
    status: TransactionStatus = TransactionStatus.COMPLETED
    commission_amount: Decimal = Decimal("0")
    created_at: datetime | None = None
