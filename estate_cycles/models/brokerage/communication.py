"""Communication log entries attached to cycles."""

from dataclasses import dataclass
from datetime import datetime

from estate_cycles.models.brokerage.enums import CommunicationKind


@dataclass
class CommunicationEntry:
    """One line of a cycle's free-form communication log."""

    logged_at: datetime
    kind: CommunicationKind
    summary: str
    by: str
