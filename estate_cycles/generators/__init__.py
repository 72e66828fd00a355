"""Faker-based generators for brokerage demo data."""

from estate_cycles.generators.base import BaseGenerator
from estate_cycles.generators.brokerage import (
    Agent,
    AgentGenerator,
    CycleGenerator,
    PropertyGenerator,
)

__all__ = [
    "Agent",
    "AgentGenerator",
    "BaseGenerator",
    "CycleGenerator",
    "PropertyGenerator",
]
