"""Domain models for the asset-centric transaction cycle engine."""

from estate_cycles.models.base import Event, OperationResult, ValidationResult

__all__ = ["Event", "OperationResult", "ValidationResult"]
