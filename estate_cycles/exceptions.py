"""Custom exception hierarchy for estate-cycles."""


class EstateCyclesError(Exception):
    """Base exception for all estate-cycles errors."""


class EntityNotFoundError(EstateCyclesError):
    """Raised when a referenced entity does not exist."""


class ReferentialIntegrityError(EntityNotFoundError):
    """Raised when a cycle, offer or receipt points at a missing entity."""


class ValidationError(EstateCyclesError):
    """Raised when input data breaks a domain rule."""


class InconsistentLinkError(EstateCyclesError):
    """Raised when two linked entities disagree about the property they belong to."""


class InvalidEntityStateError(EstateCyclesError):
    """Raised when an entity is in an invalid state for the operation."""


class ConfigurationError(EstateCyclesError):
    """Raised when configuration or persisted data is invalid."""


class SinkError(EstateCyclesError):
    """Raised when a sink operation fails."""
