"""Pydantic validation of the dataclass models.

Models stay plain dataclasses; ``pydantic.TypeAdapter`` checks and coerces
incoming payloads against their annotations (Decimal from numbers and numeric
strings, enums from their values, ISO dates, the discriminated purchaser
union). Inputs are flattened with :func:`serialize_value` first so nested
dataclass instances and raw dicts validate the same way.
"""

from dataclasses import fields
from functools import lru_cache
from typing import Any, TypeVar

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from estate_cycles.exceptions import ValidationError
from estate_cycles.sinks.serialization import serialize_value

T = TypeVar("T")


@lru_cache(maxsize=None)
def adapter_for(model: Any) -> TypeAdapter:
    """Cached ``TypeAdapter`` for a model class or type expression."""
    return TypeAdapter(model)


def describe_errors(exc: PydanticValidationError) -> str:
    """One line per failing location, e.g. ``status: Input should be 'listed', ...``."""
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"]) or "value"
        parts.append(f"{location}: {error['msg']}")
    return "; ".join(parts)


def check_field_names(model: type, names: Any) -> None:
    """Raise for names the dataclass does not declare."""
    known = {f.name for f in fields(model) if f.init}
    unknown = sorted(set(names) - known)
    if unknown:
        raise ValidationError(f"Unknown {model.__name__} field(s): {', '.join(unknown)}")


def plain(data: dict[str, Any]) -> dict[str, Any]:
    return {name: serialize_value(value) for name, value in data.items()}


def validate_as(model: type[T], data: dict[str, Any], error_prefix: str | None = None) -> T:
    """Build a ``model`` instance from ``data``.

    Parameters
    ----------
    model : type
        Dataclass to build.
    data : dict[str, Any]
        Field values; nested values may be dataclass instances or dicts.
    error_prefix : str | None
        Start of the error message (default ``Invalid <Model>``).

    Returns
    -------
    T
        Validated instance.

    Raises
    ------
    ValidationError
        For unknown field names, missing required fields or bad values.
    """
    check_field_names(model, data)
    try:
        return adapter_for(model).validate_python(plain(data))
    except PydanticValidationError as exc:
        prefix = error_prefix or f"Invalid {model.__name__}"
        raise ValidationError(f"{prefix}: {describe_errors(exc)}") from exc


def validate_changes(entity: Any, changes: dict[str, Any]) -> dict[str, Any]:
    """Validate a partial update of ``entity``; returns the coerced changed values.

    The entity itself is left untouched, so a rejected update writes nothing.
    """
    model = type(entity)
    check_field_names(model, changes)
    current = {f.name: getattr(entity, f.name) for f in fields(model) if f.init}
    merged = validate_as(model, {**current, **changes}, error_prefix=f"Invalid {model.__name__} update")
    return {name: getattr(merged, name) for name in changes}
