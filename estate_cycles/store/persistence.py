"""JSON persistence for the brokerage store.

The persisted document is versioned::

    {
        "schema_version": 1,
        "properties": [...],
        "sell_cycles": [...],
        "purchase_cycles": [...],
        "rent_cycles": [...],
        "transactions": [...],
        "deals": [...]
    }
"""

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from estate_cycles.exceptions import ConfigurationError
from estate_cycles.models.brokerage import (
    Deal,
    Property,
    PurchaseCycle,
    RentCycle,
    SellCycle,
    Transaction,
)
from estate_cycles.sinks.serialization import to_dict
from estate_cycles.store.brokerage import BrokerageDataStore
from estate_cycles.validation import adapter_for, describe_errors

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

# Collection name (also the store attribute) -> model
COLLECTIONS: dict[str, type] = {
    "properties": Property,
    "sell_cycles": SellCycle,
    "purchase_cycles": PurchaseCycle,
    "rent_cycles": RentCycle,
    "transactions": Transaction,
    "deals": Deal,
}


def dump_store(store: BrokerageDataStore) -> dict[str, Any]:
    """Serialize every collection of the store into a versioned document."""
    with store.read():
        document: dict[str, Any] = {"schema_version": SCHEMA_VERSION}
        for name in COLLECTIONS:
            document[name] = [to_dict(item) for item in getattr(store, name)]
    return document


def restore_store(document: dict[str, Any]) -> BrokerageDataStore:
    """Build a store from a document produced by :func:`dump_store`."""
    version = document.get("schema_version")
    if version != SCHEMA_VERSION:
        raise ConfigurationError(
            f"Unsupported store schema version {version!r} (expected {SCHEMA_VERSION})"
        )

    store = BrokerageDataStore()
    for name, model in COLLECTIONS.items():
        repository = getattr(store, name)
        try:
            records = adapter_for(list[model]).validate_python(document.get(name, []))
        except PydanticValidationError as exc:
            raise ConfigurationError(f"Invalid {name} in stored document: {describe_errors(exc)}") from exc
        for record in records:
            repository.add(record)
    return store


def save_store(store: BrokerageDataStore, path: str | Path, pretty: bool = False) -> Path:
    """Write the store to a JSON file, replacing any previous content."""
    file_path = Path(path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    document = dump_store(store)

    with open(file_path, "w", encoding="utf-8") as f:
        if pretty:
            json.dump(document, f, indent=2, ensure_ascii=False)
        else:
            json.dump(document, f, ensure_ascii=False)

    logger.info("Store saved to %s: %s", file_path, store.summary())
    return file_path


def load_store(path: str | Path) -> BrokerageDataStore:
    """Read a store previously written by :func:`save_store`."""
    file_path = Path(path)
    with open(file_path, encoding="utf-8") as f:
        try:
            document = json.load(f)
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"Store file {file_path} is not valid JSON: {exc}") from exc

    store = restore_store(document)
    logger.info("Store loaded from %s: %s", file_path, store.summary())
    return store

