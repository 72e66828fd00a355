"""Tests for JSON persistence of the brokerage store."""

import json
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

from estate_cycles.cycles import CycleManager
from estate_cycles.exceptions import ConfigurationError
from estate_cycles.models.brokerage import (
    InvestorPurchaser,
    OwnerType,
    PurchaseCycleStatus,
    SellCycleStatus,
)
from estate_cycles.store import load_store, save_store
from estate_cycles.store.persistence import SCHEMA_VERSION, dump_store, restore_store


@pytest.fixture
def populated(manager: CycleManager, prop, sell_cycle, make_purchase, make_rent) -> CycleManager:
    """A store with a sale, an investor purchase and a signed lease."""
    manager.sell.add_offer(sell_cycle.cycle_id, buyer_name="Sara Ahmed", offer_amount=Decimal("9800000"))
    offer = manager.sell.get(sell_cycle.cycle_id).offers[0]
    manager.sell.accept_offer(sell_cycle.cycle_id, offer.offer_id)
    assert manager.complete_sale(sell_cycle.cycle_id, Decimal("9800000")).success

    investor = make_purchase(
        purchaser={
            "purchaser_type": "investor",
            "purchaser_id": "inv-1",
            "purchaser_name": "Investor One",
            "investors": [
                {"investor_id": "inv-1", "investor_name": "Investor One",
                 "share_percentage": "60", "investment_amount": "6000000"},
                {"investor_id": "inv-2", "investor_name": "Investor Two",
                 "share_percentage": "40", "investment_amount": "4000000"},
            ],
            "facilitation_fee": "500000",
        },
    )
    rent = make_rent()
    manager.rent.sign_lease(rent.cycle_id, tenant_name="Tenant One", start_date=date(2024, 1, 15))
    assert investor.cycle_id
    return manager


class TestDumpRestore:
    """Round trips through the versioned document."""

    def test_document_shape(self, populated: CycleManager) -> None:
        document = dump_store(populated.store)

        assert document["schema_version"] == SCHEMA_VERSION
        assert set(document) == {
            "schema_version",
            "properties",
            "sell_cycles",
            "purchase_cycles",
            "rent_cycles",
            "transactions",
        }
        assert len(document["transactions"]) == 2
        assert json.dumps(document)

    def test_round_trip_preserves_entities(self, populated: CycleManager) -> None:
        restored = restore_store(dump_store(populated.store))

        assert restored.summary() == populated.store.summary()
        for name in ("properties", "sell_cycles", "purchase_cycles", "rent_cycles", "transactions"):
            original = {repr(item) for item in getattr(populated.store, name)}
            assert {repr(item) for item in getattr(restored, name)} == original

    def test_round_trip_restores_types(self, populated: CycleManager) -> None:
        restored = restore_store(dump_store(populated.store))

        sold = next(iter(restored.sell_cycles))
        assert sold.status == SellCycleStatus.SOLD
        assert isinstance(sold.asking_price, Decimal)
        assert isinstance(sold.sold_date, date)

        purchase = next(iter(restored.purchase_cycles))
        assert isinstance(purchase.purchaser, InvestorPurchaser)
        assert purchase.status == PurchaseCycleStatus.OFFER_MADE
        assert [s.share_percentage for s in purchase.purchaser.investors] == [Decimal("60"), Decimal("40")]

        prop = next(iter(restored.properties))
        assert prop.current_owner_type == OwnerType.CLIENT
        assert prop.ownership_history[-1].owner_name == "Sara Ahmed"

    def test_restored_store_drives_a_manager(self, populated: CycleManager) -> None:
        restored = CycleManager(store=restore_store(dump_store(populated.store)))
        prop = next(iter(restored.store.properties))

        assert restored.compute_property_status(prop) == prop.status_label
        assert restored.status.sync_all()[prop.property_id] == prop.status_label

    def test_wrong_schema_version(self) -> None:
        with pytest.raises(ConfigurationError, match="schema version"):
            restore_store({"schema_version": 99})

    def test_missing_schema_version(self) -> None:
        with pytest.raises(ConfigurationError):
            restore_store({"properties": []})

    def test_unknown_purchaser_tag(self, populated: CycleManager) -> None:
        document = dump_store(populated.store)
        document["purchase_cycles"][0]["purchaser"]["purchaser_type"] = "martian"

        with pytest.raises(ConfigurationError, match="martian"):
            restore_store(document)


class TestSaveLoad:
    """File-level save and load."""

    def test_save_and_load(self, populated: CycleManager, tmp_path: Path) -> None:
        path = save_store(populated.store, tmp_path / "nested" / "store.json", pretty=True)

        assert path.exists()
        loaded = load_store(path)
        assert loaded.summary() == populated.store.summary()

    def test_load_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(ConfigurationError, match="not valid JSON"):
            load_store(path)

    def test_load_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_store(tmp_path / "missing.json")
