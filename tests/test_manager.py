"""Tests for the cycle manager facade."""

from datetime import date
from decimal import Decimal

import pytest

from estate_cycles.config import AgencyConfig, EngineConfig
from estate_cycles.cycles import CycleManager, PurchaseCycleService, RentCycleService, SellCycleService
from estate_cycles.exceptions import EntityNotFoundError, ReferentialIntegrityError, ValidationError
from estate_cycles.models.brokerage import (
    AgencyPurchaser,
    CommunicationKind,
    CycleType,
    PurchaseCycleStatus,
    PurchaserType,
    SellCycleStatus,
)
from estate_cycles.store import BrokerageDataStore


class TestWiring:
    def test_services(self, manager: CycleManager) -> None:
        assert isinstance(manager.service("sell"), SellCycleService)
        assert isinstance(manager.service(CycleType.PURCHASE), PurchaseCycleService)
        assert isinstance(manager.service("rent"), RentCycleService)
        assert manager.purchase.sell is manager.sell

    def test_unknown_cycle_type(self, manager: CycleManager) -> None:
        with pytest.raises(ValidationError, match="Unknown cycle type"):
            manager.service("lease")

    def test_shared_store(self) -> None:
        store = BrokerageDataStore()
        manager = CycleManager(store=store)

        manager.add_property("1 Shared Lane", "A1")

        assert len(store.properties) == 1

    def test_config_reaches_services(self) -> None:
        config = EngineConfig(agency=AgencyConfig(agency_id="ACME", default_commission_rate=Decimal("3")))
        manager = CycleManager(config=config)

        assert manager.sell.agency.agency_id == "ACME"
        assert manager.ownership.agency.default_commission_rate == Decimal("3")


class TestProperties:
    def test_add_property(self, manager: CycleManager) -> None:
        prop = manager.add_property("5 Mall Road", "A1", price="7500000", shared_with=["A2"])

        assert prop.property_id.startswith("prop")
        assert prop.price == Decimal("7500000")
        assert manager.get_property(prop.property_id) is prop

    def test_add_property_explicit_id(self, manager: CycleManager) -> None:
        prop = manager.add_property("5 Mall Road", "A1", property_id="p-1")

        assert prop.property_id == "p-1"

    def test_add_property_unknown_field(self, manager: CycleManager) -> None:
        with pytest.raises(ValidationError, match="Unknown Property field"):
            manager.add_property("5 Mall Road", "A1", bedrooms=3)

    def test_get_missing_property(self, manager: CycleManager) -> None:
        assert manager.get_property("ghost") is None

    def test_list_properties_visibility(self, manager: CycleManager) -> None:
        own = manager.add_property("Own", "A1")
        shared = manager.add_property("Shared", "A2", shared_with=["A1"])
        manager.add_property("Other", "A3")

        visible = manager.list_properties("A1", "agent")

        assert {p.property_id for p in visible} == {own.property_id, shared.property_id}
        assert len(manager.list_properties("A1", "admin")) == 3
        assert len(manager.list_properties()) == 3


class TestCreateCycle:
    def test_unknown_property(self, manager: CycleManager) -> None:
        with pytest.raises(ReferentialIntegrityError):
            manager.create_cycle(
                "sell",
                property_id="ghost",
                seller_id="s",
                seller_name="S",
                agent_id="A1",
                agent_name="A",
                asking_price=1,
            )

    def test_missing_property_id(self, manager: CycleManager) -> None:
        with pytest.raises(ValidationError, match="property_id is required"):
            manager.create_cycle("rent", landlord_id="l")

    def test_commission_rate_defaults_from_config(self, manager: CycleManager, prop) -> None:
        cycle = manager.create_cycle(
            "sell",
            property_id=prop.property_id,
            seller_id="s",
            seller_name="S",
            agent_id="A1",
            agent_name="A",
            asking_price="1000000",
        )

        assert cycle.commission_rate == manager.config.agency.default_commission_rate


class TestReads:
    def test_property_cycles(self, manager: CycleManager, prop, sell_cycle, client_purchase, make_rent) -> None:
        rent = make_rent()
        manager.cancel_cycle("sell", sell_cycle.cycle_id)

        cycles = manager.get_property_cycles(prop.property_id)

        assert [c.cycle_id for c in cycles.sell_cycles] == [sell_cycle.cycle_id]
        assert [c.cycle_id for c in cycles.purchase_cycles] == [client_purchase.cycle_id]
        assert [c.cycle_id for c in cycles.rent_cycles] == [rent.cycle_id]

    def test_property_cycles_unknown(self, manager: CycleManager) -> None:
        cycles = manager.get_property_cycles("ghost")

        assert cycles.sell_cycles == cycles.purchase_cycles == cycles.rent_cycles == []

    def test_timeline_newest_first(self, manager: CycleManager, prop, make_sell, make_rent) -> None:
        make_sell(listed_date=date(2024, 1, 10))
        rent = make_rent(available_from=date(2024, 3, 1))
        manager.rent.sign_lease(rent.cycle_id, tenant_name="Sara", start_date=date(2024, 4, 1))

        timeline = manager.get_property_cycle_timeline(prop.property_id)
        dates = [entry.on for entry in timeline]

        assert dates == sorted(dates, reverse=True)
        assert timeline[-1].action == "Sell Cycle Started"
        assert any(e.kind == "transaction" and e.action == "Transaction: rental" for e in timeline)

    def test_timeline_includes_sale(self, manager: CycleManager, prop, sell_cycle) -> None:
        result = manager.complete_sale(sell_cycle.cycle_id, Decimal("9800000"), buyer_id="b1", buyer_name="Buyer")
        assert result.success

        actions = [entry.action for entry in manager.get_property_cycle_timeline(prop.property_id)]

        assert "Property Sold" in actions
        assert "Transaction: sale" in actions

    def test_dual_representation(self, manager: CycleManager, prop, sell_cycle, make_purchase) -> None:
        make_purchase(agent_id="A2")
        assert manager.check_agent_dual_representation(prop.property_id, "A1").has_dual_rep is False

        same_agent = make_purchase(agent_id="A1")
        dual = manager.check_agent_dual_representation(prop.property_id, "A1")

        assert dual.has_dual_rep is True
        assert dual.sell_cycle_ids == [sell_cycle.cycle_id]
        assert dual.purchase_cycle_ids == [same_agent.cycle_id]

    def test_cycle_stats(self, manager: CycleManager, prop, sell_cycle, client_purchase) -> None:
        manager.sell.add_offer(sell_cycle.cycle_id, buyer_name="B", offer_amount=9000000)

        stats = manager.get_all_cycle_stats()

        assert stats["sell"]["total"] == 1
        assert stats["sell"]["by_status"]["offer-received"] == 1
        assert stats["sell"]["total_offers"] == 1
        assert stats["purchase"]["by_purchaser_type"]["client"] == 1
        assert stats["rent"]["total"] == 0
        assert stats["internal_matches"] == 1

    def test_cycle_stats_for_agent(self, manager: CycleManager, prop, sell_cycle, client_purchase) -> None:
        stats = manager.get_all_cycle_stats("A2", "agent")

        assert stats["sell"]["total"] == 0
        assert stats["purchase"]["total"] == 1

    def test_compute_property_status(self, manager: CycleManager, prop, sell_cycle) -> None:
        assert manager.compute_property_status(prop.property_id) == "For Sale"
        assert manager.compute_property_status(manager.get_property(prop.property_id)) == "For Sale"
        assert manager.compute_property_status("ghost") == "No Active Cycle"


class TestUpdateCycle:
    def test_update(self, manager: CycleManager, prop, sell_cycle) -> None:
        result = manager.update_cycle("sell", sell_cycle.cycle_id, asking_price="9500000", notes="Price drop")

        assert result.success
        assert result.entity_id == sell_cycle.cycle_id
        updated = manager.sell.get(sell_cycle.cycle_id)
        assert updated.asking_price == Decimal("9500000")
        assert manager.get_property(prop.property_id).price == Decimal("9500000")

    @pytest.mark.parametrize("field", ["cycle_id", "property_id", "created_at"])
    def test_immutable_fields(self, manager: CycleManager, sell_cycle, field: str) -> None:
        result = manager.update_cycle("sell", sell_cycle.cycle_id, **{field: "x"})

        assert not result.success
        assert "cannot be changed" in result.error

    def test_unknown_field(self, manager: CycleManager, sell_cycle) -> None:
        result = manager.update_cycle("sell", sell_cycle.cycle_id, colour="blue")

        assert not result.success
        assert "Unknown SellCycle field" in result.error

    def test_invalid_status(self, manager: CycleManager, sell_cycle) -> None:
        result = manager.update_cycle("sell", sell_cycle.cycle_id, status="archived")

        assert not result.success
        assert "status: Input should be" in result.error
        assert manager.sell.get(sell_cycle.cycle_id).status == SellCycleStatus.LISTED

    def test_failed_update_keeps_references_live(self, manager: CycleManager, prop, sell_cycle) -> None:
        assert not manager.update_cycle("sell", sell_cycle.cycle_id, status="bogus").success

        assert manager.update_cycle("sell", sell_cycle.cycle_id, asking_price="9000000").success

        assert manager.sell.get(sell_cycle.cycle_id) is sell_cycle
        assert sell_cycle.asking_price == Decimal("9000000")
        assert manager.get_property(prop.property_id) is prop
        assert prop.price == Decimal("9000000")

    def test_replace_purchaser(self, manager: CycleManager, client_purchase) -> None:
        result = manager.update_cycle(
            "purchase",
            client_purchase.cycle_id,
            purchaser={"purchaser_type": "agency", "purchaser_id": "AGENCY", "purchaser_name": "Agency Inventory"},
        )

        assert result.success
        cycle = manager.purchase.get(client_purchase.cycle_id)
        assert isinstance(cycle.purchaser, AgencyPurchaser)
        assert cycle.purchaser_type == PurchaserType.AGENCY
        assert manager.purchase.stats()["by_purchaser_type"]["agency"] == 1

    def test_replace_purchaser_without_type(self, manager: CycleManager, client_purchase) -> None:
        result = manager.update_cycle(
            "purchase", client_purchase.cycle_id, purchaser={"purchaser_id": "X", "purchaser_name": "X"}
        )

        assert not result.success
        assert manager.purchase.get(client_purchase.cycle_id).purchaser_type == PurchaserType.CLIENT

    def test_missing_cycle(self, manager: CycleManager) -> None:
        result = manager.update_cycle("rent", "rent_missing", notes="x")

        assert not result.success

    def test_terminal_status_retires_cycle(self, manager: CycleManager, prop, client_purchase) -> None:
        result = manager.update_cycle("purchase", client_purchase.cycle_id, status="cancelled")

        assert result.success
        stored = manager.get_property(prop.property_id)
        assert client_purchase.cycle_id not in stored.active_purchase_cycle_ids
        assert stored.status_label == "No Active Cycle"

    def test_status_update_resyncs(self, manager: CycleManager, prop, sell_cycle) -> None:
        manager.update_cycle("sell", sell_cycle.cycle_id, status=SellCycleStatus.NEGOTIATION)

        assert manager.get_property(prop.property_id).status_label == "Negotiation"


class TestCancelCycle:
    def test_cancel(self, manager: CycleManager, prop, client_purchase) -> None:
        result = manager.cancel_cycle("purchase", client_purchase.cycle_id, "Buyer walked away")

        assert result.success
        cycle = manager.purchase.get(client_purchase.cycle_id)
        assert cycle.status == PurchaseCycleStatus.CANCELLED
        assert cycle.notes.endswith("Cancelled: Buyer walked away")
        assert manager.get_property(prop.property_id).active_purchase_cycle_ids == []

    def test_cancel_without_reason(self, manager: CycleManager, sell_cycle) -> None:
        manager.cancel_cycle("sell", sell_cycle.cycle_id)

        assert manager.sell.get(sell_cycle.cycle_id).notes == "Cancelled"

    def test_cancel_twice(self, manager: CycleManager, sell_cycle) -> None:
        assert manager.cancel_cycle("sell", sell_cycle.cycle_id).success

        result = manager.cancel_cycle("sell", sell_cycle.cycle_id)

        assert not result.success
        assert "already cancelled" in result.error

    def test_cancel_unknown(self, manager: CycleManager) -> None:
        result = manager.cancel_cycle("sell", "sell_missing")

        assert not result.success


class TestCommunication:
    def test_add_communication(self, manager: CycleManager, sell_cycle) -> None:
        entry = manager.sell.add_communication(sell_cycle.cycle_id, "call", "Called the seller", "A1")

        assert entry.kind == CommunicationKind.CALL
        assert manager.sell.get(sell_cycle.cycle_id).communication_log == [entry]

    def test_requires_summary(self, manager: CycleManager, sell_cycle) -> None:
        with pytest.raises(ValidationError):
            manager.sell.add_communication(sell_cycle.cycle_id, "note", "", "A1")

    def test_invalid_kind(self, manager: CycleManager, sell_cycle) -> None:
        with pytest.raises(ValidationError, match="kind: Input should be"):
            manager.sell.add_communication(sell_cycle.cycle_id, "fax", "Sent a fax", "A1")

    def test_unknown_cycle(self, manager: CycleManager) -> None:
        with pytest.raises(EntityNotFoundError):
            manager.rent.add_communication("rent_missing", "note", "Hello", "A1")
