"""Tests for sell cycles: listing, offers, sharing and completed sales."""

from datetime import date
from decimal import Decimal

import pytest

from estate_cycles.cycles import CycleManager
from estate_cycles.exceptions import (
    EntityNotFoundError,
    InvalidEntityStateError,
    ReferentialIntegrityError,
    ValidationError,
)
from estate_cycles.models.brokerage import (
    CommissionType,
    DealStatus,
    OfferStatus,
    OwnerType,
    SellCycleStatus,
    TransactionType,
)


class TestCreateSellCycle:
    """Tests for opening sell cycles."""

    def test_defaults(self, manager: CycleManager, prop, sell_cycle) -> None:
        assert sell_cycle.status == SellCycleStatus.LISTED
        assert sell_cycle.listed_date == date.today()
        assert sell_cycle.is_shared is False
        assert sell_cycle.cycle_id.startswith("sell_")

        stored = manager.get_property(prop.property_id)
        assert stored.active_sell_cycle_ids == [sell_cycle.cycle_id]
        assert stored.price == Decimal("10000000")
        assert stored.status_label == "For Sale"

    def test_requested_status_is_ignored(self, make_sell) -> None:
        cycle = make_sell(status="sold")

        assert cycle.status == SellCycleStatus.LISTED

    def test_commission_rate_defaults_from_config(self, manager: CycleManager, prop) -> None:
        cycle = manager.create_cycle(
            "sell",
            property_id=prop.property_id,
            seller_id="owner-001",
            seller_name="Original Owner",
            agent_id="A1",
            agent_name="Agent One",
            asking_price=Decimal("10000000"),
        )

        assert cycle.commission_rate == manager.config.agency.default_commission_rate

    def test_string_values_are_coerced(self, make_sell) -> None:
        cycle = make_sell(asking_price="7500000.50", commission_type="fixed", listed_date="2024-03-01")

        assert cycle.asking_price == Decimal("7500000.50")
        assert cycle.commission_type == CommissionType.FIXED
        assert cycle.listed_date == date(2024, 3, 1)

    def test_unknown_property(self, manager: CycleManager) -> None:
        with pytest.raises(ReferentialIntegrityError):
            manager.create_cycle(
                "sell",
                property_id="ghost",
                seller_id="s",
                seller_name="Seller",
                agent_id="A1",
                agent_name="Agent",
                asking_price=1,
            )

    def test_missing_property_id(self, manager: CycleManager) -> None:
        with pytest.raises(ValidationError, match="property_id is required"):
            manager.create_cycle("sell", seller_name="Seller")

    def test_unknown_field(self, make_sell) -> None:
        with pytest.raises(ValidationError, match="Unknown SellCycle field"):
            make_sell(colour="blue")

    def test_bad_enum_value(self, make_sell) -> None:
        with pytest.raises(ValidationError, match="commission_type: Input should be"):
            make_sell(commission_type="hourly")

    def test_missing_required_field(self, manager: CycleManager, prop) -> None:
        with pytest.raises(ValidationError, match="Cannot create sell cycle"):
            manager.create_cycle("sell", property_id=prop.property_id, seller_name="Seller")

    def test_shared_listing(self, make_sell) -> None:
        cycle = make_sell(shared_with=["A3"])

        assert cycle.is_shared is True

    def test_primary_cycle_drives_property_price(self, manager: CycleManager, prop, make_sell) -> None:
        first = make_sell(asking_price=Decimal("10000000"))
        make_sell(asking_price=Decimal("12000000"))

        assert manager.get_property(prop.property_id).price == Decimal("10000000")

        manager.update_cycle("sell", first.cycle_id, asking_price="9500000")

        assert manager.get_property(prop.property_id).price == Decimal("9500000")


class TestOffers:
    """Tests for the offer workflow."""

    def test_first_offer_moves_to_offer_received(self, manager: CycleManager, sell_cycle) -> None:
        offer = manager.sell.add_offer(sell_cycle.cycle_id, buyer_name="  Sara Ahmed ", offer_amount="9500000")

        cycle = manager.sell.get(sell_cycle.cycle_id)
        assert cycle.status == SellCycleStatus.OFFER_RECEIVED
        assert offer.status == OfferStatus.PENDING
        assert offer.buyer_name == "Sara Ahmed"
        assert offer.offer_amount == Decimal("9500000")

    @pytest.mark.parametrize(
        "kwargs, message",
        [
            ({"buyer_name": "Buyer", "offer_amount": 0}, "greater than zero"),
            ({"buyer_name": " ", "offer_amount": 100}, "Buyer name is required"),
            ({"buyer_name": "Buyer", "offer_amount": 100, "token_amount": 200}, "Token amount"),
        ],
    )
    def test_invalid_offers(self, manager: CycleManager, sell_cycle, kwargs, message) -> None:
        with pytest.raises(ValidationError, match=message):
            manager.sell.add_offer(sell_cycle.cycle_id, **kwargs)

    def test_counter_offer_moves_to_negotiation(self, manager: CycleManager, prop, sell_cycle) -> None:
        offer = manager.sell.add_offer(sell_cycle.cycle_id, buyer_name="Buyer", offer_amount=9000000)

        countered = manager.sell.counter_offer(sell_cycle.cycle_id, offer.offer_id, Decimal("9800000"))

        assert countered.status == OfferStatus.COUNTERED
        assert countered.counter_offer_amount == Decimal("9800000")
        assert manager.sell.get(sell_cycle.cycle_id).status == SellCycleStatus.NEGOTIATION
        assert manager.get_property(prop.property_id).status_label == "Negotiation"

    def test_accept_rejects_other_open_offers(self, manager: CycleManager, prop, sell_cycle) -> None:
        low = manager.sell.add_offer(sell_cycle.cycle_id, buyer_name="Low", offer_amount=8000000)
        high = manager.sell.add_offer(sell_cycle.cycle_id, buyer_name="High", offer_amount=9900000)

        manager.sell.accept_offer(sell_cycle.cycle_id, high.offer_id)

        cycle = manager.sell.get(sell_cycle.cycle_id)
        assert cycle.status == SellCycleStatus.UNDER_CONTRACT
        assert cycle.accepted_offer_id == high.offer_id
        assert cycle.find_offer(low.offer_id).status == OfferStatus.REJECTED
        assert manager.get_property(prop.property_id).status_label == "Under Contract"

    def test_cannot_accept_closed_offer(self, manager: CycleManager, sell_cycle) -> None:
        offer = manager.sell.add_offer(sell_cycle.cycle_id, buyer_name="Buyer", offer_amount=9000000)
        manager.sell.reject_offer(sell_cycle.cycle_id, offer.offer_id, "Too low")

        with pytest.raises(InvalidEntityStateError, match="already rejected"):
            manager.sell.accept_offer(sell_cycle.cycle_id, offer.offer_id)

    def test_withdraw_offer(self, manager: CycleManager, sell_cycle) -> None:
        offer = manager.sell.add_offer(sell_cycle.cycle_id, buyer_name="Buyer", offer_amount=9000000)

        withdrawn = manager.sell.withdraw_offer(sell_cycle.cycle_id, offer.offer_id)

        assert withdrawn.status == OfferStatus.WITHDRAWN

    def test_unknown_offer(self, manager: CycleManager, sell_cycle) -> None:
        with pytest.raises(EntityNotFoundError):
            manager.sell.reject_offer(sell_cycle.cycle_id, "offer_missing")

    def test_offer_on_cancelled_cycle(self, manager: CycleManager, sell_cycle) -> None:
        manager.cancel_cycle("sell", sell_cycle.cycle_id)

        with pytest.raises(InvalidEntityStateError):
            manager.sell.add_offer(sell_cycle.cycle_id, buyer_name="Buyer", offer_amount=1)


class TestDeals:
    """Deals recorded by accepted offers."""

    def test_accept_records_deal(self, manager: CycleManager, prop, sell_cycle) -> None:
        offer = manager.sell.add_offer(sell_cycle.cycle_id, buyer_name="Sara Ahmed", offer_amount=9500000)

        manager.sell.accept_offer(sell_cycle.cycle_id, offer.offer_id)

        cycle = manager.sell.get(sell_cycle.cycle_id)
        deal = manager.get_deal(cycle.deal_id)
        assert deal.sell_cycle_id == sell_cycle.cycle_id
        assert deal.offer_id == offer.offer_id
        assert deal.agreed_price == Decimal("9500000")
        assert deal.commission_amount == Decimal("190000.00")
        assert deal.purchase_cycle_id is None
        assert deal.status == DealStatus.ACTIVE
        assert manager.get_property_deals(prop.property_id) == [deal]

    def test_sale_completes_deal(self, manager: CycleManager, sell_cycle) -> None:
        offer = manager.sell.add_offer(sell_cycle.cycle_id, buyer_name="Sara Ahmed", offer_amount=9500000)
        manager.sell.accept_offer(sell_cycle.cycle_id, offer.offer_id)

        assert manager.complete_sale(sell_cycle.cycle_id, Decimal("9500000")).success

        assert manager.get_deal(manager.sell.get(sell_cycle.cycle_id).deal_id).status == DealStatus.COMPLETED

    def test_cancel_cancels_deal(self, manager: CycleManager, sell_cycle) -> None:
        offer = manager.sell.add_offer(sell_cycle.cycle_id, buyer_name="Sara Ahmed", offer_amount=9500000)
        manager.sell.accept_offer(sell_cycle.cycle_id, offer.offer_id)

        assert manager.cancel_cycle("sell", sell_cycle.cycle_id).success

        assert manager.get_deal(manager.sell.get(sell_cycle.cycle_id).deal_id).status == DealStatus.CANCELLED

    def test_deal_id_cannot_be_rewritten(self, manager: CycleManager, sell_cycle) -> None:
        result = manager.update_cycle("sell", sell_cycle.cycle_id, deal_id="deal_forged")

        assert not result.success
        assert manager.sell.get(sell_cycle.cycle_id).deal_id is None


class TestSharing:
    def test_share_and_unshare(self, manager: CycleManager, sell_cycle) -> None:
        manager.sell.share(sell_cycle.cycle_id, ["A3", "A1", "A3"])
        cycle = manager.sell.get(sell_cycle.cycle_id)
        assert cycle.shared_with == ["A3"]
        assert cycle.is_shared is True
        assert [c.cycle_id for c in manager.sell.list("A3", "agent")] == [sell_cycle.cycle_id]

        manager.sell.unshare(sell_cycle.cycle_id)
        assert manager.sell.get(sell_cycle.cycle_id).is_shared is False
        assert manager.sell.list("A3", "agent") == []


class TestCompleteSale:
    """Tests for closing a sale."""

    def test_sale_with_percentage_commission(self, manager: CycleManager, prop, sell_cycle) -> None:
        offer = manager.sell.add_offer(sell_cycle.cycle_id, buyer_name="Sara Ahmed", offer_amount=10000000)
        manager.sell.accept_offer(sell_cycle.cycle_id, offer.offer_id)

        result = manager.complete_sale(sell_cycle.cycle_id, Decimal("10000000"))

        assert result.success
        assert result.entity_id == sell_cycle.cycle_id
        transaction = manager.store.transactions.require(result.transaction_id)
        assert transaction.transaction_type == TransactionType.SALE
        assert transaction.commission_amount == Decimal("200000.00")
        assert transaction.counterpart_name == "Sara Ahmed"

        stored = manager.get_property(prop.property_id)
        assert stored.current_owner_name == "Sara Ahmed"
        assert stored.current_owner_type == OwnerType.CLIENT
        assert stored.active_sell_cycle_ids == []
        assert stored.cycle_history.sell_cycles == [sell_cycle.cycle_id]
        assert stored.status_label == "No Active Cycle"
        assert manager.sell.get(sell_cycle.cycle_id).status == SellCycleStatus.SOLD

    def test_fixed_commission(self, manager: CycleManager, make_sell) -> None:
        cycle = make_sell(commission_type="fixed", commission_rate=Decimal("150000"))

        result = manager.complete_sale(cycle.cycle_id, Decimal("9000000"), buyer_id="b1", buyer_name="Buyer")

        assert manager.store.transactions.require(result.transaction_id).commission_amount == Decimal("150000")

    def test_sale_without_buyer_fails(self, manager: CycleManager, prop, sell_cycle) -> None:
        result = manager.complete_sale(sell_cycle.cycle_id, Decimal("9000000"))

        assert not result.success
        assert "Buyer is required" in result.error
        assert len(manager.store.transactions) == 0
        assert manager.get_property(prop.property_id).current_owner_id == "owner-001"

    def test_sale_of_sold_cycle_fails(self, manager: CycleManager, sell_cycle) -> None:
        assert manager.complete_sale(sell_cycle.cycle_id, 1, buyer_id="b", buyer_name="B").success

        result = manager.complete_sale(sell_cycle.cycle_id, 1, buyer_id="b", buyer_name="B")

        assert not result.success
        assert len(manager.store.transactions) == 1

    def test_non_positive_price(self, manager: CycleManager, sell_cycle) -> None:
        result = manager.complete_sale(sell_cycle.cycle_id, 0, buyer_id="b", buyer_name="B")

        assert not result.success
        assert "greater than zero" in result.error

    def test_stats(self, manager: CycleManager, sell_cycle, make_sell) -> None:
        make_sell(agent_id="A9", asking_price=Decimal("5000000"))
        manager.sell.add_offer(sell_cycle.cycle_id, buyer_name="Buyer", offer_amount=9000000)

        stats = manager.sell.stats()

        assert stats["total"] == 2
        assert stats["by_status"]["offer-received"] == 1
        assert stats["by_status"]["listed"] == 1
        assert stats["total_offers"] == 1
        assert stats["pending_offers"] == 1
        assert stats["total_listing_value"] == Decimal("15000000")
        assert manager.sell.stats("A9", "agent")["total"] == 1
