"""Pytest configuration and fixtures."""

from decimal import Decimal
from typing import Any, Callable

import pytest

from estate_cycles.cycles import CycleManager
from estate_cycles.models.brokerage import OwnerType, Property, PurchaseCycle, SellCycle


@pytest.fixture
def seed() -> int:
    """Fixed seed for reproducible tests."""
    return 42


@pytest.fixture
def manager() -> CycleManager:
    """Fresh manager over an empty in-memory store."""
    return CycleManager()


@pytest.fixture
def prop(manager: CycleManager) -> Property:
    """Client-owned property registered by agent A1."""
    return manager.add_property(
        "12 Canal Road, Lahore",
        "A1",
        title="Corner house",
        current_owner_id="owner-001",
        current_owner_name="Original Owner",
        current_owner_type=OwnerType.CLIENT,
    )


@pytest.fixture
def make_sell(manager: CycleManager, prop: Property) -> Callable[..., SellCycle]:
    """Factory for sell cycles on ``prop``; keywords override the defaults."""

    def make(**overrides: Any) -> SellCycle:
        data = {
            "property_id": prop.property_id,
            "seller_id": "owner-001",
            "seller_name": "Original Owner",
            "agent_id": "A1",
            "agent_name": "Agent One",
            "asking_price": Decimal("10000000"),
            "commission_rate": Decimal("2"),
        }
        data.update(overrides)
        return manager.create_cycle("sell", **data)

    return make


@pytest.fixture
def make_purchase(manager: CycleManager, prop: Property) -> Callable[..., PurchaseCycle]:
    """Factory for purchase cycles on ``prop``; client purchaser at 2% unless overridden."""

    def make(**overrides: Any) -> PurchaseCycle:
        data = {
            "property_id": prop.property_id,
            "purchaser": {
                "purchaser_type": "client",
                "purchaser_id": "buyer-001",
                "purchaser_name": "Bilal Khan",
                "commission_rate": "2",
            },
            "seller_id": "owner-001",
            "seller_name": "Original Owner",
            "asking_price": Decimal("10000000"),
            "offer_amount": Decimal("9500000"),
            "agent_id": "A2",
            "agent_name": "Agent Two",
        }
        data.update(overrides)
        return manager.create_cycle("purchase", **data)

    return make


@pytest.fixture
def make_rent(manager: CycleManager, prop: Property) -> Callable[..., Any]:
    """Factory for rent cycles on ``prop``."""

    def make(**overrides: Any) -> Any:
        data = {
            "property_id": prop.property_id,
            "landlord_id": "owner-001",
            "landlord_name": "Original Owner",
            "agent_id": "A1",
            "agent_name": "Agent One",
            "monthly_rent": Decimal("50000"),
            "security_deposit": Decimal("100000"),
        }
        data.update(overrides)
        return manager.create_cycle("rent", **data)

    return make


@pytest.fixture
def sell_cycle(make_sell: Callable[..., SellCycle]) -> SellCycle:
    """Listing at 10,000,000 with a 2% commission, run by A1."""
    return make_sell()


@pytest.fixture
def client_purchase(make_purchase: Callable[..., PurchaseCycle]) -> PurchaseCycle:
    """Client purchase offering 9,500,000, run by A2."""
    return make_purchase()
