"""Generators for brokerage demo data: agents, properties and cycle payloads."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Iterator

from estate_cycles.generators.base import BaseGenerator
from estate_cycles.models.brokerage import (
    CommissionType,
    FinancingType,
    InvestorShare,
    Property,
    PurchaserType,
)
from estate_cycles.store import generate_id


@dataclass
class Agent:
    agent_id: str
    name: str


def round_to(amount: float, step: int) -> Decimal:
    """Round a price to a realistic step (e.g. the nearest 50,000)."""
    return Decimal(int(round(amount / step)) * step)


class AgentGenerator(BaseGenerator):
    """Generate the brokerage's agents."""

    def generate(self) -> Agent:
        return Agent(agent_id=generate_id("agent"), name=self.fake.name())

    def generate_batch(self, count: int) -> Iterator[Agent]:
        for _ in range(count):
            yield self.generate()


class PropertyGenerator(BaseGenerator):
    """Generate property assets with a plausible market price."""

    PROPERTY_KINDS = ["House", "Apartment", "Plot", "Shop", "Penthouse"]
    KIND_WEIGHTS = [0.40, 0.30, 0.15, 0.10, 0.05]

    # Price ranges by kind
    PRICE_RANGES = {
        "House": (8_000_000, 60_000_000),
        "Apartment": (4_000_000, 25_000_000),
        "Plot": (2_000_000, 30_000_000),
        "Shop": (3_000_000, 20_000_000),
        "Penthouse": (30_000_000, 120_000_000),
    }

    def generate(self, created_by: str, shared_with: list[str] | None = None) -> Property:
        """Generate a single (unsaved) property.

        Parameters
        ----------
        created_by : str
            Agent id registering the property.
        shared_with : list[str] | None
            Other agents that may see it.

        Returns
        -------
        Property
            Generated property.
        """
        kind = self.rng.choices(self.PROPERTY_KINDS, weights=self.KIND_WEIGHTS, k=1)[0]
        low, high = self.PRICE_RANGES[kind]
        street = self.fake.street_address()
        city = self.fake.city()
        return Property(
            property_id=generate_id("prop"),
            address=f"{street}, {city}",
            created_by=created_by,
            title=f"{kind} on {street}",
            price=round_to(self.rng.uniform(low, high), 50_000),
            shared_with=list(shared_with or []),
        )


class CycleGenerator(BaseGenerator):
    """Generate keyword payloads for ``CycleManager.create_cycle``."""

    PURCHASER_TYPES = list(PurchaserType)
    PURCHASER_WEIGHTS = [0.25, 0.25, 0.50]

    def sell_cycle_data(self, prop: Property, agent: Agent) -> dict[str, Any]:
        fixed = self.rng.random() < 0.15
        asking = prop.price or round_to(self.rng.uniform(5_000_000, 40_000_000), 50_000)
        return {
            "property_id": prop.property_id,
            "seller_id": generate_id("contact"),
            "seller_name": prop.current_owner_name or self.fake.name(),
            "agent_id": agent.agent_id,
            "agent_name": agent.name,
            "asking_price": asking,
            "commission_type": CommissionType.FIXED if fixed else CommissionType.PERCENTAGE,
            "commission_rate": Decimal(self.rng.choice([150_000, 250_000])) if fixed else Decimal("2"),
            "title": prop.title,
            "listed_date": date.today() - timedelta(days=self.rng.randint(5, 120)),
        }

    def purchase_cycle_data(
        self,
        prop: Property,
        agent: Agent,
        purchaser_type: PurchaserType | None = None,
    ) -> dict[str, Any]:
        purchaser_type = purchaser_type or self.rng.choices(
            self.PURCHASER_TYPES, weights=self.PURCHASER_WEIGHTS, k=1
        )[0]
        asking = prop.price or Decimal("10000000")
        offer = round_to(float(asking) * self.rng.uniform(0.85, 1.0), 10_000)
        return {
            "property_id": prop.property_id,
            "purchaser": self.purchaser(purchaser_type, offer),
            "seller_id": prop.current_owner_id or generate_id("contact"),
            "seller_name": prop.current_owner_name or self.fake.name(),
            "asking_price": asking,
            "offer_amount": offer,
            "agent_id": agent.agent_id,
            "agent_name": agent.name,
            "financing_type": self.rng.choice(list(FinancingType)),
            "offer_date": date.today() - timedelta(days=self.rng.randint(1, 60)),
        }

    def purchaser(self, purchaser_type: PurchaserType, price: Decimal) -> dict[str, Any]:
        """Purchaser payload for one variant, as accepted by ``build_purchaser``."""
        if purchaser_type == PurchaserType.AGENCY:
            return {
                "purchaser_type": PurchaserType.AGENCY,
                "purchaser_id": "AGENCY",
                "purchaser_name": "Agency Inventory",
                "expected_resale_value": round_to(float(price) * self.rng.uniform(1.05, 1.35), 10_000),
                "renovation_budget": round_to(float(price) * self.rng.uniform(0.0, 0.08), 10_000),
                "target_roi": Decimal(self.rng.choice([10, 15, 20])),
            }
        if purchaser_type == PurchaserType.INVESTOR:
            shares = self.investor_shares(self.rng.randint(1, 3), price)
            return {
                "purchaser_type": PurchaserType.INVESTOR,
                "purchaser_id": shares[0].investor_id,
                "purchaser_name": shares[0].investor_name,
                "investors": shares,
                "facilitation_fee": Decimal(self.rng.choice([250_000, 500_000])),
            }
        return {
            "purchaser_type": PurchaserType.CLIENT,
            "purchaser_id": generate_id("contact"),
            "purchaser_name": self.fake.name(),
            "commission_rate": Decimal("2"),
            "buyer_budget_max": round_to(float(price) * 1.1, 10_000),
            "prequalified": self.rng.random() < 0.6,
        }

    def investor_shares(self, count: int, total_price: Decimal) -> list[InvestorShare]:
        """Split 100% across ``count`` investors; the last one takes the remainder."""
        cuts = sorted(self.rng.randint(10, 90) for _ in range(count - 1))
        bounds = [0, *cuts, 100]
        percentages = [Decimal(high - low) for low, high in zip(bounds, bounds[1:])]
        percentages = [p if p > 0 else Decimal("1") for p in percentages]
        percentages[-1] = Decimal("100") - sum(percentages[:-1], Decimal("0"))
        return [
            InvestorShare(
                investor_id=generate_id("investor"),
                investor_name=self.fake.name(),
                share_percentage=pct,
                investment_amount=(total_price * pct / 100).quantize(Decimal("0.01")),
            )
            for pct in percentages
        ]

    def rent_cycle_data(self, prop: Property, agent: Agent) -> dict[str, Any]:
        price = prop.price or Decimal("10000000")
        monthly = round_to(float(price) * self.rng.uniform(0.003, 0.006), 1_000)
        return {
            "property_id": prop.property_id,
            "landlord_id": prop.current_owner_id or generate_id("contact"),
            "landlord_name": prop.current_owner_name or self.fake.name(),
            "agent_id": agent.agent_id,
            "agent_name": agent.name,
            "monthly_rent": monthly,
            "security_deposit": monthly * 2,
            "lease_period_months": self.rng.choice([6, 12, 12, 24]),
            "available_from": date.today() - timedelta(days=self.rng.randint(0, 45)),
        }
