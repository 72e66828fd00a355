"""Brokerage portfolio scenario: properties running through sell, purchase and rent cycles."""

from __future__ import annotations

import logging
import random
from decimal import Decimal
from typing import Any

from estate_cycles.config import EngineConfig
from estate_cycles.cycles import CycleManager
from estate_cycles.generators import Agent, AgentGenerator, CycleGenerator, PropertyGenerator
from estate_cycles.generators.brokerage import round_to
from estate_cycles.models.brokerage import (
    CycleType,
    OwnerType,
    Property,
    PurchaserType,
    SellCycle,
)
from estate_cycles.store import generate_id

logger = logging.getLogger(__name__)


class BrokeragePortfolioScenario:
    """Drive a realistic brokerage book through the cycle manager.

    This scenario creates:
    - Agents, and properties registered by them (some shared)
    - Sell cycles with external buyer offers, some closed as sales
    - Agency, investor and client purchase cycles, some completed
    - Purchase cycles offering on our own listings (internal matches)
    - Rent cycles with applications, signed leases and rent payments
    - A few cancelled cycles
    """

    def __init__(
        self,
        num_properties: int = 50,
        num_agents: int = 5,
        sell_rate: float = 0.70,
        purchase_rate: float = 0.40,
        rent_rate: float = 0.30,
        close_rate: float = 0.35,
        cancel_rate: float = 0.10,
        seed: int | None = None,
        *,
        config: EngineConfig | None = None,
    ) -> None:
        """Initialize the brokerage portfolio scenario.

        Parameters
        ----------
        num_properties : int
            Number of properties to register.
        num_agents : int
            Number of agents working the book.
        sell_rate : float
            Share of properties listed for sale (0.0 to 1.0).
        purchase_rate : float
            Share of properties with a purchase cycle.
        rent_rate : float
            Share of properties marketed for rent.
        close_rate : float
            Share of cycles taken through to completion.
        cancel_rate : float
            Share of open sell cycles that get cancelled.
        seed : int | None
            Random seed for reproducibility. Overrides ``config.seed``.
        config : EngineConfig | None
            Engine configuration handed to the cycle manager.
        """
        self.config = config or EngineConfig()
        self.seed = seed if seed is not None else self.config.seed
        self.num_properties = num_properties
        self.num_agents = max(1, num_agents)
        self.sell_rate = sell_rate
        self.purchase_rate = purchase_rate
        self.rent_rate = rent_rate
        self.close_rate = close_rate
        self.cancel_rate = cancel_rate

        self.rng = random.Random(self.seed)
        self.manager = CycleManager(config=self.config)
        self.agents: list[Agent] = []
        self._agent_gen = AgentGenerator(seed=self.seed)
        self._property_gen = PropertyGenerator(seed=self.seed)
        self._cycle_gen = CycleGenerator(seed=self.seed)

    def generate(self) -> CycleManager:
        """Generate the whole portfolio.

        Returns
        -------
        CycleManager
            Manager whose store holds every generated entity.
        """
        logger.info(
            "Starting brokerage portfolio scenario: %d properties, %d agents",
            self.num_properties,
            self.num_agents,
        )

        self.agents = list(self._agent_gen.generate_batch(self.num_agents))

        for i in range(self.num_properties):
            agent = self.rng.choice(self.agents)
            prop = self._register_property(agent)

            if self.rng.random() < self.sell_rate:
                sell = self.manager.create_cycle(CycleType.SELL, **self._cycle_gen.sell_cycle_data(prop, agent))
                if self.rng.random() < self.purchase_rate:
                    self._internal_offer(prop, sell)
                else:
                    self._external_offers(sell)
            elif self.rng.random() < self.purchase_rate:
                self._acquisition(prop, agent)

            if self.rng.random() < self.rent_rate:
                self._rental(prop, agent)

            if (i + 1) % 100 == 0:
                logger.info("Generated %d/%d properties", i + 1, self.num_properties)

        summary = self.manager.store.summary()
        logger.info(
            "Generated %d properties, %d sell / %d purchase / %d rent cycles, %d transactions",
            summary["properties"],
            summary["sell_cycles"],
            summary["purchase_cycles"],
            summary["rent_cycles"],
            summary["transactions"],
        )
        return self.manager

    # -- steps -------------------------------------------------------------

    def _register_property(self, agent: Agent) -> Property:
        others = [a.agent_id for a in self.agents if a.agent_id != agent.agent_id]
        shared = self.rng.sample(others, k=1) if others and self.rng.random() < 0.2 else []
        generated = self._property_gen.generate(agent.agent_id, shared_with=shared)
        return self.manager.add_property(
            generated.address,
            generated.created_by,
            property_id=generated.property_id,
            title=generated.title,
            price=generated.price,
            shared_with=generated.shared_with,
            current_owner_id=generate_id("contact"),
            current_owner_name=self._property_gen.fake.name(),
            current_owner_type=OwnerType.CLIENT,
        )

    def _external_offers(self, sell: SellCycle) -> None:
        """Outside buyers bid on a listing; the best bid may close."""
        offers = [
            self.manager.sell.add_offer(
                sell.cycle_id,
                buyer_name=self._cycle_gen.fake.name(),
                offer_amount=round_to(float(sell.asking_price) * self.rng.uniform(0.85, 1.0), 10_000),
            )
            for _ in range(self.rng.randint(0, 3))
        ]

        if offers and self.rng.random() < self.close_rate:
            best = max(offers, key=lambda offer: offer.offer_amount)
            self.manager.sell.accept_offer(sell.cycle_id, best.offer_id)
            result = self.manager.complete_sale(sell.cycle_id, best.offer_amount)
            if not result.success:
                logger.warning("Sale of %s failed: %s", sell.cycle_id, result.error)
        elif self.rng.random() < self.cancel_rate:
            self.manager.cancel_cycle(CycleType.SELL, sell.cycle_id, "Seller withdrew listing")

    def _internal_offer(self, prop: Property, sell: SellCycle) -> None:
        """One of our own purchase cycles bids on our own listing and stays live."""
        buyer_agent = self.rng.choice(self.agents)
        data = self._cycle_gen.purchase_cycle_data(prop, buyer_agent, PurchaserType.CLIENT)
        purchase = self.manager.create_cycle(CycleType.PURCHASE, **data)
        result = self.manager.send_offer_to_sell_cycle(purchase.cycle_id, sell.cycle_id)
        if not result.success:
            logger.warning("Internal offer on %s failed: %s", sell.cycle_id, result.error)

    def _acquisition(self, prop: Property, agent: Agent) -> None:
        """Agency, investor or client buys an off-market property."""
        purchase = self.manager.create_cycle(CycleType.PURCHASE, **self._cycle_gen.purchase_cycle_data(prop, agent))
        if self.rng.random() < self.close_rate:
            final_price = round_to(float(purchase.offer_amount) * self.rng.uniform(0.97, 1.03), 10_000)
            result = self.manager.complete_purchase(purchase.cycle_id, final_price)
            if not result.success:
                logger.warning("Purchase %s failed: %s", purchase.cycle_id, result.error)

    def _rental(self, prop: Property, agent: Agent) -> None:
        rent = self.manager.create_cycle(CycleType.RENT, **self._cycle_gen.rent_cycle_data(prop, agent))
        applications = [
            self.manager.rent.add_application(
                rent.cycle_id,
                tenant_name=self._cycle_gen.fake.name(),
                tenant_contact=self._cycle_gen.fake.phone_number(),
                offered_rent=rent.monthly_rent,
            )
            for _ in range(self.rng.randint(0, 3))
        ]
        if not applications or self.rng.random() >= 0.6:
            return

        chosen = self.rng.choice(applications)
        self.manager.rent.sign_lease(rent.cycle_id, application_id=chosen.application_id)
        first = rent.rent_payments[0]
        paid = first.amount if self.rng.random() < 0.8 else (first.amount / 2).quantize(Decimal("0.01"))
        self.manager.rent.record_rent_payment(rent.cycle_id, first.month, paid)

    # -- outputs -----------------------------------------------------------

    def export(self, sinks: list[Any]) -> None:
        """Export generated entities to sinks.

        Parameters
        ----------
        sinks : list[Any]
            Sink instances (ConsoleSink, JsonFileSink, KafkaSink).
        """
        store = self.manager.store
        for sink in sinks:
            sink.write_batch("properties", store.properties.all())
            sink.write_batch("sell_cycles", store.sell_cycles.all())
            sink.write_batch("purchase_cycles", store.purchase_cycles.all())
            sink.write_batch("rent_cycles", store.rent_cycles.all())
            sink.write_batch("transactions", store.transactions.all())
            sink.write_batch("deals", store.deals.all())

        logger.info("Exported brokerage portfolio to %d sinks", len(sinks))

    def get_portfolio_summary(self) -> dict[str, Any]:
        """Get summary statistics for the generated book.

        Returns
        -------
        dict[str, Any]
            Portfolio summary statistics.
        """
        store = self.manager.store
        transactions = store.transactions.all()
        if not store.properties.all():
            return {}

        by_type: dict[str, int] = {}
        for transaction in transactions:
            kind = transaction.transaction_type.value
            by_type[kind] = by_type.get(kind, 0) + 1

        status_labels: dict[str, int] = {}
        for prop in store.properties:
            status_labels[prop.status_label] = status_labels.get(prop.status_label, 0) + 1

        return {
            "total_properties": len(store.properties),
            "agents": len(self.agents),
            "transactions_by_type": by_type,
            "total_commission": float(
                sum((t.commission_amount for t in transactions), Decimal("0"))
            ),
            "property_status_distribution": status_labels,
            "internal_matches": len(self.manager.detect_internal_matches()),
        }
