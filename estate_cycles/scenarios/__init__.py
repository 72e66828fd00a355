"""Scenarios for generating realistic brokerage data sets."""

from estate_cycles.scenarios.brokerage import BrokeragePortfolioScenario

__all__ = ["BrokeragePortfolioScenario"]
