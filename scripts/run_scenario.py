#!/usr/bin/env python3
"""Run the brokerage portfolio scenario through the cycle engine.

This script registers properties, drives them through sell, purchase and
rent cycles, then reports cycle statistics and internal matches. Domain
events can be streamed to JSON Lines files or Kafka while the scenario
runs, and the final store can be saved as a JSON document.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from estate_cycles.config import EngineConfig
from estate_cycles.exceptions import EstateCyclesError
from estate_cycles.logging import setup_logging
from estate_cycles.scenarios import BrokeragePortfolioScenario
from estate_cycles.sinks import ConsoleSink, JsonFileSink, KafkaSink, ProducerConfig
from estate_cycles.sinks.serialization import to_dict
from estate_cycles.store import save_store

logger = logging.getLogger(__name__)


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Run a brokerage portfolio through sell, purchase and rent cycles"
    )
    parser.add_argument(
        "--properties",
        type=int,
        default=50,
        help="Number of properties to register (default: 50)",
    )
    parser.add_argument(
        "--agents",
        type=int,
        default=5,
        help="Number of agents (default: 5)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed (default: SEED env var, else random)",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Save the final store as JSON to this path",
    )
    parser.add_argument(
        "--events-dir",
        type=Path,
        default=None,
        help="Append domain events as JSON Lines files in this directory",
    )
    parser.add_argument(
        "--kafka",
        action="store_true",
        help="Publish domain events to Kafka (KAFKA_BOOTSTRAP_SERVERS)",
    )
    parser.add_argument(
        "--print-events",
        action="store_true",
        help="Print every domain event to stdout",
    )
    parser.add_argument(
        "--log-format",
        choices=["standard", "json"],
        default="standard",
    )

    args = parser.parse_args()

    config = EngineConfig.from_env()
    setup_logging(config.log_level, args.log_format)

    scenario = BrokeragePortfolioScenario(
        num_properties=args.properties,
        num_agents=args.agents,
        seed=args.seed,
        config=config,
    )

    sinks = []
    if args.events_dir:
        sinks.append(JsonFileSink(args.events_dir))
    if args.print_events:
        sinks.append(ConsoleSink(pretty=False))
    if args.kafka:
        sinks.append(KafkaSink(ProducerConfig.from_kafka_config(config.kafka)))
    for sink in sinks:
        scenario.manager.events.add_sink(sink)

    try:
        manager = scenario.generate()
    except EstateCyclesError:
        logger.exception("Scenario failed")
        sys.exit(1)
    finally:
        for sink in sinks:
            sink.close()

    logger.info("=" * 60)
    logger.info("Cycle statistics")
    logger.info("=" * 60)
    print(json.dumps(to_dict(manager.get_all_cycle_stats()), indent=2))

    matches = manager.detect_internal_matches()
    logger.info("Internal matches: %d", len(matches))
    for match in matches[:10]:
        logger.info(
            "  %s | asking %s | best offer %s | gap %s%%",
            match.property_address,
            match.sell_cycle.asking_price,
            match.best_offer,
            match.gap_percentage,
        )

    print(json.dumps(to_dict(scenario.get_portfolio_summary()), indent=2))

    if args.output:
        path = save_store(manager.store, args.output, pretty=config.storage.pretty_json)
        logger.info("Store saved to %s", path)


if __name__ == "__main__":
    main()
