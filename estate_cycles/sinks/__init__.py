"""Output sinks for domain events and exported entities."""

from estate_cycles.sinks.console import ConsoleSink
from estate_cycles.sinks.json_file import JsonFileSink
from estate_cycles.sinks.kafka import KafkaSink, ProducerConfig

__all__ = ["ConsoleSink", "JsonFileSink", "KafkaSink", "ProducerConfig"]
