"""Configuration management for estate-cycles."""

from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path


@dataclass
class KafkaConfig:
    """Kafka producer configuration for the domain event sink."""

    bootstrap_servers: str = "localhost:9092"
    acks: str = "all"
    batch_size: int = 16384
    linger_ms: int = 5
    compression: str = "snappy"
    retries: int = 3
    topic_prefix: str = "brokerage"


@dataclass
class StorageConfig:
    """Where the brokerage store is persisted as JSON."""

    store_path: Path = field(default_factory=lambda: Path("output") / "brokerage.json")
    events_dir: Path = field(default_factory=lambda: Path("output") / "events")
    pretty_json: bool = False


@dataclass
class AgencyConfig:
    """Identity of the agency and its commission defaults."""

    agency_id: str = "AGENCY"
    agency_name: str = "Agency Inventory"
    default_commission_rate: Decimal = Decimal("2")
    share_tolerance: Decimal = Decimal("0.01")


@dataclass
class EngineConfig:
    """Main configuration for estate-cycles."""

    kafka: KafkaConfig = field(default_factory=KafkaConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    agency: AgencyConfig = field(default_factory=AgencyConfig)
    seed: int | None = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Create config from environment variables."""
        import os

        kafka = KafkaConfig(
            bootstrap_servers=os.getenv("KAFKA_BOOTSTRAP_SERVERS", "localhost:9092"),
            acks=os.getenv("KAFKA_ACKS", "all"),
            topic_prefix=os.getenv("KAFKA_TOPIC_PREFIX", "brokerage"),
        )

        storage = StorageConfig(
            store_path=Path(os.getenv("STORE_PATH", "output/brokerage.json")),
            events_dir=Path(os.getenv("EVENTS_DIR", "output/events")),
            pretty_json=os.getenv("PRETTY_JSON", "false").lower() == "true",
        )

        agency = AgencyConfig(
            agency_id=os.getenv("AGENCY_ID", "AGENCY"),
            agency_name=os.getenv("AGENCY_NAME", "Agency Inventory"),
            default_commission_rate=Decimal(os.getenv("DEFAULT_COMMISSION_RATE", "2")),
        )

        return cls(
            kafka=kafka,
            storage=storage,
            agency=agency,
            seed=int(os.getenv("SEED")) if os.getenv("SEED") else None,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
