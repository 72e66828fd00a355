"""Tests for config and logging."""

import json
import logging
import os
from decimal import Decimal
from pathlib import Path
from unittest.mock import patch

from estate_cycles.config import AgencyConfig, EngineConfig, KafkaConfig, StorageConfig
from estate_cycles.logging import ContextFormatter, JsonFormatter, get_logger, log_fields, setup_logging


class TestKafkaConfig:
    """Tests for KafkaConfig."""

    def test_default_values(self) -> None:
        config = KafkaConfig()

        assert config.bootstrap_servers == "localhost:9092"
        assert config.acks == "all"
        assert config.batch_size == 16384
        assert config.linger_ms == 5
        assert config.compression == "snappy"
        assert config.retries == 3
        assert config.topic_prefix == "brokerage"


class TestAgencyAndStorageConfig:
    """Tests for AgencyConfig and StorageConfig."""

    def test_agency_defaults(self) -> None:
        config = AgencyConfig()

        assert config.agency_id == "AGENCY"
        assert config.agency_name == "Agency Inventory"
        assert config.default_commission_rate == Decimal("2")
        assert config.share_tolerance == Decimal("0.01")

    def test_storage_defaults(self) -> None:
        config = StorageConfig()

        assert config.store_path == Path("output") / "brokerage.json"
        assert config.events_dir == Path("output") / "events"
        assert config.pretty_json is False


class TestEngineConfig:
    """Tests for EngineConfig."""

    def test_default_values(self) -> None:
        config = EngineConfig()

        assert isinstance(config.kafka, KafkaConfig)
        assert isinstance(config.storage, StorageConfig)
        assert isinstance(config.agency, AgencyConfig)
        assert config.seed is None
        assert config.log_level == "INFO"

    def test_from_env_defaults(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            config = EngineConfig.from_env()

        assert config.kafka.bootstrap_servers == "localhost:9092"
        assert config.agency.agency_id == "AGENCY"
        assert config.seed is None

    def test_from_env_custom(self) -> None:
        env = {
            "KAFKA_BOOTSTRAP_SERVERS": "kafka:29092",
            "KAFKA_TOPIC_PREFIX": "realty",
            "STORE_PATH": "/tmp/store.json",
            "PRETTY_JSON": "true",
            "AGENCY_ID": "ACME",
            "AGENCY_NAME": "Acme Realty",
            "DEFAULT_COMMISSION_RATE": "2.5",
            "SEED": "7",
            "LOG_LEVEL": "DEBUG",
        }
        with patch.dict(os.environ, env, clear=True):
            config = EngineConfig.from_env()

        assert config.kafka.bootstrap_servers == "kafka:29092"
        assert config.kafka.topic_prefix == "realty"
        assert config.storage.store_path == Path("/tmp/store.json")
        assert config.storage.pretty_json is True
        assert config.agency.agency_id == "ACME"
        assert config.agency.agency_name == "Acme Realty"
        assert config.agency.default_commission_rate == Decimal("2.5")
        assert config.seed == 7
        assert config.log_level == "DEBUG"


class TestLogging:
    """Tests for logging helpers."""

    def test_setup_logging_standard(self) -> None:
        setup_logging("DEBUG")

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert logging.getLogger("estate_cycles").level == logging.DEBUG
        assert logging.getLogger("confluent_kafka").level == logging.WARNING

    def test_setup_logging_json(self) -> None:
        setup_logging("INFO", format_type="json")

        handler = logging.getLogger().handlers[0]
        assert isinstance(handler.formatter, JsonFormatter)

    def test_setup_logging_unknown_level_falls_back_to_info(self) -> None:
        setup_logging("NOPE")

        assert logging.getLogger().level == logging.INFO

    def test_get_logger(self) -> None:
        logger = get_logger("estate_cycles.test")

        assert logger.name == "estate_cycles.test"

    def test_log_fields_drops_none(self) -> None:
        assert log_fields(cycle_id="sell-1", property_id=None) == {"extra": {"cycle_id": "sell-1"}}

    def test_json_formatter_merges_fields(self) -> None:
        record = logging.LogRecord(
            name="estate_cycles.cycles",
            level=logging.INFO,
            pathname=__file__,
            lineno=1,
            msg="Created %s cycle",
            args=("sell",),
            exc_info=None,
        )
        for key, value in log_fields(cycle_id="sell-1").items():
            setattr(record, key, value)

        output = json.loads(JsonFormatter().format(record))

        assert output["level"] == "INFO"
        assert output["logger"] == "estate_cycles.cycles"
        assert output["message"] == "Created sell cycle"
        assert output["cycle_id"] == "sell-1"
        assert "timestamp" in output

    def test_json_formatter_with_exception(self) -> None:
        try:
            raise ValueError("boom")
        except ValueError:
            import sys

            exc_info = sys.exc_info()

        record = logging.LogRecord(
            name="test",
            level=logging.ERROR,
            pathname=__file__,
            lineno=1,
            msg="failed",
            args=(),
            exc_info=exc_info,
        )

        output = json.loads(JsonFormatter().format(record))

        assert "ValueError: boom" in output["exception"]

    def test_standard_formatter_appends_context(self) -> None:
        record = logging.LogRecord(
            name="estate_cycles.cycles",
            level=logging.INFO,
            pathname=__file__,
            lineno=1,
            msg="Cancelled sell cycle",
            args=(),
            exc_info=None,
        )
        for key, value in log_fields(cycle_id="sell-1", reason="withdrawn").items():
            setattr(record, key, value)

        line = ContextFormatter().format(record)

        assert "| INFO     | estate_cycles.cycles | Cancelled sell cycle" in line
        assert line.endswith("| cycle_id=sell-1 reason=withdrawn")

    def test_standard_formatter_without_context(self) -> None:
        record = logging.LogRecord(
            name="test", level=logging.WARNING, pathname=__file__, lineno=1, msg="plain", args=(), exc_info=None
        )

        assert ContextFormatter().format(record).endswith("| test | plain")

    def test_setup_logging_standard_uses_context_formatter(self) -> None:
        setup_logging("INFO")

        assert isinstance(logging.getLogger().handlers[0].formatter, ContextFormatter)
