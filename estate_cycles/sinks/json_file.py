"""JSON Lines file sink for exporting domain events."""

import json
from pathlib import Path
from typing import Any

from estate_cycles.sinks.serialization import to_dict


class JsonFileSink:
    """Append records to one JSON Lines file per topic."""

    def __init__(self, output_dir: str | Path) -> None:
        """Initialize JSON file sink.

        Parameters
        ----------
        output_dir : str | Path
            Directory to write ``.jsonl`` files.
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self._counts: dict[str, int] = {}

    def path_for(self, topic: str) -> Path:
        """Return the file a topic is written to (dots become underscores)."""
        return self.output_dir / (topic.replace(".", "_") + ".jsonl")

    def send(self, topic: str, record: Any, key: str | None = None) -> None:
        """Append a single record."""
        self.write_batch(topic, [record])

    def write_batch(self, topic: str, records: list[Any]) -> None:
        """Append a batch of records to the topic's file."""
        with open(self.path_for(topic), "a", encoding="utf-8") as f:
            for record in records:
                f.write(json.dumps(to_dict(record), ensure_ascii=False, default=str) + "\n")

        self._counts[topic] = self._counts.get(topic, 0) + len(records)

    def close(self) -> None:
        """Print summary."""
        print(f"JSON Lines written to: {self.output_dir}")
        for topic, count in self._counts.items():
            print(f"  {topic}: {count} records")
