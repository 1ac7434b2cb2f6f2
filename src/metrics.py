"""Thread-safe Prometheus sink for per-repository transaction gauges."""

import threading

from prometheus_client import CollectorRegistry, Gauge, generate_latest

from src.parser import TransactionRecord

TIMESTAMP_METRIC = "borgbackup_last_transaction_timestamp"
NUMBER_METRIC = "borgbackup_last_transaction_number"


class TransactionMetrics:
    """Owns its own registry; last write wins per repository.

    The collection loop is the only writer, scrapes read concurrently.
    Both gauges and the snapshot dict are guarded by one lock so a
    scrape never observes half of a repository update.
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        self._lock = threading.Lock()
        self.registry = registry if registry is not None else CollectorRegistry()
        self._timestamp = Gauge(
            TIMESTAMP_METRIC,
            "Unix timestamp of the last transaction in the BorgBackup repository",
            ["repo"],
            registry=self.registry,
        )
        self._number = Gauge(
            NUMBER_METRIC,
            "Number of the last transaction in the BorgBackup repository",
            ["repo"],
            registry=self.registry,
        )
        self._values: dict[str, dict[str, int]] = {}

    def set_timestamp(self, repo: str, timestamp: int):
        with self._lock:
            self._timestamp.labels(repo=repo).set(timestamp)
            self._values.setdefault(repo, {})["timestamp"] = timestamp

    def set_sequence_number(self, repo: str, sequence_number: int):
        with self._lock:
            self._number.labels(repo=repo).set(sequence_number)
            self._values.setdefault(repo, {})["sequence_number"] = sequence_number

    def record(self, repo: str, record: TransactionRecord):
        """Write both values for *repo* under a single lock acquisition."""
        with self._lock:
            self._timestamp.labels(repo=repo).set(record.timestamp)
            self._number.labels(repo=repo).set(record.sequence_number)
            self._values[repo] = {
                "timestamp": record.timestamp,
                "sequence_number": record.sequence_number,
            }

    def get(self, repo: str) -> TransactionRecord | None:
        """Return the last complete record written for *repo*, or None."""
        with self._lock:
            values = self._values.get(repo)
            if not values or len(values) < 2:
                return None
            return TransactionRecord(
                sequence_number=values["sequence_number"],
                timestamp=values["timestamp"],
            )

    def repos(self) -> list[str]:
        with self._lock:
            return sorted(self._values)

    def render(self) -> bytes:
        """Prometheus text exposition of the owned registry."""
        with self._lock:
            return generate_latest(self.registry)
