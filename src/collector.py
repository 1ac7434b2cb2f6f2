"""Collection loop — periodic sweeps over repository transaction logs."""

import logging
import threading
import time
from dataclasses import dataclass, field

from src.metrics import TransactionMetrics
from src.parser import ParseError, parse_transaction_line
from src.reader import read_last_line, transactions_path

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 60.0


@dataclass
class SweepResult:
    updated: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)  # not reached before shutdown


class CollectionLoop:
    """Sweeps every repository once on start, then once per interval.

    Repositories are processed sequentially in configuration order. A
    failure in one repository is logged and never affects the others or
    the values already in the sink.
    """

    def __init__(
        self,
        repos: list[str],
        metrics: TransactionMetrics,
        shutdown_event: threading.Event,
        interval: float = DEFAULT_INTERVAL,
    ):
        self._repos = list(repos)
        self._metrics = metrics
        self._shutdown = shutdown_event
        self._interval = interval
        self._thread: threading.Thread | None = None
        self.sweep_count = 0

    def start(self):
        """Run the loop in a background thread."""
        self._thread = threading.Thread(target=self.run, name="collection-loop", daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 5.0):
        """Signal the loop to stop and wait for the thread to exit."""
        self._shutdown.set()
        if self._thread:
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                logger.warning("Collection loop did not stop within %.1fs", timeout)

    def run(self):
        """Sweep on a fixed-rate schedule until shutdown.

        Ticks are anchored to a monotonic clock, so sweep duration does not
        push later sweeps back. Ticks missed by a slow sweep are dropped.
        """
        next_tick = time.monotonic() + self._interval
        if not self._shutdown.is_set():
            self.sweep()
        # Event.wait returns True as soon as shutdown is set
        while not self._shutdown.wait(max(0.0, next_tick - time.monotonic())):
            self.sweep()
            next_tick = self._next_tick(next_tick, time.monotonic())
        logger.info("Stopping metrics update loop.")

    def _next_tick(self, previous: float, now: float) -> float:
        next_tick = previous + self._interval
        if next_tick <= now:
            missed = int((now - next_tick) // self._interval) + 1
            next_tick += missed * self._interval
        return next_tick

    def sweep(self) -> SweepResult:
        result = SweepResult()
        for i, repo in enumerate(self._repos):
            if self._shutdown.is_set():
                result.skipped.extend(self._repos[i:])
                logger.info("Shutdown requested, skipping %d repo(s)", len(result.skipped))
                break
            if self.update_repository(repo):
                result.updated.append(repo)
            else:
                result.failed.append(repo)
        self.sweep_count += 1
        logger.debug(
            "Sweep %d: %d updated, %d failed, %d skipped",
            self.sweep_count, len(result.updated), len(result.failed), len(result.skipped),
        )
        return result

    def update_repository(self, repo: str) -> bool:
        """Read, parse and publish one repository. Returns True on success."""
        # read_last_line closes the file before parsing starts
        try:
            last_line = read_last_line(transactions_path(repo))
        except OSError as e:
            logger.warning("Failed to read transactions file for repo %s: %s", repo, e)
            return False

        try:
            record = parse_transaction_line(last_line)
        except ParseError as e:
            logger.warning("Failed to parse transactions file for repo %s: %s", repo, e)
            return False

        self._metrics.record(repo, record)
        logger.debug(
            "Repo %s: transaction %d at %d", repo, record.sequence_number, record.timestamp
        )
        return True
