"""BorgBackup exporter — publishes last-transaction gauges for each repository."""

import argparse
import logging
import os
import signal
import sys
import threading

from src.collector import CollectionLoop
from src.config import ConfigError, load_config
from src.metrics import TransactionMetrics
from src.server import MetricsServer, create_metrics_app

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s [borg-exporter] %(levelname)s %(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)


def build_cli_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Prometheus exporter for BorgBackup repositories")
    parser.add_argument(
        "--config", default="config.json",
        help="Path to the configuration file (default: config.json)",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_cli_parser().parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigError as e:
        logger.error("Failed to load configuration: %s", e)
        return 1

    logger.info(
        "Config: %d repo(s), interval=%ds, listen=%s:%d%s",
        len(config.repos), config.ticker_interval, config.ip, config.port, config.endpoint,
    )

    shutdown_event = threading.Event()

    def _signal_handler(sig, _frame):
        logger.info("Received termination signal (signal %d). Shutting down...", sig)
        shutdown_event.set()

    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    metrics = TransactionMetrics()
    app = create_metrics_app(metrics, config.endpoint, repo_count=len(config.repos))
    try:
        server = MetricsServer(app, config.ip, config.port)
    except OSError as e:
        logger.error("HTTP server error: %s", e)
        return 1

    loop = CollectionLoop(
        list(config.repos), metrics, shutdown_event, interval=config.ticker_interval
    )

    logger.info("Starting Prometheus exporter on %s:%d%s", config.ip, server.port, config.endpoint)
    server.start()
    loop.start()

    try:
        while not shutdown_event.is_set():
            shutdown_event.wait(1)
    except KeyboardInterrupt:
        pass

    loop.stop(timeout=config.shutdown_grace)
    server.stop(grace=config.shutdown_grace)
    logger.info("Exporter stopped.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
