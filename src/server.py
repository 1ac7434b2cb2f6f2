"""Flask metrics endpoint served from a background werkzeug thread."""

import logging
import threading

from flask import Flask, Response, jsonify
from prometheus_client import CONTENT_TYPE_LATEST
from werkzeug.serving import make_server

from src.metrics import TransactionMetrics

logger = logging.getLogger(__name__)


def create_metrics_app(metrics: TransactionMetrics, endpoint: str = "/metrics",
                       repo_count: int = 0) -> Flask:
    app = Flask(__name__)

    @app.route(endpoint)
    def metrics_view():
        return Response(metrics.render(), content_type=CONTENT_TYPE_LATEST)

    @app.route("/health")
    def health():
        return jsonify(status="ok", repos=repo_count)

    return app


class MetricsServer:
    """Threaded WSGI server with bounded-grace shutdown."""

    def __init__(self, app: Flask, host: str, port: int):
        self._server = make_server(host, port, app, threaded=True)
        self._thread: threading.Thread | None = None

    @property
    def port(self) -> int:
        return self._server.port

    def start(self):
        self._thread = threading.Thread(
            target=self._server.serve_forever, name="metrics-server", daemon=True
        )
        self._thread.start()

    def stop(self, grace: float = 5.0):
        """Stop accepting requests, giving in-flight ones up to *grace* seconds."""
        if self._thread is None:
            return
        stopper = threading.Thread(target=self._server.shutdown, daemon=True)
        stopper.start()
        stopper.join(timeout=grace)
        self._thread.join(timeout=max(0.0, grace))
        if stopper.is_alive() or self._thread.is_alive():
            logger.error("Error shutting down server: still running after %.1fs", grace)
        else:
            self._server.server_close()
