"""
HTTP listener serving /metrics for Prometheus scrapes.

Runs on its own daemon thread and handles each request on a fresh
thread, so a slow scrape never waits on the poll loop or on another
scrape.
"""

from __future__ import annotations

import logging
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Optional
from urllib.parse import urlsplit

from peermon.exporter.registry import PeerMetrics

log = logging.getLogger(__name__)

DEFAULT_METRICS_PORT = 8080


class MetricsBindError(Exception):
    """The metrics listener could not be bound."""


class _ScrapeHandler(BaseHTTPRequestHandler):

    def _reply(self, status: int, body: bytes, content_type: str):
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def do_GET(self):
        path = urlsplit(self.path).path
        metrics: PeerMetrics = self.server.metrics

        if path == "/metrics":
            self._reply(200, metrics.export_text().encode("utf-8"), metrics.content_type)
        elif path == "/healthz":
            self._reply(200, b"ok\n", "text/plain; charset=utf-8")
        else:
            self._reply(404, b"not found\n", "text/plain; charset=utf-8")

    def log_message(self, format, *args):
        log.debug("%s - %s", self.address_string(), format % args)


class MetricsExposer:

    def __init__(self, metrics: PeerMetrics, host: str = "", port: int = DEFAULT_METRICS_PORT):
        self._metrics = metrics
        self._host = host
        self._port = port
        self._server: Optional[ThreadingHTTPServer] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        """The bound port (differs from the requested one when 0 was asked for)."""
        if self._server is None:
            return self._port
        return self._server.server_address[1]

    def start(self):
        """Bind the listener and start serving in the background."""
        try:
            server = ThreadingHTTPServer((self._host, self._port), _ScrapeHandler)
        except OSError as e:
            raise MetricsBindError(
                f"cannot listen on {self._host or '*'}:{self._port}: {e}"
            ) from e

        server.metrics = self._metrics
        self._server = server
        self._thread = threading.Thread(
            target=server.serve_forever, name="metrics-server", daemon=True
        )
        self._thread.start()
        log.info("Starting metrics server on %s:%d", self._host or "*", self.port)

    def stop(self):
        if self._server is None:
            return
        self._server.shutdown()
        self._server.server_close()
        self._thread.join(timeout=5)
        self._server = None
        log.info("Metrics server stopped")
