"""
Peer-count gauge and its Prometheus exposition.

Uses a private CollectorRegistry so the scrape output holds only our
gauge, not the default process/platform collectors. prometheus_client
guards each gauge value with a mutex, so a set from the poll loop and a
read from a scrape thread never see a half-written value.
"""

from __future__ import annotations

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Gauge, generate_latest

PEER_COUNT_METRIC = "geth_peer_count"
PEER_COUNT_HELP = "Number of connected peers"


class PeerMetrics:

    content_type = CONTENT_TYPE_LATEST

    def __init__(self):
        self._registry = CollectorRegistry()
        self._peer_count = Gauge(PEER_COUNT_METRIC, PEER_COUNT_HELP, registry=self._registry)

    def set_peer_count(self, count: int):
        if count < 0:
            raise ValueError(f"peer count must be non-negative, got {count}")
        self._peer_count.set(count)

    @property
    def peer_count(self) -> float:
        return self._registry.get_sample_value(PEER_COUNT_METRIC)

    def export_text(self) -> str:
        """Render the registry in the Prometheus text exposition format."""
        return generate_latest(self._registry).decode("utf-8")
