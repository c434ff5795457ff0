"""
Fixed-interval poll loop.

Each tick calls the peer source once. A good result updates the gauge
and logs a snapshot block. A failed call is only logged; the gauge keeps
its last value and is never reset to zero.

Ticks sit on a fixed grid (start, start + interval, ...) instead of
sleeping a full interval after each call. If a call overruns its slot
the next tick starts as soon as it returns, and any grid points it
swallowed are skipped, not replayed.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

from peermon.collector.base import PeerSource
from peermon.collector.rpc_client import RemoteQueryError
from peermon.dashboard.formatter import format_snapshot
from peermon.exporter.registry import PeerMetrics
from peermon.peers import PeerSnapshot

log = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 10.0


def _log_block(text: str):
    log.info("%s", text)


class PollingScheduler:

    def __init__(
        self,
        source: PeerSource,
        metrics: PeerMetrics,
        interval: float = DEFAULT_INTERVAL_SECONDS,
        render: Callable[[PeerSnapshot], str] = format_snapshot,
        emit: Callable[[str], None] = _log_block,
        clock: Callable[[], float] = time.monotonic,
        wait: Optional[Callable[[float], bool]] = None,
    ):
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")

        self._source = source
        self._metrics = metrics
        self._interval = interval
        self._render = render
        self._emit = emit
        self._clock = clock
        self._stopped = threading.Event()
        # wait(seconds) returns True when the loop should stop
        self._wait = wait or self._stopped.wait
        self.consecutive_failures = 0

    def tick(self) -> bool:
        """Run one poll cycle. Returns True if the gauge was updated."""
        try:
            snapshot = self._source.fetch()
        except RemoteQueryError as e:
            self.consecutive_failures += 1
            log.error(
                "Error fetching peers: %s (%d consecutive failures)",
                e, self.consecutive_failures,
            )
            return False
        except Exception:
            self.consecutive_failures += 1
            log.exception("Unexpected error while polling %s", self._source.name())
            return False

        self.consecutive_failures = 0
        self._metrics.set_peer_count(len(snapshot))
        try:
            self._emit(self._render(snapshot))
        except Exception:
            log.exception("Failed to write peer snapshot (gauge already updated)")
        return True

    def run(self, max_ticks: Optional[int] = None):
        """Poll until stop() is called (or max_ticks cycles have run)."""
        log.info(
            "Starting peer monitoring: source=%s, interval=%.1fs",
            self._source.name(), self._interval,
        )
        next_tick = self._clock()
        ticks = 0

        while not self._stopped.is_set():
            self.tick()
            ticks += 1
            if max_ticks is not None and ticks >= max_ticks:
                break

            next_tick += self._interval
            now = self._clock()
            if now >= next_tick:
                missed = int((now - next_tick) // self._interval)
                if missed:
                    log.warning("Poll overran its interval, skipping %d tick(s)", missed)
                next_tick += missed * self._interval
                continue

            if self._wait(next_tick - now):
                break

        log.info("Peer monitoring stopped after %d cycle(s)", ticks)

    def stop(self):
        self._stopped.set()
