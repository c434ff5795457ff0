"""
JSON-RPC client for a live Geth node. Calls admin_peers over HTTP and
maps the result into a PeerSnapshot.

The client is built once at startup and reused for every poll. It never
retries on its own; a failed call surfaces as RemoteQueryError and the
scheduler decides what to do next.
"""

from __future__ import annotations

import itertools
import logging
from datetime import datetime, timezone
from typing import Any, Optional

import httpx

from peermon.collector.base import PeerSource
from peermon.peers import PeerRecord, PeerSnapshot

log = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


class RPCConnectError(Exception):
    """The RPC endpoint can't be used at all (bad URL, unsupported scheme)."""


class RemoteQueryError(Exception):
    """A single remote call failed. The original error is chained as __cause__."""

    def __init__(self, method: str, reason: Any):
        self.method = method
        self.reason = reason
        super().__init__(f"failed to call {method}: {reason}")


class GethRPCClient(PeerSource):

    def __init__(
        self,
        url: str,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        try:
            parsed = httpx.URL(url)
        except (httpx.InvalidURL, TypeError) as e:
            raise RPCConnectError(f"invalid RPC URL {url!r}: {e}") from e

        if parsed.scheme not in ("http", "https"):
            raise RPCConnectError(
                f"unsupported RPC URL scheme {parsed.scheme!r} in {url!r} (expected http or https)"
            )
        if not parsed.host:
            raise RPCConnectError(f"RPC URL {url!r} has no host")

        self._url = url
        self._timeout = timeout_seconds
        self._client = httpx.Client(timeout=self._timeout, transport=transport)
        self._ids = itertools.count(1)

    def call(self, method: str, *params: Any) -> Any:
        """Issue one JSON-RPC request and return its `result`."""
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": list(params),
        }
        log.debug("RPC request %s id=%d", method, payload["id"])

        try:
            response = self._client.post(self._url, json=payload)
            response.raise_for_status()
            body = response.json()
        except httpx.TimeoutException as e:
            raise RemoteQueryError(method, f"timed out after {self._timeout:g}s") from e
        except httpx.HTTPError as e:
            raise RemoteQueryError(method, e) from e
        except (ValueError, RecursionError) as e:
            raise RemoteQueryError(method, f"invalid JSON response: {e}") from e

        if not isinstance(body, dict):
            raise RemoteQueryError(method, "response is not a JSON-RPC object")

        error = body.get("error")
        if error is not None:
            if isinstance(error, dict):
                reason = f"rpc error {error.get('code')}: {error.get('message')}"
            else:
                reason = f"rpc error: {error}"
            raise RemoteQueryError(method, reason)

        if "result" not in body:
            raise RemoteQueryError(method, "response has no result")

        return body["result"]

    def fetch(self) -> PeerSnapshot:
        """Call admin_peers and decode every entry, or fail as a whole."""
        result = self.call("admin_peers")

        if not isinstance(result, list):
            raise RemoteQueryError(
                "admin_peers", f"expected a list of peers, got {type(result).__name__}"
            )

        try:
            peers = tuple(PeerRecord.from_rpc(entry) for entry in result)
        except ValueError as e:
            raise RemoteQueryError("admin_peers", f"malformed peer entry: {e}") from e

        return PeerSnapshot(peers=peers, received_at=datetime.now(timezone.utc))

    def name(self) -> str:
        return f"Geth RPC ({self._url})"

    def close(self):
        self._client.close()
