"""
Peer data model.

Mirrors the objects Geth returns from admin_peers. Only the fields we
display are modelled; everything under `protocols` is kept as the raw
decoded JSON so protocol-specific details pass through untouched.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Tuple, Union

# Anything json.loads can hand back
ProtocolValue = Union[None, bool, int, float, str, List[Any], Dict[str, Any]]


def _expect(raw: Mapping[str, Any], key: str, kind: type, default: Any) -> Any:
    value = raw.get(key, default)
    if value is None:
        return default
    if not isinstance(value, kind):
        raise ValueError(
            f"field {key!r}: expected {kind.__name__}, got {type(value).__name__}"
        )
    return value


@dataclass(frozen=True)
class PeerRecord:
    """One connected peer as reported by the node."""

    id: str
    name: str = ""
    caps: Tuple[str, ...] = ()
    local_address: str = ""
    remote_address: str = ""
    protocols: Mapping[str, ProtocolValue] = field(default_factory=dict)

    @classmethod
    def from_rpc(cls, raw: Any) -> "PeerRecord":
        """Build a record from one element of the admin_peers result.

        Missing keys fall back to empty values. Keys present with the
        wrong type raise ValueError.
        """
        if not isinstance(raw, dict):
            raise ValueError(f"peer entry must be an object, got {type(raw).__name__}")

        caps = _expect(raw, "caps", list, [])
        for cap in caps:
            if not isinstance(cap, str):
                raise ValueError(f"field 'caps': expected list of str, got {cap!r}")

        network = _expect(raw, "network", dict, {})
        protocols = _expect(raw, "protocols", dict, {})

        return cls(
            id=_expect(raw, "id", str, ""),
            name=_expect(raw, "name", str, ""),
            caps=tuple(caps),
            local_address=_expect(network, "localAddress", str, ""),
            remote_address=_expect(network, "remoteAddress", str, ""),
            protocols=MappingProxyType(dict(protocols)),
        )

    def summary(self) -> dict:
        """Return a plain dict for JSON output."""
        return {
            "id": self.id,
            "name": self.name,
            "caps": list(self.caps),
            "local_address": self.local_address,
            "remote_address": self.remote_address,
            "protocols": dict(self.protocols),
        }


@dataclass(frozen=True)
class PeerSnapshot:
    """The result of one admin_peers call, in the order the node returned it."""

    peers: Tuple[PeerRecord, ...] = ()
    received_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __len__(self) -> int:
        return len(self.peers)

    def __iter__(self) -> Iterator[PeerRecord]:
        return iter(self.peers)

    def summary(self) -> dict:
        return {
            "timestamp": self.received_at.isoformat(),
            "peer_count": len(self.peers),
            "peers": [peer.summary() for peer in self.peers],
        }
