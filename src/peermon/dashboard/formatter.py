"""Plain-text and JSONL renderings of a peer snapshot for the log stream."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import List, Optional

from peermon.peers import PeerRecord, PeerSnapshot

log = logging.getLogger(__name__)

SEPARATOR = "=" * 32


def _format_protocol(value) -> str:
    """Indented JSON, continuation lines nested under the peer block."""
    text = json.dumps(value, indent=2, sort_keys=True, allow_nan=False)
    return text.replace("\n", "\n  ")


def _format_peer(index: int, peer: PeerRecord) -> List[str]:
    lines = [
        f"Peer {index}:",
        f"  ID: {peer.id}",
        f"  Name: {peer.name}",
        f"  Remote Address: {peer.remote_address}",
        f"  Capabilities: [{' '.join(peer.caps)}]",
    ]

    if "eth" in peer.protocols:
        try:
            lines.append(f"  ETH Protocol: {_format_protocol(peer.protocols['eth'])}")
        except (TypeError, ValueError) as e:
            log.warning("Could not render eth protocol data for peer %s: %s", peer.id, e)
            lines.append(f"  ETH Protocol: <unrenderable: {e}>")

    return lines


def format_snapshot(snapshot: PeerSnapshot, now: Optional[datetime] = None) -> str:
    """Render a snapshot as a multi-line block, peers numbered from 1 in node order."""
    now = now or datetime.now()

    lines = [
        "",
        f"=== Connected Peers at {now.strftime('%Y-%m-%d %H:%M:%S')} ===",
        f"Total Peers: {len(snapshot)}",
        "",
    ]
    for index, peer in enumerate(snapshot, start=1):
        lines.extend(_format_peer(index, peer))
        lines.append("")
    lines.append(SEPARATOR)

    return "\n".join(lines)


def format_jsonl(snapshot: PeerSnapshot, source: str) -> str:
    """One JSON object per snapshot, for log aggregators that can't read the text block."""
    record = snapshot.summary()
    record["source"] = source
    # non-JSON payload values are stringified
    return json.dumps(record, default=str)
