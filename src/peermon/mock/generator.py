"""
Mock Geth node.

Produces fake but realistic admin_peers payloads so we can develop and
test without a synced node. Shapes follow what Geth 1.13 returns on a
mainnet node with the default 50-peer limit.
"""

import math
import random

CLIENT_NAMES = [
    "Geth/v1.13.14-stable-2bd6bd01/linux-amd64/go1.21.7",
    "Geth/v1.13.15-stable-c5ba367e/linux-amd64/go1.21.6",
    "Nethermind/v1.25.4+20b10b35/linux-x64/dotnet8.0.2",
    "erigon/v2.58.2-1fd7c7a9/linux-amd64/go1.21.5",
    "besu/v24.1.2/linux-x86_64/openjdk-java-17",
    "reth/v0.2.0-beta.2-4f3f5067/x86_64-unknown-linux-gnu",
]


class MockGethNode:

    def __init__(self, seed: int = 42, max_peers: int = 50):
        self._rng = random.Random(seed)
        self._tick = 0
        self.max_peers = max_peers

    def _peer(self) -> dict:
        rng = self._rng
        pubkey = "%0128x" % rng.getrandbits(512)
        node_id = "%064x" % rng.getrandbits(256)
        remote_ip = "%d.%d.%d.%d" % tuple(rng.randint(1, 254) for _ in range(4))
        inbound = rng.random() < 0.4

        # A few peers are still mid-handshake and report a bare string
        if rng.random() < 0.1:
            eth = "handshake"
        else:
            eth = {"version": rng.choice([67, 68])}

        return {
            "enode": f"enode://{pubkey}@{remote_ip}:30303",
            "id": node_id,
            "name": rng.choice(CLIENT_NAMES),
            "caps": ["eth/67", "eth/68", "snap/1"],
            "network": {
                "localAddress": f"10.0.{rng.randint(0, 3)}.{rng.randint(2, 250)}:30303",
                "remoteAddress": f"{remote_ip}:{30303 if not inbound else rng.randint(30000, 60000)}",
                "inbound": inbound,
                "trusted": False,
                "static": False,
            },
            "protocols": {
                "eth": eth,
                "snap": {"version": 1},
            },
        }

    def admin_peers(self) -> list:
        """Generate one admin_peers result, advancing the simulation clock."""
        self._tick += 1

        # Peer count drifts around 60% of the limit, with occasional dips
        base = self.max_peers * (0.6 + 0.25 * math.sin(self._tick * 0.07))
        dip = self._rng.randint(5, 15) if self._rng.random() > 0.92 else 0
        count = max(0, min(self.max_peers, int(base) - dip))

        return [self._peer() for _ in range(count)]
