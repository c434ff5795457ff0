"""
Source that reads from the mock Geth node.
Used for local development on machines without a running node.
"""

from peermon.collector.base import PeerSource
from peermon.mock.generator import MockGethNode
from peermon.peers import PeerRecord, PeerSnapshot


class MockCollector(PeerSource):
    """Wraps the mock generator as a standard source."""

    def __init__(self, seed: int = 42):
        self._node = MockGethNode(seed=seed)

    def fetch(self) -> PeerSnapshot:
        peers = tuple(PeerRecord.from_rpc(entry) for entry in self._node.admin_peers())
        return PeerSnapshot(peers=peers)

    def name(self) -> str:
        return "Mock Geth (simulated mainnet node)"
