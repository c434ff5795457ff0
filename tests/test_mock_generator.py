"""Basic sanity checks for the mock Geth node and its JSON-RPC front end."""

from peermon.collector.mock_collector import MockCollector
from peermon.mock.fake_geth_server import handle_rpc
from peermon.mock.generator import MockGethNode
from peermon.peers import PeerRecord


def test_admin_peers_returns_valid_entries():
    node = MockGethNode(seed=42)
    peers = node.admin_peers()

    assert 0 < len(peers) <= node.max_peers
    for raw in peers:
        record = PeerRecord.from_rpc(raw)
        assert len(record.id) == 64
        assert record.caps
        assert record.remote_address
        assert "eth" in record.protocols


def test_peer_count_stays_within_limit():
    node = MockGethNode(seed=7, max_peers=25)
    counts = [len(node.admin_peers()) for _ in range(100)]

    assert all(0 <= c <= 25 for c in counts)
    assert len(set(counts)) > 1


def test_deterministic_with_same_seed():
    node_a = MockGethNode(seed=99)
    node_b = MockGethNode(seed=99)

    assert node_a.admin_peers() == node_b.admin_peers()


def test_some_peers_report_handshake():
    node = MockGethNode(seed=42)
    eth_values = [p["protocols"]["eth"] for _ in range(10) for p in node.admin_peers()]

    assert "handshake" in eth_values
    assert any(isinstance(v, dict) for v in eth_values)


def test_mock_collector_produces_snapshots():
    collector = MockCollector(seed=1)
    snapshot = collector.fetch()

    assert len(snapshot) > 0
    assert "Mock" in collector.name()
    collector.close()


def test_handle_rpc_admin_peers():
    reply = handle_rpc({"jsonrpc": "2.0", "id": 3, "method": "admin_peers", "params": []})
    assert reply["id"] == 3
    assert isinstance(reply["result"], list)


def test_handle_rpc_unknown_method():
    reply = handle_rpc({"jsonrpc": "2.0", "id": 4, "method": "eth_blockNumber"})
    assert reply["error"]["code"] == -32601


def test_handle_rpc_rejects_batches():
    reply = handle_rpc([{"jsonrpc": "2.0", "id": 1, "method": "admin_peers"}])
    assert reply["error"]["code"] == -32600
