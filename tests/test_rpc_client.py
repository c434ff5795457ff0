"""
Tests for the Geth RPC client.

Transport faults are simulated with httpx.MockTransport; the happy path
also runs against the fake JSON-RPC server in a thread.
"""

import json
import threading
from http.server import HTTPServer

import httpx
import pytest

from peermon.collector.rpc_client import GethRPCClient, RemoteQueryError, RPCConnectError
from peermon.mock.fake_geth_server import _RPCHandler

URL = "http://geth.test:8545"


def _client_with(handler) -> GethRPCClient:
    return GethRPCClient(URL, transport=httpx.MockTransport(handler))


def _rpc_result(result):
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})
    return handler


def _start_test_server() -> HTTPServer:
    server = HTTPServer(("127.0.0.1", 0), _RPCHandler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    return server


def test_sends_admin_peers_request():
    seen = []

    def handler(request):
        seen.append(json.loads(request.content))
        return _rpc_result([])(request)

    client = _client_with(handler)
    client.fetch()
    client.fetch()
    client.close()

    assert seen[0]["method"] == "admin_peers"
    assert seen[0]["params"] == []
    assert seen[0]["jsonrpc"] == "2.0"
    assert seen[1]["id"] > seen[0]["id"]


def test_fetch_decodes_peers_in_order():
    result = [
        {"id": "one", "name": "Geth/a", "caps": ["eth/68"], "network": {"remoteAddress": "1.1.1.1:30303"}},
        {"id": "two", "name": "Geth/b", "caps": [], "protocols": {"eth": {"version": 67}}},
    ]
    client = _client_with(_rpc_result(result))

    snapshot = client.fetch()

    assert len(snapshot) == 2
    assert [p.id for p in snapshot] == ["one", "two"]
    assert snapshot.peers[0].remote_address == "1.1.1.1:30303"
    assert snapshot.peers[1].protocols["eth"] == {"version": 67}


def test_empty_peer_list_is_a_valid_snapshot():
    snapshot = _client_with(_rpc_result([])).fetch()
    assert len(snapshot) == 0


def test_timeout_raises_remote_query_error():
    def handler(request):
        raise httpx.ReadTimeout("read timed out", request=request)

    with pytest.raises(RemoteQueryError) as excinfo:
        _client_with(handler).fetch()

    assert "admin_peers" in str(excinfo.value)
    assert "timed out" in str(excinfo.value)
    assert isinstance(excinfo.value.__cause__, httpx.TimeoutException)


def test_connection_refused_raises_remote_query_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(RemoteQueryError, match="admin_peers"):
        _client_with(handler).fetch()


def test_http_error_status_raises():
    client = _client_with(lambda request: httpx.Response(503, text="unavailable"))
    with pytest.raises(RemoteQueryError):
        client.fetch()


def test_non_json_body_raises():
    client = _client_with(lambda request: httpx.Response(200, text="<html>proxy error</html>"))
    with pytest.raises(RemoteQueryError, match="invalid JSON"):
        client.fetch()


def test_rpc_error_object_raises_with_message():
    def handler(request):
        return httpx.Response(200, json={
            "jsonrpc": "2.0", "id": 1,
            "error": {"code": -32601, "message": "the method admin_peers does not exist/is not available"},
        })

    with pytest.raises(RemoteQueryError) as excinfo:
        _client_with(handler).fetch()

    assert "-32601" in str(excinfo.value)
    assert "does not exist" in str(excinfo.value)


def test_missing_result_raises():
    client = _client_with(lambda request: httpx.Response(200, json={"jsonrpc": "2.0", "id": 1}))
    with pytest.raises(RemoteQueryError, match="no result"):
        client.fetch()


def test_result_not_a_list_raises():
    with pytest.raises(RemoteQueryError, match="expected a list"):
        _client_with(_rpc_result({"id": "x"})).fetch()


def test_one_malformed_entry_fails_the_whole_call():
    result = [{"id": "good"}, {"id": "bad", "caps": "eth/68"}]
    with pytest.raises(RemoteQueryError, match="malformed peer entry"):
        _client_with(_rpc_result(result)).fetch()


@pytest.mark.parametrize("url", ["ws://localhost:8546", "localhost:8545", "http://", "/var/geth.ipc"])
def test_unusable_url_raises_connect_error(url):
    with pytest.raises(RPCConnectError):
        GethRPCClient(url)


def test_client_against_fake_server():
    server = _start_test_server()
    try:
        port = server.server_address[1]
        client = GethRPCClient(f"http://127.0.0.1:{port}")
        snapshot = client.fetch()

        assert len(snapshot) > 0
        assert all(p.id for p in snapshot)
        assert all(p.caps for p in snapshot)
        client.close()
    finally:
        server.shutdown()


def test_client_name_includes_url():
    client = GethRPCClient("http://localhost:8545")
    assert "localhost:8545" in client.name()
    client.close()


def test_deeply_nested_response_raises_remote_query_error():
    depth = 5000
    body = '{"jsonrpc":"2.0","id":1,"result":[{"protocols":{"eth":' + '{"x":' * depth + "1" + "}" * depth + "}}]}"
    client = _client_with(lambda request: httpx.Response(200, content=body.encode()))

    with pytest.raises(RemoteQueryError, match="admin_peers"):
        client.fetch()
