"""
Fake Geth JSON-RPC server for testing without a node.

    python -m peermon.mock.fake_geth_server
    GETH_RPC_URL=http://localhost:8545 peermon
"""

from __future__ import annotations

import json
from http.server import BaseHTTPRequestHandler, HTTPServer

from peermon.mock.generator import MockGethNode


_node = MockGethNode(seed=42)


def _rpc_error(request_id, code: int, message: str) -> dict:
    return {"jsonrpc": "2.0", "id": request_id, "error": {"code": code, "message": message}}


def handle_rpc(request: dict) -> dict:
    """Dispatch one decoded JSON-RPC request against the mock node."""
    if not isinstance(request, dict):
        return _rpc_error(None, -32600, "batch requests are not supported")

    request_id = request.get("id")
    method = request.get("method")

    if method == "admin_peers":
        return {"jsonrpc": "2.0", "id": request_id, "result": _node.admin_peers()}

    return _rpc_error(request_id, -32601, f"the method {method} does not exist/is not available")


class _RPCHandler(BaseHTTPRequestHandler):
    def do_POST(self):
        length = int(self.headers.get("Content-Length", 0))
        try:
            request = json.loads(self.rfile.read(length))
        except ValueError:
            reply = _rpc_error(None, -32700, "parse error")
        else:
            reply = handle_rpc(request)

        body = json.dumps(reply).encode()
        self.send_response(200)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):
        pass  # Suppress request logging noise


def run_fake_server(host: str = "127.0.0.1", port: int = 8545):
    server = HTTPServer((host, port), _RPCHandler)
    print(f"Fake Geth RPC server running at http://{host}:{port}")
    print("Press Ctrl+C to stop.\n")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    server.server_close()
    print("\nServer stopped.")


if __name__ == "__main__":
    run_fake_server()
