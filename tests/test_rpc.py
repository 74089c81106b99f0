"""Tests for the JSON-RPC node client."""

import pytest
import requests

from ava_shell.errors import NodeRequestError
from ava_shell.rpc import NodeClient


class FakeResponse:
    def __init__(self, body=None, status=200, bad_json=False):
        self.body = body
        self.status_code = status
        self.bad_json = bad_json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        if self.bad_json:
            raise ValueError("Expecting value")
        return self.body


class FakeSession:
    def __init__(self, response=None, exc=None):
        self.response = response
        self.exc = exc
        self.posts = []
        self.closed = False

    def post(self, url, json=None, timeout=None):
        self.posts.append((url, json, timeout))
        if self.exc:
            raise self.exc
        return self.response

    def close(self):
        self.closed = True


def _client(response=None, exc=None):
    client = NodeClient(host="node", port=9650, timeout=5)
    client._session = FakeSession(response, exc)
    return client


class TestCall:
    def test_routes_context_to_endpoint(self):
        client = _client(FakeResponse({"jsonrpc": "2.0", "id": 1, "result": {"balance": "5"}}))
        assert client.call("avm", "getBalance", {"address": "X-a"}) == {"balance": "5"}

        url, payload, timeout = client._session.posts[0]
        assert url == "http://node:9650/ext/bc/X"
        assert payload["method"] == "avm.getBalance"
        assert payload["params"] == {"address": "X-a"}
        assert payload["jsonrpc"] == "2.0"
        assert timeout == 5

    def test_request_ids_increase(self):
        client = _client(FakeResponse({"result": None}))
        client.call("info", "peers")
        client.call("info", "peers")
        assert [p[1]["id"] for p in client._session.posts] == [1, 2]
        assert client._session.posts[0][1]["params"] == {}

    def test_unknown_context(self):
        with pytest.raises(NodeRequestError):
            _client().call("nowhere", "x")

    def test_rpc_error(self):
        client = _client(FakeResponse({"error": {"code": -32000, "message": "problem"}}))
        with pytest.raises(NodeRequestError) as exc:
            client.call("avm", "send", {})
        assert exc.value.code == -32000
        assert "problem" in str(exc.value)

    def test_transport_error(self):
        client = _client(exc=requests.ConnectionError("refused"))
        with pytest.raises(NodeRequestError):
            client.call("info", "getNodeID")

    def test_http_error(self):
        with pytest.raises(NodeRequestError):
            _client(FakeResponse({}, status=500)).call("info", "getNodeID")

    def test_invalid_json(self):
        with pytest.raises(NodeRequestError):
            _client(FakeResponse(bad_json=True)).call("info", "getNodeID")


class TestHelpers:
    def test_connect_sets_node_id(self):
        client = _client(FakeResponse({"result": {"nodeID": "NodeID-abc"}}))
        assert client.connect() is True
        assert client.node_id == "NodeID-abc"
        assert client.is_connected

    def test_connect_failure(self):
        client = _client(exc=requests.ConnectionError("refused"))
        assert client.connect() is False
        assert not client.is_connected

    def test_get_tx_status(self):
        client = _client(FakeResponse({"result": {"status": "Accepted"}}))
        assert client.get_tx_status("tx") == "Accepted"
        assert client._session.posts[0][1]["params"] == {"txID": "tx"}

    def test_list_users(self):
        assert _client(FakeResponse({"result": {"users": ["a"]}})).list_users() == ["a"]

    def test_close(self):
        client = _client()
        session = client._session
        client.close()
        assert session.closed
        assert client._session is None
