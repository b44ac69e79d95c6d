import pytest
import requests

from testnet_deployer import rpc as rpc_module
from testnet_deployer.rpc import NodeRpcClient, NodeRpcError


class _Response:
    def __init__(self, body, status=200):
        self._body = body
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code}")

    def json(self):
        if isinstance(self._body, Exception):
            raise self._body
        return self._body


@pytest.fixture
def posts(monkeypatch):
    state = {"calls": [], "responses": []}

    def fake_post(url, json=None, timeout=None):
        state["calls"].append((url, json, timeout))
        return state["responses"].pop(0)

    monkeypatch.setattr(rpc_module.requests, "post", fake_post)
    return state


def test_status_and_pub_key(posts):
    posts["responses"] += [
        _Response({"jsonrpc": "2.0", "id": 1, "result": {"pub_key": [1, "AB"], "latest_block_height": 3}}),
        _Response({"jsonrpc": "2.0", "id": 2, "result": [0x20, {"pub_key": [1, "AB"]}]}),
    ]
    client = NodeRpcClient("10.0.0.1:46657", timeout=3)

    assert client.status()["latest_block_height"] == 3
    assert client.pub_key() == [1, "AB"]

    url, payload, timeout = posts["calls"][0]
    assert url == "http://10.0.0.1:46657"
    assert payload["method"] == "status"
    assert payload["jsonrpc"] == "2.0"
    assert timeout == 3
    assert posts["calls"][1][1]["id"] == 2


def test_pub_key_from_validator_info(posts):
    posts["responses"].append(_Response({"result": {"validator_info": {"pub_key": {"type": "ed25519", "value": "xx"}}}}))
    assert NodeRpcClient("h:1").pub_key() == {"type": "ed25519", "value": "xx"}


def test_pub_key_missing(posts):
    posts["responses"].append(_Response({"result": {}}))
    with pytest.raises(NodeRpcError):
        NodeRpcClient("h:1").pub_key()


def test_dial_seeds_params(posts):
    posts["responses"].append(_Response({"result": {}}))
    NodeRpcClient("http://h:1").dial_seeds(["a:1", "b:2"])
    url, payload, _ = posts["calls"][0]
    assert url == "http://h:1"
    assert payload["method"] == "dial_seeds"
    assert payload["params"] == {"seeds": ["a:1", "b:2"]}


def test_rpc_error_object(posts):
    posts["responses"].append(_Response({"error": {"code": -32601, "message": "Method not found"}}))
    with pytest.raises(NodeRpcError) as exc:
        NodeRpcClient("h:1").call("nope")
    assert exc.value.code == -32601


def test_transport_and_decode_errors(posts, monkeypatch):
    posts["responses"].append(_Response(ValueError("not json")))
    with pytest.raises(NodeRpcError):
        NodeRpcClient("h:1").status()

    def refused(url, json=None, timeout=None):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr(rpc_module.requests, "post", refused)
    with pytest.raises(NodeRpcError):
        NodeRpcClient("h:1").status()
