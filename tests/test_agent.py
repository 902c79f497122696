import pytest

pytest.importorskip("ic")
cbor2 = pytest.importorskip("cbor2")
httpx = pytest.importorskip("httpx")

from multisig_x402 import agent as agent_module
from multisig_x402.agent import AgentClient, is_local_host
from multisig_x402.errors import RemoteCallError
from multisig_x402.idl import MULTISIG_INTERFACE


class FakeIcAgent:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls = []

    async def update_raw_async(self, canister_id, method, arg):
        self.calls.append(("update", canister_id, method, arg))
        if self.error:
            raise self.error
        return self.result

    async def query_raw_async(self, canister_id, method, arg):
        self.calls.append(("query", canister_id, method, arg))
        if self.error:
            raise self.error
        return self.result


def test_is_local_host():
    assert is_local_host("http://127.0.0.1:4943")
    assert is_local_host("http://localhost:8000")
    assert not is_local_host("https://ic0.app")


@pytest.mark.asyncio
async def test_call_query_returns_first_value():
    ic_agent = FakeIcAgent(result=[{"type": "opt", "value": []}])
    client = AgentClient(ic_agent, identity=None, host="https://ic0.app")
    value = await client.call_query("cai", "get_request", [1], MULTISIG_INTERFACE, silent=True)
    assert value == []
    kind, canister_id, method, arg = ic_agent.calls[0]
    assert (kind, canister_id, method) == ("query", "cai", "get_request")
    assert arg.startswith(b"DIDL")


@pytest.mark.asyncio
async def test_call_update_wraps_failures():
    client = AgentClient(FakeIcAgent(error=RuntimeError("boom")), identity=None, host="h")
    with pytest.raises(RemoteCallError) as excinfo:
        await client.call_update("cai", "get_request", [1], MULTISIG_INTERFACE)
    assert excinfo.value.canister_id == "cai"
    assert excinfo.value.method == "get_request"
    assert isinstance(excinfo.value.__cause__, RuntimeError)


@pytest.mark.asyncio
async def test_encoding_errors_are_wrapped_too():
    client = AgentClient(FakeIcAgent(result=[]), identity=None, host="h")
    with pytest.raises(RemoteCallError):
        await client.call_query("cai", "get_request", [], MULTISIG_INTERFACE)


@pytest.mark.asyncio
async def test_fetch_root_key_reads_replica_status(monkeypatch):
    status = cbor2.dumps(cbor2.CBORTag(55799, {"root_key": b"\x01\x02", "ic_api_version": "0.18.0"}))

    def handler(request):
        assert request.url.path == "/api/v2/status"
        return httpx.Response(200, content=status)

    real_client = httpx.AsyncClient

    def mock_client(*args, **kwargs):
        kwargs["transport"] = httpx.MockTransport(handler)
        return real_client(*args, **kwargs)

    monkeypatch.setattr(agent_module.httpx, "AsyncClient", mock_client)
    client = AgentClient(FakeIcAgent(), identity=None, host="http://127.0.0.1:4943")
    assert await client.fetch_root_key() == b"\x01\x02"
    assert client.root_key == b"\x01\x02"


@pytest.mark.asyncio
async def test_get_status_http_error(monkeypatch):
    real_client = httpx.AsyncClient

    def mock_client(*args, **kwargs):
        kwargs["transport"] = httpx.MockTransport(lambda request: httpx.Response(503))
        return real_client(*args, **kwargs)

    monkeypatch.setattr(agent_module.httpx, "AsyncClient", mock_client)
    client = AgentClient(FakeIcAgent(), identity=None, host="http://127.0.0.1:4943")
    with pytest.raises(RemoteCallError):
        await client.get_status()


class FrozenStatus:
    """Map type that is neither a dict nor a registered ``Mapping``."""

    def __init__(self, data):
        self._data = data

    def items(self):
        return self._data.items()


@pytest.mark.asyncio
async def test_fetch_root_key_accepts_non_dict_maps(monkeypatch):
    async def fake_status(self):
        return FrozenStatus({"root_key": b"\x03"})

    monkeypatch.setattr(AgentClient, "get_status", fake_status)
    client = AgentClient(FakeIcAgent(), identity=None, host="http://127.0.0.1:4943")
    assert await client.fetch_root_key() == b"\x03"


@pytest.mark.asyncio
async def test_create_fetches_root_key_for_local_host(monkeypatch):
    status = cbor2.dumps(cbor2.CBORTag(55799, {"root_key": b"\x0a\x0b"}))
    real_client = httpx.AsyncClient

    def mock_client(*args, **kwargs):
        kwargs["transport"] = httpx.MockTransport(lambda request: httpx.Response(200, content=status))
        return real_client(*args, **kwargs)

    monkeypatch.setattr(agent_module.httpx, "AsyncClient", mock_client)
    monkeypatch.setattr(agent_module, "Agent", lambda identity, client: FakeIcAgent())
    monkeypatch.setattr(agent_module, "_ensure_ssl_certs", lambda: None)
    client = await AgentClient.create(None, "http://127.0.0.1:4943")
    assert client.root_key == b"\x0a\x0b"


@pytest.mark.asyncio
async def test_get_status_wraps_transport_errors(monkeypatch):
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    real_client = httpx.AsyncClient

    def mock_client(*args, **kwargs):
        kwargs["transport"] = httpx.MockTransport(refuse)
        return real_client(*args, **kwargs)

    monkeypatch.setattr(agent_module.httpx, "AsyncClient", mock_client)
    client = AgentClient(FakeIcAgent(), identity=None, host="http://127.0.0.1:4943")
    with pytest.raises(RemoteCallError) as excinfo:
        await client.get_status()
    assert isinstance(excinfo.value.__cause__, httpx.ConnectError)
