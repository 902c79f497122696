import asyncio
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

pytest.importorskip("ic")
pytest.importorskip("x402")

from multisig_x402 import client as client_module
from multisig_x402.client import X402MultiSig, X402MultiSigSync, _AsyncRunner
from multisig_x402.config import X402MultiSigOptions
from multisig_x402.errors import RemoteCallError
from multisig_x402.hex import normalize_uint256

from conftest import candid_record

CANISTER = "ryjl3-tyaaa-aaaaa-aaaba-cai"
USER = {
    "user_principal": "2vxsx-fae",
    "user_name": "bot_default",
    "display_name": ["x402MultiSig"],
    "passkey_name": [],
    "create_time": 1,
    "update_time": 1,
}


class FakeAgentClient:
    def __init__(self, identity, fail_register=False):
        self.identity = identity
        self.fail_register = fail_register
        self.updates = []
        self.queries = []

    @property
    def principal(self):
        return self.identity.sender().to_str()

    async def call_update(self, canister_id, method, args, interface):
        self.updates.append((canister_id, method, args))
        if method == "register_ii_user":
            if self.fail_register:
                raise RemoteCallError(canister_id, method, "username taken")
            return {"Ok": USER}
        return 11

    async def call_query(self, canister_id, method, args, interface, silent=False):
        self.queries.append((canister_id, method, args))
        return [candid_record(args[0], "Executed", signature="beef", executed_at=5_000_000)]


@pytest.fixture
def fake_agents(monkeypatch):
    created = []

    async def fake_create(identity, host="https://ic0.app", fetch_root_key=None):
        agent = FakeAgentClient(identity, fail_register=getattr(fake_create, "fail", False))
        agent.host = host
        created.append(agent)
        return agent

    monkeypatch.setattr(client_module.AgentClient, "create", staticmethod(fake_create))
    fake_create.created = created
    return fake_create


def _options(tmp_path, **overrides):
    values = dict(x402_canister_id=CANISTER, identity_dir=str(tmp_path), network="local")
    values.update(overrides)
    return X402MultiSigOptions(**values)


@pytest.mark.asyncio
async def test_create_generates_and_registers_new_identity(tmp_path, fake_agents):
    bot = await X402MultiSig.create(_options(tmp_path))

    agent = fake_agents.created[0]
    assert agent.host == "http://127.0.0.1:4943"
    assert (tmp_path / "default.json").exists()
    canister_id, method, args = agent.updates[0]
    assert canister_id == "jsinc-qqaaa-aaaab-ab55q-cai"
    assert method == "register_ii_user"
    assert args[0] == "bot_default"
    assert args[1] == "x402MultiSig"
    assert args[2] == bot.principal_id
    assert bot.multisig.canister_id == CANISTER
    assert bot.options.integrity_policy == "fail"


@pytest.mark.asyncio
async def test_create_tolerates_registration_failure(tmp_path, fake_agents):
    fake_agents.fail = True
    bot = await X402MultiSig.create(_options(tmp_path, username="taken"))
    assert bot.principal_id
    assert fake_agents.created[0].updates[0][2][0] == "taken"


@pytest.mark.asyncio
async def test_create_loads_existing_identity_without_registering(tmp_path, fake_agents):
    first = await X402MultiSig.create(_options(tmp_path))
    second = await X402MultiSig.create({"x402CanisterId": CANISTER, "identityDir": str(tmp_path)})

    assert second.principal_id == first.principal_id
    assert fake_agents.created[1].updates == []
    assert fake_agents.created[1].host == "https://ic0.app"


@pytest.mark.asyncio
async def test_create_sign_request_simple_uses_token_domain(tmp_path, fake_agents):
    bot = await X402MultiSig.create(_options(tmp_path))
    now = int(time.time())

    request_id = await bot.create_sign_request_simple(
        vault_id=1,
        to="0x2f795904540BE35c3B66A9643F58DAC14E8fA30B",
        value="0x3e8",
        valid_after=hex(now - 600),
        valid_before=hex(now + 3600),
        nonce="0x1",
        network="base-sepolia",
        token="USDC",
    )

    assert request_id == 11
    _, method, args = fake_agents.created[0].updates[-1]
    assert method == "create_request"
    action = args[0]["request_type"]["X402TransferWithAuthorization"]["action"]
    assert action["verifying_contract"] == "0x036CbD53842c5426634e7929541eC2318f3dCF7e"
    assert action["domain_chain_id"] == "0x14a34"
    assert action["domain_name"] == "USDC"
    assert action["domain_version"] == "2"
    assert action["nonce"] == normalize_uint256("0x1")


@pytest.mark.asyncio
async def test_get_and_wait_for_signature(tmp_path, fake_agents):
    bot = await X402MultiSig.create(_options(tmp_path))
    result = await bot.get_signature(3)
    assert result.signature == "beef"
    assert result.executed_at == 5
    waited = await bot.wait_for_signature(3, {"max_attempts": 1, "interval": 0})
    assert waited.request_id == 3


def test_sync_wrapper_runs_on_background_loop(tmp_path, fake_agents):
    bot = X402MultiSigSync.create(_options(tmp_path))
    assert bot.principal_id == bot.async_client.principal_id
    assert bot.get_signature(9).status == "Executed"


def test_async_runner_starts_one_loop_for_concurrent_callers():
    runner = _AsyncRunner()

    async def running_loop():
        return asyncio.get_running_loop()

    with ThreadPoolExecutor(max_workers=4) as pool:
        loops = list(pool.map(lambda _: runner.run(running_loop(), timeout=5), range(8)))

    assert len({id(loop) for loop in loops}) == 1
    assert runner._thread.name == "multisig-x402-async"
