"""High level client: one object that owns identity, agent and canister clients."""

from __future__ import annotations

import asyncio
import logging
import threading
from concurrent.futures import Future
from typing import Any, Mapping, Optional, Union

import httpx
from x402.schemas.v1 import PaymentRequirementsV1

from .agent import AgentClient
from .config import OptionsLike, X402MultiSigOptions, coerce_options
from .constants import get_eip712_domain_params
from .identity import IdentityHandle, IdentityStore
from .models import PaidServiceRequest, PollingConfig, SignatureResult
from .multisig import MultisigClient
from .orchestrator import PaymentAuthorizer, PollingLike
from .register import RegisterClient
from .validation import SignRequestParams

logger = logging.getLogger(__name__)

DEFAULT_DOMAIN_VERSION = "2"


class X402MultiSig:
    """Async entry point. Build instances with :meth:`create`."""

    def __init__(
        self,
        identity: IdentityHandle,
        agent_client: AgentClient,
        multisig: MultisigClient,
        options: X402MultiSigOptions,
        identity_store: Optional[IdentityStore] = None,
        authorizer: Optional[PaymentAuthorizer] = None,
    ) -> None:
        self._identity = identity
        self._agent_client = agent_client
        self._multisig = multisig
        self._options = options
        self._identity_store = identity_store
        self._authorizer = authorizer or PaymentAuthorizer(multisig)

    @classmethod
    async def create(cls, options: OptionsLike) -> "X402MultiSig":
        """Resolve options, load or create the identity and connect.

        A freshly generated identity is registered with the directory
        canister; a failed registration is logged and does not stop
        initialization.
        """
        resolved = coerce_options(options).resolve()
        store = IdentityStore(resolved.identity_dir, resolved.integrity_policy)
        store.initialize()

        name = resolved.identity_name
        is_new = not store.exists(name)
        if is_new:
            logger.info("Identity '%s' does not exist, creating it", name)
            handle = store.generate(name, False, resolved.username, resolved.display_name)
        else:
            handle = store.load(name)

        agent_client = await AgentClient.create(handle.identity, resolved.host)

        if is_new:
            await cls._register(agent_client, resolved, handle)

        multisig = MultisigClient(agent_client, resolved.x402_canister_id)
        return cls(handle, agent_client, multisig, resolved, store)

    @staticmethod
    async def _register(
        agent_client: AgentClient, options: X402MultiSigOptions, handle: IdentityHandle
    ) -> None:
        username = options.username or f"bot_{options.identity_name}"
        try:
            register = RegisterClient(agent_client, options.register_canister_id or "")
            user = await register.register_user(username, options.display_name, handle.principal)
        except Exception as exc:
            logger.warning(
                "User registration failed, continuing without it: %s", exc, exc_info=True
            )
            return
        logger.info(
            "Registered user %s (display name %s) for principal %s",
            user.user_name,
            user.display_name or "(none)",
            user.user_principal,
        )

    # -- accessors ---------------------------------------------------------------

    @property
    def principal_id(self) -> str:
        return self._identity.principal

    @property
    def identity(self) -> IdentityHandle:
        return self._identity

    @property
    def agent_client(self) -> AgentClient:
        return self._agent_client

    @property
    def multisig(self) -> MultisigClient:
        return self._multisig

    @property
    def authorizer(self) -> PaymentAuthorizer:
        return self._authorizer

    @property
    def identity_store(self) -> Optional[IdentityStore]:
        return self._identity_store

    @property
    def options(self) -> X402MultiSigOptions:
        return self._options

    # -- operations --------------------------------------------------------------

    async def create_sign_request(
        self, params: Union[SignRequestParams, Mapping[str, Any]]
    ) -> int:
        """Submit a signature request for a supported network and token."""
        request_id = await self._authorizer.submit(params)
        logger.info("Signature request created, id %s", request_id)
        return request_id

    async def create_sign_request_simple(
        self,
        vault_id: int,
        to: str,
        value: str,
        valid_after: str,
        valid_before: str,
        nonce: str,
        network: str,
        token: str,
        domain_version: str = DEFAULT_DOMAIN_VERSION,
    ) -> int:
        """Like :meth:`create_sign_request`, with the EIP-712 domain looked up
        from ``network`` and the ``token`` symbol."""
        domain = get_eip712_domain_params(network, token, domain_version)
        params = SignRequestParams(
            vault_id=vault_id,
            to=to,
            value=value,
            valid_after=valid_after,
            valid_before=valid_before,
            nonce=nonce,
            verifying_contract=domain["verifying_contract"],
            domain_chain_id=domain["domain_chain_id"],
            domain_name=domain["domain_name"],
            domain_version=domain["domain_version"],
        )
        return await self.create_sign_request(params)

    async def get_signature(self, request_id: int) -> SignatureResult:
        return await self._authorizer.get_signature(request_id)

    async def wait_for_signature(
        self, request_id: int, polling: PollingLike = None
    ) -> SignatureResult:
        return await self._authorizer.wait_for_signature(request_id, polling)

    async def call_paid_service(
        self,
        vault_id: int,
        from_address: str,
        payment_requirements: Union[PaymentRequirementsV1, Mapping[str, Any]],
        api_url: str,
        polling: PollingLike = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> Any:
        request = PaidServiceRequest(
            vault_id=vault_id,
            from_address=from_address,
            payment_requirements=payment_requirements,
            api_url=api_url,
            polling=PollingConfig.from_value(polling),
        )
        return await self._authorizer.call_paid_service(request, http_client)


class _AsyncRunner:
    """One daemon thread running the event loop shared by every sync client.

    ic-py and httpx clients are bound to the loop they were created on, so
    all coroutines of a :class:`X402MultiSigSync` must run on the same loop.
    """

    def __init__(self) -> None:
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._ready = threading.Event()
        self._start_lock = threading.Lock()

    def _ensure_thread(self) -> None:
        with self._start_lock:
            if self._thread and self._thread.is_alive():
                return
            self._start_thread()

    def _start_thread(self) -> None:
        def _run_loop() -> None:
            loop = asyncio.new_event_loop()
            asyncio.set_event_loop(loop)
            self._loop = loop
            self._ready.set()
            loop.run_forever()

        self._ready.clear()
        thread = threading.Thread(target=_run_loop, name="multisig-x402-async", daemon=True)
        thread.start()
        self._thread = thread
        self._ready.wait()

    def run(self, coro, timeout: Optional[float] = None):
        self._ensure_thread()
        loop = self._loop
        if loop is None:
            raise RuntimeError("async runner loop not initialized")
        future: Future = asyncio.run_coroutine_threadsafe(coro, loop)
        return future.result(timeout)


_ASYNC_RUNNER = _AsyncRunner()


class X402MultiSigSync:
    """Blocking wrapper around :class:`X402MultiSig`.

    Coroutines run on a shared background event loop, so this works from
    plain scripts and from threads that already run their own loop.
    """

    def __init__(self, client: X402MultiSig, runner: Optional[_AsyncRunner] = None) -> None:
        self._client = client
        self._runner = runner or _ASYNC_RUNNER

    @classmethod
    def create(cls, options: OptionsLike) -> "X402MultiSigSync":
        return cls(_ASYNC_RUNNER.run(X402MultiSig.create(options)))

    @property
    def async_client(self) -> X402MultiSig:
        return self._client

    @property
    def principal_id(self) -> str:
        return self._client.principal_id

    def create_sign_request(self, params: Union[SignRequestParams, Mapping[str, Any]]) -> int:
        return self._runner.run(self._client.create_sign_request(params))

    def create_sign_request_simple(self, **kwargs: Any) -> int:
        return self._runner.run(self._client.create_sign_request_simple(**kwargs))

    def get_signature(self, request_id: int) -> SignatureResult:
        return self._runner.run(self._client.get_signature(request_id))

    def wait_for_signature(self, request_id: int, polling: PollingLike = None) -> SignatureResult:
        return self._runner.run(self._client.wait_for_signature(request_id, polling))

    def call_paid_service(self, **kwargs: Any) -> Any:
        return self._runner.run(self._client.call_paid_service(**kwargs))
