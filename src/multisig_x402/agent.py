"""Typed call facade over the Internet Computer HTTP agent (ic-py)."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from typing import Any, Optional, Sequence
from urllib.parse import urlparse

import cbor2
import certifi
import httpx
from ic.agent import Agent
from ic.candid import encode
from ic.client import Client
from ic.identity import Identity

from .errors import RemoteCallError
from .idl import ActorInterface, first_value

logger = logging.getLogger(__name__)

LOCAL_HOSTNAMES = ("127.0.0.1", "localhost")


def _ensure_ssl_certs() -> None:
    if os.getenv("SSL_CERT_FILE") or os.getenv("REQUESTS_CA_BUNDLE"):
        return
    cert_path = certifi.where()
    os.environ["SSL_CERT_FILE"] = cert_path
    os.environ.setdefault("REQUESTS_CA_BUNDLE", cert_path)


def is_local_host(host: str) -> bool:
    return (urlparse(host).hostname or "") in LOCAL_HOSTNAMES


class AgentClient:
    """Encode, send and decode canister calls for one identity.

    ``call_update`` goes through consensus; ``call_query`` is a read-only
    call answered by a single replica. Both raise :class:`RemoteCallError`
    on any transport or decoding failure and never retry.
    """

    def __init__(self, agent: Any, identity: Identity, host: str) -> None:
        self._agent = agent
        self._identity = identity
        self.host = host
        self.root_key: Optional[bytes] = None

    @classmethod
    async def create(
        cls,
        identity: Identity,
        host: str = "https://ic0.app",
        fetch_root_key: Optional[bool] = None,
    ) -> "AgentClient":
        """Build a client for ``host``.

        Local replicas sign with a throwaway root key, so it is fetched
        before the first call when ``host`` points at localhost (or when
        ``fetch_root_key`` is set explicitly).
        """
        logger.info("Creating IC agent client for host %s", host)
        _ensure_ssl_certs()
        agent = Agent(identity, Client(url=host))
        client = cls(agent, identity, host)
        if fetch_root_key if fetch_root_key is not None else is_local_host(host):
            logger.info("Local environment detected, fetching root key")
            await client.fetch_root_key()
        return client

    @property
    def identity(self) -> Identity:
        return self._identity

    @property
    def principal(self) -> str:
        return self._identity.sender().to_str()

    async def get_status(self) -> Any:
        try:
            async with httpx.AsyncClient(timeout=10.0) as http:
                response = await http.get(f"{self.host.rstrip('/')}/api/v2/status")
        except httpx.HTTPError as exc:
            raise RemoteCallError(self.host, "status", exc) from exc
        if response.status_code != 200:
            raise RemoteCallError(self.host, "status", f"HTTP {response.status_code}")
        try:
            status = cbor2.loads(response.content)
        except ValueError as exc:
            raise RemoteCallError(self.host, "status", exc) from exc
        if isinstance(status, cbor2.CBORTag):
            status = status.value
        return status

    async def fetch_root_key(self) -> bytes:
        status = await self.get_status()
        # cbor2 6 decodes maps to its own frozendict, which is not a dict.
        if not isinstance(status, Mapping) and hasattr(status, "items"):
            status = dict(status.items())
        root_key = status.get("root_key") if isinstance(status, Mapping) else None
        if not root_key:
            raise RemoteCallError(self.host, "status", "replica status carries no root_key")
        self.root_key = bytes(root_key)
        if hasattr(self._agent, "root_key"):
            self._agent.root_key = self.root_key
        return self.root_key

    async def call_update(
        self,
        canister_id: str,
        method: str,
        args: Sequence[Any],
        interface: ActorInterface,
    ) -> Any:
        logger.info("Calling canister update method %s::%s", canister_id, method)
        try:
            arg = encode(interface.encode_args(method, args))
            decoded = await self._agent.update_raw_async(canister_id, method, arg)
            result = first_value(decoded)
        except Exception as exc:
            logger.error("Update call failed: %s::%s", canister_id, method)
            raise RemoteCallError(canister_id, method, exc) from exc
        logger.info("Update call succeeded: %s::%s", canister_id, method)
        return result

    async def call_query(
        self,
        canister_id: str,
        method: str,
        args: Sequence[Any],
        interface: ActorInterface,
        silent: bool = False,
    ) -> Any:
        log = logger.debug if silent else logger.info
        log("Calling canister query method %s::%s", canister_id, method)
        try:
            arg = encode(interface.encode_args(method, args))
            decoded = await self._agent.query_raw_async(canister_id, method, arg)
            result = first_value(decoded)
        except Exception as exc:
            logger.error("Query failed: %s::%s", canister_id, method)
            raise RemoteCallError(canister_id, method, exc) from exc
        log("Query succeeded: %s::%s", canister_id, method)
        return result
