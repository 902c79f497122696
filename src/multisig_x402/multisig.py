"""Client for the multisig canister: submit signature requests, read them back."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Union

from .agent import AgentClient
from .errors import RemoteCallError, SubmissionError, ValidationError
from .idl import MULTISIG_INTERFACE, unwrap_opt
from .models import ApprovalRequest, RequestRecord, TransferAuthorizationAction
from .validation import SignRequestParams, validate_sign_request_params

logger = logging.getLogger(__name__)


class MultisigClient:
    def __init__(self, agent_client: AgentClient, canister_id: str) -> None:
        if not canister_id or not canister_id.strip():
            raise ValidationError("canister_id", canister_id, "X402 canister id cannot be empty")
        self._agent_client = agent_client
        self.canister_id = canister_id.strip()
        logger.debug("Multisig client targets canister %s", self.canister_id)

    @property
    def agent_client(self) -> AgentClient:
        return self._agent_client

    def build_request(
        self,
        params: Union[SignRequestParams, Mapping[str, Any]],
        expire_time: Optional[int] = None,
    ) -> ApprovalRequest:
        """Validate ``params`` and wrap them in a canonical approval request.

        Raises :class:`ValidationError` or :class:`FormatError` before any
        network traffic.
        """
        if isinstance(params, Mapping):
            params = SignRequestParams(**params)
        validate_sign_request_params(params)
        return ApprovalRequest(TransferAuthorizationAction.from_params(params), expire_time)

    async def create_request_only(
        self,
        params: Union[SignRequestParams, Mapping[str, Any]],
        expire_time: Optional[int] = None,
    ) -> int:
        """Submit a signature request and return its id without waiting."""
        request = self.build_request(params, expire_time)
        action = request.action
        try:
            request_id = await self._agent_client.call_update(
                self.canister_id,
                "create_request",
                [request.to_candid()],
                MULTISIG_INTERFACE,
            )
        except RemoteCallError as exc:
            logger.error("Failed to create X402 signature request: %s", exc.cause)
            raise SubmissionError(
                str(exc.cause),
                {
                    "canister_id": self.canister_id,
                    "vault_id": action.vault_id,
                    "to": action.to,
                    "value": action.value,
                    "verifying_contract": action.verifying_contract,
                    "domain_chain_id": action.domain_chain_id,
                },
            ) from exc

        request_id = int(request_id)
        logger.info("Created signature request %s for vault %s", request_id, action.vault_id)
        return request_id

    async def get_request(self, request_id: int, silent: bool = False) -> Optional[RequestRecord]:
        try:
            value = await self._agent_client.call_query(
                self.canister_id,
                "get_request",
                [int(request_id)],
                MULTISIG_INTERFACE,
                silent=silent,
            )
        except RemoteCallError:
            if not silent:
                logger.error("Failed to query request %s", request_id)
            raise

        value = unwrap_opt(value)
        if value is None:
            return None
        return RequestRecord.from_candid(value)
