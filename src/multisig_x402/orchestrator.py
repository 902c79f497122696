"""Payment authorization: submit, poll and assemble the signed x-payment header."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Mapping, Optional, Union

import httpx

from .constants import (
    PAYMENT_HEADER,
    USER_AGENT,
    X402_VERSION,
    describe_supported_tokens,
    is_supported_token,
    network_for_chain_id,
)
from .envelope import (
    domain_from_requirements,
    encode_payment,
    prepare_payment_header,
    with_signature,
)
from .errors import (
    ExpiredError,
    MissingSignatureError,
    NotFoundError,
    PollingTimeoutError,
    RejectedError,
    ServiceError,
    UnsupportedTokenError,
)
from .models import PaidServiceRequest, PollingConfig, RequestStatus, SignatureResult
from .multisig import MultisigClient
from .validation import SignRequestParams

logger = logging.getLogger(__name__)

PollingLike = Union[PollingConfig, Mapping[str, Any], None]


def check_supported(params: SignRequestParams) -> str:
    """Reject chains and token contracts the multisig wallet cannot sign for.

    Returns the network name resolved from ``domain_chain_id``.
    """
    network = network_for_chain_id(params.domain_chain_id)
    if not is_supported_token(network, params.verifying_contract):
        raise UnsupportedTokenError(
            "verifyingContract",
            params.verifying_contract,
            f"Unsupported token contract {params.verifying_contract} on {network}; "
            f"supported: {describe_supported_tokens(network)}",
        )
    return network


class PaymentAuthorizer:
    """Drives a signature request from submission to a usable signature.

    ``sleep`` is the coroutine awaited between polls; tests substitute a
    no-op to avoid real delays.
    """

    def __init__(
        self,
        multisig: MultisigClient,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._multisig = multisig
        self._sleep = sleep

    @property
    def multisig(self) -> MultisigClient:
        return self._multisig

    async def submit(
        self,
        params: Union[SignRequestParams, Mapping[str, Any]],
        expire_time: Optional[int] = None,
    ) -> int:
        if isinstance(params, Mapping):
            params = SignRequestParams(**params)
        check_supported(params)
        return await self._multisig.create_request_only(params, expire_time)

    async def get_signature(self, request_id: int) -> SignatureResult:
        record = await self._multisig.get_request(request_id, silent=True)
        if record is None:
            raise NotFoundError(f"Request does not exist: {request_id}")
        return SignatureResult.from_record(int(request_id), record)

    async def wait_for_signature(
        self, request_id: int, polling: PollingLike = None
    ) -> SignatureResult:
        """Poll until the request is executed.

        One immediate read is followed by at most ``max_attempts`` sleeps
        and re-reads. ``Rejected`` and ``Expired`` end the wait with an
        error; running out of attempts raises :class:`PollingTimeoutError`,
        after which the same ``request_id`` can be waited on again.
        """
        config = PollingConfig.from_value(polling)
        result = await self.get_signature(request_id)
        attempts = 0
        while True:
            status = result.status
            if status == RequestStatus.EXECUTED.value:
                logger.info("Signature request %s executed", request_id)
                return result
            if status == RequestStatus.REJECTED.value:
                raise RejectedError(request_id)
            if status == RequestStatus.EXPIRED.value:
                raise ExpiredError(request_id)
            if attempts >= config.max_attempts:
                raise PollingTimeoutError(request_id, attempts, status)

            attempts += 1
            logger.info(
                "Polling attempt %d/%d for request %s, status %s",
                attempts,
                config.max_attempts,
                request_id,
                status,
            )
            await self._sleep(config.interval)
            result = await self.get_signature(request_id)

    async def authorize(
        self,
        params: Union[SignRequestParams, Mapping[str, Any]],
        polling: PollingLike = None,
    ) -> SignatureResult:
        request_id = await self.submit(params)
        return await self.wait_for_signature(request_id, polling)

    async def build_payment(self, request: PaidServiceRequest) -> str:
        """Obtain a multisig signature for ``request`` and return the header value."""
        unsigned = prepare_payment_header(
            request.from_address, X402_VERSION, request.payment_requirements
        )
        authorization = unsigned["payload"]["authorization"]
        domain = domain_from_requirements(request.payment_requirements)

        params = SignRequestParams(
            vault_id=request.vault_id,
            to=authorization["to"],
            value=hex(int(authorization["value"])),
            valid_after=hex(int(authorization["validAfter"])),
            valid_before=hex(int(authorization["validBefore"])),
            nonce=authorization["nonce"],
            **domain,
        )
        result = await self.authorize(params, request.polling)
        if not result.signature:
            raise MissingSignatureError(result.request_id)
        return encode_payment(with_signature(unsigned, result.signature))

    async def call_paid_service(
        self,
        request: PaidServiceRequest,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> Any:
        payment = await self.build_payment(request)
        headers = {PAYMENT_HEADER: payment, "User-Agent": USER_AGENT}

        logger.info("Sending paid request to %s", request.api_url)
        if http_client is not None:
            response = await http_client.get(request.api_url, headers=headers)
        else:
            async with httpx.AsyncClient() as client:
                response = await client.get(request.api_url, headers=headers)

        if not response.is_success:
            raise ServiceError(response.status_code, response.reason_phrase, response.text)
        logger.info("Paid service call to %s succeeded", request.api_url)
        return response.json()
