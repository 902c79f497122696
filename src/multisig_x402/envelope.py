"""x402 v1 ``exact`` payment envelope: build, encode and decode the header value."""

from __future__ import annotations

import base64
import binascii
import json
import secrets
import time
from typing import Any, Dict, Optional, Union

from x402.schemas.v1 import PaymentRequirementsV1

from .constants import NETWORK_CHAIN_IDS
from .errors import FormatError, ValidationError

PaymentRequirementsLike = Union[PaymentRequirementsV1, Dict[str, Any]]

# validAfter is backdated to tolerate clock skew between payer and verifier.
VALID_AFTER_SKEW_SECONDS = 600


def requirements_to_payload(requirements: PaymentRequirementsLike) -> Dict[str, Any]:
    if hasattr(requirements, "model_dump"):
        return requirements.model_dump(by_alias=True, exclude_none=True)
    if isinstance(requirements, dict):
        return requirements
    raise TypeError("payment_requirements must be a dict or pydantic model")


def _required(payload: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = payload.get(key)
        if value not in (None, ""):
            return value
    raise ValidationError(keys[0], None, f"payment requirements are missing {keys[0]}")


def prepare_payment_header(
    from_address: str,
    x402_version: int,
    requirements: PaymentRequirementsLike,
    now: Optional[int] = None,
) -> Dict[str, Any]:
    """Build the unsigned payment payload for ``requirements``.

    ``payload.signature`` is ``None`` until the multisig canister has signed
    the authorization. Amount and timestamps are decimal strings, the nonce
    is 32 random bytes as ``0x`` hex.
    """
    req = requirements_to_payload(requirements)
    if now is None:
        now = int(time.time())
    timeout = int(_required(req, "maxTimeoutSeconds", "max_timeout_seconds"))
    return {
        "x402Version": x402_version,
        "scheme": _required(req, "scheme"),
        "network": _required(req, "network"),
        "payload": {
            "signature": None,
            "authorization": {
                "from": from_address,
                "to": _required(req, "payTo", "pay_to"),
                "value": str(_required(req, "maxAmountRequired", "max_amount_required")),
                "validAfter": str(now - VALID_AFTER_SKEW_SECONDS),
                "validBefore": str(now + timeout),
                "nonce": "0x" + secrets.token_bytes(32).hex(),
            },
        },
    }


def with_signature(unsigned: Dict[str, Any], signature: str) -> Dict[str, Any]:
    """Return a copy of ``unsigned`` carrying ``signature`` (``0x``-prefixed)."""
    if not signature.startswith("0x"):
        signature = "0x" + signature
    return {**unsigned, "payload": {**unsigned["payload"], "signature": signature}}


def encode_payment(payload: Dict[str, Any]) -> str:
    encoded = json.dumps(payload, separators=(",", ":"), sort_keys=False)
    return base64.b64encode(encoded.encode("utf-8")).decode("utf-8")


def decode_payment(header: str) -> Dict[str, Any]:
    try:
        raw = base64.b64decode(header.encode("utf-8"), validate=True)
        payload = json.loads(raw.decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise FormatError(f"Invalid payment header: {exc}") from exc
    if not isinstance(payload, dict):
        raise FormatError("Invalid payment header: expected a JSON object")
    return payload


def domain_from_requirements(requirements: PaymentRequirementsLike) -> Dict[str, str]:
    """Resolve the EIP-712 domain for ``requirements``.

    The chain id is taken from ``domainChainId`` (top level or in ``extra``)
    and otherwise derived from the network name; ``name`` and ``version``
    come from ``extra``.
    """
    req = requirements_to_payload(requirements)
    extra = req.get("extra") or {}
    chain_id = req.get("domainChainId") or extra.get("domainChainId")
    if not chain_id:
        network = req.get("network")
        chain_id = NETWORK_CHAIN_IDS.get(str(network))
        if chain_id is None:
            raise ValidationError(
                "domainChainId", network, f"Cannot derive a chain id for network {network}"
            )
    name = extra.get("name")
    version = extra.get("version")
    if not name or not version:
        raise ValidationError(
            "extra", extra, "payment requirements extra must carry the token name and version"
        )
    return {
        "verifying_contract": _required(req, "asset"),
        "domain_chain_id": str(chain_id),
        "domain_name": str(name),
        "domain_version": str(version),
    }


__all__ = [
    "decode_payment",
    "domain_from_requirements",
    "encode_payment",
    "prepare_payment_header",
    "requirements_to_payload",
    "with_signature",
]
