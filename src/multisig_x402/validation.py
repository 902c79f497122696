"""Parameter checks run before anything is sent to the multisig canister.

Hard failures raise :class:`~multisig_x402.errors.ValidationError` with the
offending field and value. Soft checks only log a warning.
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Mapping, Union

from .constants import SOLANA_CHAIN_ID, ZERO_ADDRESS
from .errors import ValidationError
from .hex import is_valid_hex

logger = logging.getLogger(__name__)

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
_NUMERIC_RE = re.compile(r"^\d+$")

UINT256_MAX = (1 << 256) - 1
MIN_VALIDITY_WINDOW_SECONDS = 300
MAX_VALID_AFTER_SKEW_SECONDS = 86400


@dataclass(frozen=True)
class SignRequestParams:
    """Parameters of one ``transferWithAuthorization`` signature request."""

    vault_id: int
    to: str
    value: str
    valid_after: str
    valid_before: str
    nonce: str
    verifying_contract: str
    domain_chain_id: str
    domain_name: str
    domain_version: str


def parse_hex_int(value: str) -> int:
    """Parse ``[-]0x...`` or bare hex digits into an int."""
    negative = value.startswith("-")
    digits = value[1:] if negative else value
    if digits.lower().startswith("0x"):
        digits = digits[2:]
    number = int(digits, 16)
    return -number if negative else number


def is_valid_ethereum_address(address: Any) -> bool:
    return isinstance(address, str) and bool(_ADDRESS_RE.match(address))


def validate_ethereum_address(address: str, field: str = "address") -> None:
    if not is_valid_ethereum_address(address):
        raise ValidationError(
            field,
            address,
            f"Invalid {field}: {address} (expected 0x followed by 40 hex characters)",
        )


def validate_hex_value(value: str, field: str = "value", allow_negative: bool = False) -> None:
    if not isinstance(value, str):
        raise ValidationError(field, value, f"Invalid {field} format: {value!r}")

    negative = value.startswith("-")
    remainder = value[1:] if negative else value
    if not is_valid_hex(remainder):
        raise ValidationError(
            field,
            value,
            f'Invalid {field} format: {value} (must be hexadecimal, e.g. "0x3e8")',
        )
    if negative and not allow_negative:
        raise ValidationError(field, value, f"{field} cannot be negative: {value}")

    number = parse_hex_int(value)
    if abs(number) > UINT256_MAX:
        raise ValidationError(field, value, f"{field} out of valid range: {value}")


def validate_timestamps(valid_after: str, valid_before: str) -> None:
    validate_hex_value(valid_after, "validAfter")
    validate_hex_value(valid_before, "validBefore")

    after = parse_hex_int(valid_after)
    before = parse_hex_int(valid_before)
    if before <= after:
        raise ValidationError(
            "validBefore",
            valid_before,
            f"Invalid time range: validBefore ({valid_before}) must be greater than "
            f"validAfter ({valid_after}); current validAfter={after}, validBefore={before}",
        )

    if after > 0:
        now = int(time.time())
        if after > now + MAX_VALID_AFTER_SKEW_SECONDS:
            logger.warning(
                "validAfter (%s) is set in the distant future (current: %s); "
                "the signature may be unusable in the short term",
                after,
                now,
            )

    window = before - after
    if window < MIN_VALIDITY_WINDOW_SECONDS:
        logger.warning(
            "Validity window is short (%s seconds); at least %s seconds is recommended",
            window,
            MIN_VALIDITY_WINDOW_SECONDS,
        )


def validate_nonce(nonce: str) -> None:
    validate_hex_value(nonce, "nonce")
    if parse_hex_int(nonce) == 0:
        logger.warning("nonce value is 0; a randomly generated nonce is recommended")


def validate_vault_id(vault_id: int) -> None:
    if isinstance(vault_id, bool) or not isinstance(vault_id, int) or vault_id <= 0:
        raise ValidationError(
            "vault_id",
            vault_id,
            f"Invalid Vault ID: {vault_id} (must be a positive integer greater than 0)",
        )


def validate_contract_address(address: str, field: str = "contract address") -> None:
    validate_ethereum_address(address, field)
    if address.lower() == ZERO_ADDRESS:
        logger.warning(
            "%s is the zero address; this usually means a native token, confirm it is intended",
            field,
        )


def validate_domain_chain_id(domain_chain_id: str) -> None:
    if domain_chain_id == SOLANA_CHAIN_ID:
        return
    validate_hex_value(domain_chain_id, "domainChainId")
    if parse_hex_int(domain_chain_id) == 0:
        raise ValidationError(
            "domainChainId", domain_chain_id, f"Invalid domainChainId: {domain_chain_id} (cannot be 0)"
        )


def validate_domain_params(domain_name: str, domain_version: str) -> None:
    if not isinstance(domain_name, str) or not domain_name.strip():
        raise ValidationError("domainName", domain_name, "domainName cannot be empty")
    if not isinstance(domain_version, str) or not domain_version.strip():
        raise ValidationError("domainVersion", domain_version, "domainVersion cannot be empty")
    if not _NUMERIC_RE.match(domain_version):
        logger.warning(
            'domainVersion "%s" is not purely numeric; common versions are "1", "2"',
            domain_version,
        )


def validate_sign_request_params(params: Union[SignRequestParams, Mapping[str, Any]]) -> None:
    """Run every check in a fixed order, stopping at the first hard error."""
    if isinstance(params, Mapping):
        params = SignRequestParams(**params)

    validate_vault_id(params.vault_id)
    validate_ethereum_address(params.to, "recipient address (to)")
    validate_hex_value(params.value, "transfer amount (value)")
    validate_timestamps(params.valid_after, params.valid_before)
    validate_nonce(params.nonce)
    validate_contract_address(
        params.verifying_contract, "verifying contract address (verifyingContract)"
    )
    validate_domain_chain_id(params.domain_chain_id)
    validate_domain_params(params.domain_name, params.domain_version)
