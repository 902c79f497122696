"""Hex helpers producing the fixed-width values EIP-712 ``uint256`` fields need."""

from __future__ import annotations

import re
import secrets
import time
from typing import Any, Dict, Iterable, Mapping

from .errors import FormatError

UINT256_HEX_LENGTH = 64

_HEX_RE = re.compile(r"^[0-9a-f]*$")


def _strip_prefix(value: str) -> str:
    lowered = value.lower()
    if lowered.startswith("0x"):
        return lowered[2:]
    return lowered


def pad_hex(value: str, target_length: int = UINT256_HEX_LENGTH) -> str:
    """Left-pad ``value`` with zeros to ``target_length`` hex digits.

    ``"0x3e8"`` becomes ``"0x" + "0" * 61 + "3e8"``. The ``0x`` prefix is
    optional on input and always present on output.

    Raises:
        FormatError: ``value`` contains a non-hex character or already has
            more than ``target_length`` digits.
    """
    if not isinstance(value, str):
        raise FormatError(f"Invalid hex string: {value!r}")
    digits = _strip_prefix(value)
    if not _HEX_RE.match(digits):
        raise FormatError(f"Invalid hex string: {value}")
    if len(digits) > target_length:
        raise FormatError(
            f"Hex string too long: {value} ({len(digits)} chars, max {target_length})"
        )
    return "0x" + digits.rjust(target_length, "0")


def normalize_uint256(value: str) -> str:
    return pad_hex(value, UINT256_HEX_LENGTH)


def normalize_hex_fields(obj: Mapping[str, Any], fields: Iterable[str]) -> Dict[str, Any]:
    """Return a copy of ``obj`` with the string ``fields`` normalized to uint256."""
    result = dict(obj)
    for name in fields:
        value = obj.get(name)
        if isinstance(value, str):
            result[name] = normalize_uint256(value)
    return result


def is_valid_hex(value: str) -> bool:
    if not isinstance(value, str):
        return False
    digits = _strip_prefix(value)
    return bool(digits) and bool(_HEX_RE.match(digits))


def number_to_hex(value: int, target_length: int = UINT256_HEX_LENGTH) -> str:
    if isinstance(value, bool) or not isinstance(value, int):
        raise FormatError(f"Expected an integer, got {value!r}")
    if value < 0:
        raise FormatError(f"Cannot encode negative value {value} as unsigned hex")
    return pad_hex(format(value, "x"), target_length)


def generate_nonce() -> str:
    """Build a uint256 nonce from the current time and 24 random bits.

    Collision resistant in practice for a single agent, but not
    cryptographically unique across processes; pass your own nonce when
    stronger guarantees are required.
    """
    timestamp = int(time.time() * 1000)
    return number_to_hex((timestamp << 24) | secrets.randbelow(0xFFFFFF))
