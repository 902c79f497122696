"""Candid interface descriptors for the multisig and register canisters.

Only the parts of each interface this client calls are described. Method
entries carry argument types only. Replies are decoded untyped and read
through :func:`field` and :func:`variant_tag`, which accept either plain
labels or the hashed ``_<id>`` labels produced by untyped decoding, so
records carrying variants this client does not model are still readable.
"""

from __future__ import annotations

from dataclasses import dataclass, field as dc_field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from ic.candid import Types


def idl_hash(label: str) -> int:
    """Candid field id of ``label``."""
    h = 0
    for byte in label.encode("utf-8"):
        h = (h * 223 + byte) % (1 << 32)
    return h


def _label_candidates(name: str) -> Tuple[Any, ...]:
    h = idl_hash(name)
    return (name, f"_{h}", f"_{h}_", h, str(h))


def field(record: Mapping[Any, Any], name: str, default: Any = None) -> Any:
    for key in _label_candidates(name):
        if key in record:
            return record[key]
    return default


def variant_tag(value: Mapping[Any, Any], known: Sequence[str]) -> Tuple[str, Any]:
    """Return ``(tag, payload)`` for a decoded variant.

    Tags not listed in ``known`` come back as their raw key.
    """
    if not isinstance(value, Mapping) or len(value) != 1:
        raise ValueError(f"Expected a single-case variant, got {value!r}")
    (key, payload), = value.items()
    for name in known:
        if key in _label_candidates(name):
            return name, payload
    return str(key), payload


def unwrap_opt(value: Any) -> Any:
    """Candid ``opt T`` decodes to ``[]`` or ``[x]``; return ``None`` or ``x``."""
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        return value[0] if value else None
    return value


def principal_text(value: Any) -> str:
    to_str = getattr(value, "to_str", None)
    if callable(to_str):
        return to_str()
    return str(value)


@dataclass(frozen=True)
class ActorMethod:
    name: str
    arg_types: Tuple[Any, ...]


@dataclass
class ActorInterface:
    name: str
    methods: Dict[str, ActorMethod] = dc_field(default_factory=dict)

    def method(self, name: str) -> ActorMethod:
        try:
            return self.methods[name]
        except KeyError as exc:
            raise KeyError(f"{self.name} interface has no method {name!r}") from exc

    def encode_args(self, name: str, args: Sequence[Any]) -> List[Dict[str, Any]]:
        method = self.method(name)
        if len(args) != len(method.arg_types):
            raise ValueError(
                f"{self.name}.{name} expects {len(method.arg_types)} arguments, got {len(args)}"
            )
        return [{"type": t, "value": v} for t, v in zip(method.arg_types, args)]


# ---------------------------------------------------------------------------
# Multisig canister
# ---------------------------------------------------------------------------

X402_TRANSFER_ACTION = Types.Record(
    {
        "to": Types.Text,
        "valid_after": Types.Text,
        "valid_before": Types.Text,
        "value": Types.Text,
        "domain_name": Types.Text,
        "domain_version": Types.Text,
        "vault_id": Types.Nat64,
        "domain_chain_id": Types.Text,
        "nonce": Types.Text,
        "verifying_contract": Types.Text,
    }
)

X402_REQUEST_TAG = "X402TransferWithAuthorization"

# Outgoing requests only ever carry the x402 case; a variant with fewer
# cases is a candid subtype of the canister's full RequestType.
REQUEST_TYPE = Types.Variant({X402_REQUEST_TAG: Types.Record({"action": X402_TRANSFER_ACTION})})

REQUEST = Types.Record(
    {
        "request_type": REQUEST_TYPE,
        "expire_time": Types.Opt(Types.Nat64),
    }
)

# Reply shapes, matching what the canisters send back.
REQUEST_STATUS = Types.Variant(
    {
        "Approved": Types.Null,
        "Rejected": Types.Null,
        "Executed": Types.Null,
        "Expired": Types.Null,
        "Pending": Types.Null,
    }
)

APPROVAL = Types.Record(
    {
        "approved": Types.Bool,
        "approver": Types.Principal,
        "timestamp": Types.Nat64,
    }
)

REQUEST_RECORD = Types.Record(
    {
        "id": Types.Nat64,
        "execution_result": Types.Opt(Types.Text),
        "status": REQUEST_STATUS,
        "executed_at": Types.Opt(Types.Nat64),
        "request": REQUEST,
        "created_at": Types.Nat64,
        "proposer": Types.Principal,
        "approvals": Types.Vec(APPROVAL),
    }
)

MULTISIG_INTERFACE = ActorInterface(
    "multisig",
    {
        "create_request": ActorMethod("create_request", (REQUEST,)),
        "get_request": ActorMethod("get_request", (Types.Nat64,)),
    },
)


# ---------------------------------------------------------------------------
# Register (directory) canister
# ---------------------------------------------------------------------------

USER = Types.Record(
    {
        "user_principal": Types.Principal,
        "user_name": Types.Text,
        "display_name": Types.Opt(Types.Text),
        "passkey_name": Types.Opt(Types.Vec(Types.Text)),
        "create_time": Types.Nat64,
        "update_time": Types.Nat64,
    }
)

REGISTER_INTERFACE = ActorInterface(
    "register",
    {
        "register_ii_user": ActorMethod(
            "register_ii_user", (Types.Text, Types.Text, Types.Principal)
        ),
        "get_user": ActorMethod("get_user", (Types.Text,)),
        "is_username_taken": ActorMethod("is_username_taken", (Types.Text,)),
    },
)


def first_value(decoded: Any) -> Optional[Any]:
    """Pull the single return value out of an ic-py decode result."""
    if isinstance(decoded, list):
        if not decoded:
            return None
        decoded = decoded[0]
    if isinstance(decoded, Mapping) and "value" in decoded and "type" in decoded:
        return decoded["value"]
    return decoded
