"""Data carried between the orchestrator and the multisig canister."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union

from .constants import DEFAULT_POLL_INTERVAL, DEFAULT_POLL_MAX_ATTEMPTS
from .hex import normalize_uint256
from .idl import X402_REQUEST_TAG, field as candid_field, principal_text, unwrap_opt, variant_tag
from .validation import SignRequestParams

NANOS_PER_MILLI = 1_000_000


class RequestStatus(str, enum.Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    EXECUTED = "Executed"
    EXPIRED = "Expired"

    @property
    def is_terminal(self) -> bool:
        return self in (RequestStatus.EXECUTED, RequestStatus.REJECTED, RequestStatus.EXPIRED)


_STATUS_NAMES = [s.value for s in RequestStatus]


@dataclass(frozen=True)
class TransferAuthorizationAction:
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

    @classmethod
    def from_params(cls, params: SignRequestParams) -> "TransferAuthorizationAction":
        """Build the action with every uint256 field padded to 32 bytes."""
        return cls(
            vault_id=params.vault_id,
            to=params.to,
            value=normalize_uint256(params.value),
            valid_after=normalize_uint256(params.valid_after),
            valid_before=normalize_uint256(params.valid_before),
            nonce=normalize_uint256(params.nonce),
            verifying_contract=params.verifying_contract,
            domain_chain_id=params.domain_chain_id,
            domain_name=params.domain_name,
            domain_version=params.domain_version,
        )

    def to_candid(self) -> Dict[str, Any]:
        return {
            "to": self.to,
            "valid_after": self.valid_after,
            "valid_before": self.valid_before,
            "value": self.value,
            "domain_name": self.domain_name,
            "domain_version": self.domain_version,
            "vault_id": self.vault_id,
            "domain_chain_id": self.domain_chain_id,
            "nonce": self.nonce,
            "verifying_contract": self.verifying_contract,
        }


@dataclass(frozen=True)
class ApprovalRequest:
    action: TransferAuthorizationAction
    expire_time: Optional[int] = None

    def to_candid(self) -> Dict[str, Any]:
        return {
            "request_type": {X402_REQUEST_TAG: {"action": self.action.to_candid()}},
            "expire_time": [] if self.expire_time is None else [self.expire_time],
        }


@dataclass(frozen=True)
class Approval:
    approver: str
    approved: bool
    timestamp: int

    @classmethod
    def from_candid(cls, value: Mapping[Any, Any]) -> "Approval":
        return cls(
            approver=principal_text(candid_field(value, "approver")),
            approved=bool(candid_field(value, "approved")),
            timestamp=int(candid_field(value, "timestamp") or 0),
        )


@dataclass
class RequestRecord:
    """Read-only snapshot of a request as seen by the canister.

    ``status`` is a :class:`RequestStatus` for known states, or the raw tag
    otherwise. ``request`` is kept as decoded so unknown request variants
    pass through untouched.
    """

    id: int
    status: Union[RequestStatus, str]
    created_at: int
    proposer: str
    approvals: List[Approval] = field(default_factory=list)
    execution_result: Optional[str] = None
    executed_at: Optional[int] = None
    request: Any = None

    @property
    def status_name(self) -> str:
        if isinstance(self.status, RequestStatus):
            return self.status.value
        return str(self.status)

    @classmethod
    def from_candid(cls, value: Mapping[Any, Any]) -> "RequestRecord":
        tag, _ = variant_tag(candid_field(value, "status"), _STATUS_NAMES)
        status: Union[RequestStatus, str]
        try:
            status = RequestStatus(tag)
        except ValueError:
            status = tag

        executed_at = unwrap_opt(candid_field(value, "executed_at"))
        return cls(
            id=int(candid_field(value, "id")),
            status=status,
            created_at=int(candid_field(value, "created_at") or 0),
            proposer=principal_text(candid_field(value, "proposer", "")),
            approvals=[Approval.from_candid(a) for a in candid_field(value, "approvals") or []],
            execution_result=unwrap_opt(candid_field(value, "execution_result")),
            executed_at=int(executed_at) if executed_at is not None else None,
            request=candid_field(value, "request"),
        )


@dataclass(frozen=True)
class SignatureResult:
    status: str
    request_id: int
    created_at: int
    signature: Optional[str] = None
    executed_at: Optional[int] = None

    @classmethod
    def from_record(cls, request_id: int, record: RequestRecord) -> "SignatureResult":
        signature = None
        executed_at = None
        if record.status is RequestStatus.EXECUTED and record.execution_result:
            signature = record.execution_result
            if record.executed_at is not None:
                executed_at = record.executed_at // NANOS_PER_MILLI
        return cls(
            status=record.status_name,
            request_id=request_id,
            created_at=record.created_at // NANOS_PER_MILLI,
            signature=signature,
            executed_at=executed_at,
        )


@dataclass(frozen=True)
class UserRecord:
    user_principal: str
    user_name: str
    display_name: Optional[str]
    passkey_names: List[str]
    create_time: int
    update_time: int

    @classmethod
    def from_candid(cls, value: Mapping[Any, Any]) -> "UserRecord":
        return cls(
            user_principal=principal_text(candid_field(value, "user_principal")),
            user_name=str(candid_field(value, "user_name")),
            display_name=unwrap_opt(candid_field(value, "display_name")),
            passkey_names=list(unwrap_opt(candid_field(value, "passkey_name")) or []),
            create_time=int(candid_field(value, "create_time") or 0),
            update_time=int(candid_field(value, "update_time") or 0),
        )


@dataclass(frozen=True)
class PollingConfig:
    max_attempts: int = DEFAULT_POLL_MAX_ATTEMPTS
    interval: float = DEFAULT_POLL_INTERVAL

    def __post_init__(self) -> None:
        if self.max_attempts < 0:
            raise ValueError("max_attempts must be non-negative")
        if self.interval < 0:
            raise ValueError("interval must be non-negative")

    @classmethod
    def from_value(
        cls, value: Union["PollingConfig", Mapping[str, Any], None]
    ) -> "PollingConfig":
        if value is None:
            return cls()
        if isinstance(value, PollingConfig):
            return value
        max_attempts = value.get("max_attempts", value.get("maxAttempts"))
        interval = value.get("interval")
        return cls(
            max_attempts=DEFAULT_POLL_MAX_ATTEMPTS if max_attempts is None else int(max_attempts),
            interval=DEFAULT_POLL_INTERVAL if interval is None else float(interval),
        )


@dataclass
class PaidServiceRequest:
    """Everything needed to pay for and fetch one x402-gated resource."""

    vault_id: int
    from_address: str
    payment_requirements: Any
    api_url: str
    polling: Optional[PollingConfig] = None
