"""x402 payments signed by an Internet Computer multisig wallet (Python)."""

from __future__ import annotations

from .constants import (
    NETWORK_CHAIN_IDS,
    SUPPORTED_NETWORKS,
    SUPPORTED_TOKENS,
    get_eip712_domain_params,
    is_supported_token,
)
from .errors import (
    ConflictError,
    ExpiredError,
    FormatError,
    IdentityIntegrityError,
    MissingSignatureError,
    MultiSigX402Error,
    NotFoundError,
    PollingTimeoutError,
    RegistrationError,
    RejectedError,
    RemoteCallError,
    ServiceError,
    SubmissionError,
    UnsupportedNetworkError,
    UnsupportedTokenError,
    ValidationError,
)
from .hex import generate_nonce, normalize_uint256, pad_hex
from .validation import SignRequestParams, validate_sign_request_params

__all__ = [
    "NETWORK_CHAIN_IDS",
    "SUPPORTED_NETWORKS",
    "SUPPORTED_TOKENS",
    "get_eip712_domain_params",
    "is_supported_token",
    "ConflictError",
    "ExpiredError",
    "FormatError",
    "IdentityIntegrityError",
    "MissingSignatureError",
    "MultiSigX402Error",
    "NotFoundError",
    "PollingTimeoutError",
    "RegistrationError",
    "RejectedError",
    "RemoteCallError",
    "ServiceError",
    "SubmissionError",
    "UnsupportedNetworkError",
    "UnsupportedTokenError",
    "ValidationError",
    "generate_nonce",
    "normalize_uint256",
    "pad_hex",
    "SignRequestParams",
    "validate_sign_request_params",
]

try:  # Optional: identities and canister calls depend on ic-py
    from .identity import IdentityHandle, IdentityStore
    from .models import (
        PaidServiceRequest,
        PollingConfig,
        RequestRecord,
        RequestStatus,
        SignatureResult,
    )

    __all__.extend(
        [
            "IdentityHandle",
            "IdentityStore",
            "PaidServiceRequest",
            "PollingConfig",
            "RequestRecord",
            "RequestStatus",
            "SignatureResult",
        ]
    )
except Exception:
    IdentityHandle = None  # type: ignore[assignment]
    IdentityStore = None  # type: ignore[assignment]
    PaidServiceRequest = None  # type: ignore[assignment]
    PollingConfig = None  # type: ignore[assignment]
    RequestRecord = None  # type: ignore[assignment]
    RequestStatus = None  # type: ignore[assignment]
    SignatureResult = None  # type: ignore[assignment]

try:  # Optional: clients depend on ic-py + httpx + x402
    from .client import X402MultiSig, X402MultiSigSync
    from .config import X402MultiSigOptions
    from .orchestrator import PaymentAuthorizer

    __all__.extend(
        ["X402MultiSig", "X402MultiSigSync", "X402MultiSigOptions", "PaymentAuthorizer"]
    )
except Exception:
    X402MultiSig = None  # type: ignore[assignment]
    X402MultiSigSync = None  # type: ignore[assignment]
    X402MultiSigOptions = None  # type: ignore[assignment]
    PaymentAuthorizer = None  # type: ignore[assignment]

try:  # Optional: re-export the x402 v1 requirements model if available
    from x402.schemas.v1 import PaymentRequirementsV1

    __all__.append("PaymentRequirementsV1")
except Exception:
    pass
