"""Exception types raised by the multisig x402 client."""

from __future__ import annotations

from typing import Any, Dict, Optional


class MultiSigX402Error(Exception):
    """Base class for every error raised by this package."""


class FormatError(MultiSigX402Error, ValueError):
    """Raised when an input is not in the expected encoding (hex, PEM, JSON)."""


class ValidationError(MultiSigX402Error, ValueError):
    """Raised when a parameter is well formed but violates a constraint."""

    def __init__(self, field: str, value: Any, message: str) -> None:
        super().__init__(message)
        self.field = field
        self.value = value


class UnsupportedNetworkError(ValidationError):
    """Raised when a chain id or network name is not served by the multisig wallet."""


class UnsupportedTokenError(ValidationError):
    """Raised when a token contract or symbol is not supported on a network."""


class ConflictError(MultiSigX402Error):
    """Raised when an identity already exists and overwrite was not requested."""


class NotFoundError(MultiSigX402Error, LookupError):
    """Raised when an identity or request does not exist."""


class IdentityIntegrityError(MultiSigX402Error):
    """Raised when a stored principal does not match the loaded key pair."""

    def __init__(self, name: str, stored: str, loaded: str) -> None:
        super().__init__(
            f"Principal mismatch for identity '{name}': stored={stored}, loaded={loaded}"
        )
        self.name = name
        self.stored = stored
        self.loaded = loaded


class RemoteCallError(MultiSigX402Error):
    """Raised when a canister call fails in transport or decoding."""

    def __init__(self, canister_id: str, method: str, cause: BaseException | str) -> None:
        super().__init__(f"Call to {canister_id}::{method} failed: {cause}")
        self.canister_id = canister_id
        self.method = method
        self.cause = cause


class SubmissionError(MultiSigX402Error):
    """Raised when ``create_request`` fails; carries the request context."""

    def __init__(self, message: str, context: Dict[str, Any]) -> None:
        lines = [f"Failed to create X402 signature request: {message}", "Request context:"]
        lines.extend(f"  {key}: {value}" for key, value in context.items())
        super().__init__("\n".join(lines))
        self.context = context


class RegistrationError(MultiSigX402Error):
    """Raised when the directory canister refuses a registration."""


class RequestOutcomeError(MultiSigX402Error):
    def __init__(self, request_id: int, message: str) -> None:
        super().__init__(f"{message} (request {request_id})")
        self.request_id = request_id


class RejectedError(RequestOutcomeError):
    """The approvers rejected the signature request."""

    def __init__(self, request_id: int) -> None:
        super().__init__(request_id, "Signature request rejected")


class ExpiredError(RequestOutcomeError):
    """The signature request expired before reaching consensus."""

    def __init__(self, request_id: int) -> None:
        super().__init__(request_id, "Signature request expired")


class PollingTimeoutError(RequestOutcomeError, TimeoutError):
    """The poll budget ran out; the request may still resolve remotely.

    ``request_id`` can be handed back to ``wait_for_signature`` to resume.
    """

    def __init__(self, request_id: int, attempts: int, last_status: Optional[str]) -> None:
        super().__init__(
            request_id,
            f"Polling timeout after {attempts} attempts, last status {last_status}",
        )
        self.attempts = attempts
        self.last_status = last_status


class MissingSignatureError(RequestOutcomeError):
    """The request executed but no signature was attached to it."""

    def __init__(self, request_id: int) -> None:
        super().__init__(request_id, "Failed to retrieve signature")


class ServiceError(MultiSigX402Error):
    """The paid resource answered a signed payment with a non-success status."""

    def __init__(self, status: int, reason: str = "", body: Any = None) -> None:
        super().__init__(f"Server returned error: {status} {reason}".rstrip())
        self.status = status
        self.reason = reason
        self.body = body
