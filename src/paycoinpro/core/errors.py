"""
Error taxonomy shared by the request executor and the webhook verifier.

Every failed request surfaces as exactly one :class:`ClassifiedError` whose
``kind`` tells callers whether the server was reached at all, whether the
request was rejected for good, or whether it may succeed on retry.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Mapping, Optional

__all__ = [
    "ClassifiedError",
    "ErrorKind",
    "PayCoinProError",
    "RETRYABLE_KINDS",
    "WebhookVerificationError",
    "kind_for_status",
    "parse_retry_after",
]

DEFAULT_ERROR_CODE = "unknown_error"
REQUEST_ID_HEADER = "x-request-id"
RETRY_AFTER_HEADER = "retry-after"


class ErrorKind(str, Enum):
    CONNECTION = "connection_error"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    BAD_REQUEST = "bad_request"
    AUTHENTICATION = "authentication_error"
    PERMISSION_DENIED = "permission_denied"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    UNPROCESSABLE = "unprocessable_entity"
    RATE_LIMITED = "rate_limit_exceeded"
    INTERNAL = "internal_server_error"
    API = "api_error"
    SIGNATURE_VERIFICATION = "signature_verification_error"


_STATUS_TO_KIND: Dict[int, ErrorKind] = {
    400: ErrorKind.BAD_REQUEST,
    401: ErrorKind.AUTHENTICATION,
    403: ErrorKind.PERMISSION_DENIED,
    404: ErrorKind.NOT_FOUND,
    409: ErrorKind.CONFLICT,
    422: ErrorKind.UNPROCESSABLE,
    429: ErrorKind.RATE_LIMITED,
    500: ErrorKind.INTERNAL,
    502: ErrorKind.INTERNAL,
    503: ErrorKind.INTERNAL,
    504: ErrorKind.INTERNAL,
}

RETRYABLE_KINDS = frozenset(
    {
        ErrorKind.CONNECTION,
        ErrorKind.TIMEOUT,
        ErrorKind.RATE_LIMITED,
        ErrorKind.INTERNAL,
    }
)

_TRANSPORT_KINDS = frozenset(
    {ErrorKind.CONNECTION, ErrorKind.TIMEOUT, ErrorKind.CANCELLED}
)


def kind_for_status(status: int) -> ErrorKind:
    """Map an HTTP status code to its error kind."""
    return _STATUS_TO_KIND.get(status, ErrorKind.API)


def parse_retry_after(raw: Optional[str]) -> Optional[float]:
    """
    Parse a ``Retry-After`` header given in seconds.

    The HTTP-date form and anything negative or unparsable yield ``None`` so the
    caller falls back to exponential backoff.
    """
    if raw is None:
        return None
    try:
        value = float(raw.strip())
    except ValueError:
        return None
    if value < 0 or value != value:
        return None
    return value


class PayCoinProError(Exception):
    """Base class for every error raised by the client."""


class ClassifiedError(PayCoinProError):
    """
    A failed request, tagged with the :class:`ErrorKind` that caused it.

    HTTP failures carry ``status``, ``code``, ``details``, ``request_id`` and,
    for rate limits, ``retry_after`` (seconds). Transport failures only carry a
    message.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        status: Optional[int] = None,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        request_id: Optional[str] = None,
        retry_after: Optional[float] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status = status
        self.code = code if code is not None else kind.value
        self.details = details
        self.request_id = request_id
        self.retry_after = retry_after
        self.headers: Dict[str, str] = dict(headers or {})

    def __str__(self) -> str:
        if self.status is None:
            return f"[{self.kind.value}] {self.message}"
        suffix = f" (request {self.request_id})" if self.request_id else ""
        return f"[{self.status} {self.code}] {self.message}{suffix}"

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(kind={self.kind.value!r}, "
            f"status={self.status!r}, code={self.code!r}, message={self.message!r})"
        )

    @property
    def retryable(self) -> bool:
        return self.kind in RETRYABLE_KINDS

    @property
    def reached_server(self) -> bool:
        """``False`` for connection failures, timeouts and cancellations."""
        return self.kind not in _TRANSPORT_KINDS

    @property
    def is_client_error(self) -> bool:
        """A 4xx rejection that will not succeed without a different request."""
        return (
            self.status is not None
            and 400 <= self.status < 500
            and self.kind is not ErrorKind.RATE_LIMITED
        )

    @classmethod
    def from_response(
        cls,
        status: int,
        headers: Mapping[str, str],
        body: Any = None,
    ) -> "ClassifiedError":
        """
        Build the error for a non-success response.

        ``body`` is the decoded JSON body, if any. The ``error`` envelope is read
        best-effort; anything missing degrades to the default code and message.
        """
        error = body.get("error") if isinstance(body, Mapping) else None
        if not isinstance(error, Mapping):
            error = {}

        message = error.get("message") or f"Request failed with status {status}"
        code = error.get("code") or DEFAULT_ERROR_CODE
        details = error.get("details")
        if not isinstance(details, Mapping):
            details = None

        kind = kind_for_status(status)
        retry_after = None
        if kind is ErrorKind.RATE_LIMITED:
            retry_after = parse_retry_after(_header(headers, RETRY_AFTER_HEADER))

        return cls(
            kind,
            str(message),
            status=status,
            code=str(code),
            details=dict(details) if details is not None else None,
            request_id=_header(headers, REQUEST_ID_HEADER),
            retry_after=retry_after,
            headers=headers,
        )

    @classmethod
    def connection(cls, message: str = "Connection failed") -> "ClassifiedError":
        return cls(ErrorKind.CONNECTION, message)

    @classmethod
    def timeout(cls, message: str = "Request timed out") -> "ClassifiedError":
        return cls(ErrorKind.TIMEOUT, message)

    @classmethod
    def cancelled(cls, message: str = "Request was cancelled") -> "ClassifiedError":
        return cls(ErrorKind.CANCELLED, message)


class WebhookVerificationError(PayCoinProError):
    """Raised when a webhook payload fails authentication or freshness checks."""

    kind = ErrorKind.SIGNATURE_VERIFICATION

    def __init__(self, message: str = "Invalid webhook signature") -> None:
        super().__init__(message)
        self.message = message


def _header(headers: Mapping[str, str], name: str) -> Optional[str]:
    value = headers.get(name)
    if value is not None:
        return value
    lowered = name.lower()
    for key, candidate in headers.items():
        if key.lower() == lowered:
            return candidate
    return None
