"""
Webhook signature verification.

Two signature schemes exist and the caller picks one explicitly:

``SignatureScheme.HMAC_SHA512`` (default)
    Header ``x-payload-hash`` carrying ``hex(HMAC-SHA512(secret, body))``. This
    is what the gateway sends. There is no signed timestamp in the header, so a
    tolerance, when given, is checked against the event's signed ``createdAt``
    once the signature has been verified.

``SignatureScheme.TIMESTAMPED_SHA256``
    Header ``x-paycoinpro-signature`` carrying ``t=<unix>,v1=<hex>`` where the
    digest is ``HMAC-SHA256(secret, "<t>." + body)``. Stale or future
    timestamps outside the tolerance (300 seconds by default) are rejected
    before any digest is computed.

The payload must be the raw bytes received on the wire. It is parsed only
after the signature has been accepted.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from .errors import WebhookVerificationError

__all__ = [
    "DEFAULT_TOLERANCE_SECONDS",
    "SignatureScheme",
    "VerificationContext",
    "WebhookEvent",
    "WebhookVerifier",
    "get_signature_from_headers",
    "secure_compare",
]

DEFAULT_TOLERANCE_SECONDS = 300

Payload = Union[bytes, str]


class SignatureScheme(str, Enum):
    HMAC_SHA512 = "hmac-sha512"
    TIMESTAMPED_SHA256 = "timestamped-sha256"

    @property
    def header(self) -> str:
        if self is SignatureScheme.HMAC_SHA512:
            return "x-payload-hash"
        return "x-paycoinpro-signature"


def _to_bytes(value: Payload) -> bytes:
    if isinstance(value, bytes):
        return value
    if isinstance(value, str):
        return value.encode("utf-8")
    raise TypeError(
        "Webhook payload must be the raw request body as bytes or str, "
        f"not {type(value).__name__}"
    )


def secure_compare(expected: Payload, supplied: Payload) -> bool:
    """
    Constant-time comparison of two signatures.

    Different lengths fail straight away; only the length leaks.
    """
    left = _to_bytes(expected)
    right = _to_bytes(supplied)
    if len(left) != len(right):
        return False
    return hmac.compare_digest(left, right)


@dataclass(frozen=True)
class WebhookEvent:
    id: Optional[str]
    type: Optional[str]
    data: Any
    created_at: Optional[str]
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "WebhookEvent":
        return cls(
            id=payload.get("id"),
            type=payload.get("type", payload.get("event")),
            data=payload.get("data"),
            created_at=payload.get("createdAt"),
            raw=dict(payload),
        )

    def created_timestamp(self) -> Optional[float]:
        """``createdAt`` as a unix timestamp, or ``None`` if absent or malformed."""
        if not self.created_at:
            return None
        try:
            parsed = datetime.fromisoformat(self.created_at.replace("Z", "+00:00"))
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed.timestamp()


@dataclass(frozen=True)
class VerificationContext:
    payload: bytes
    signature: Optional[str]
    secret: str
    tolerance: Optional[int] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "payload", _to_bytes(self.payload))


def get_signature_from_headers(
    headers: Mapping[str, Any],
    scheme: SignatureScheme = SignatureScheme.HMAC_SHA512,
) -> Optional[str]:
    """
    Pull the signature for ``scheme`` out of a header mapping.

    Lookup is case-insensitive; list values (as some frameworks produce) yield
    their first element.
    """
    name = scheme.header
    value = headers.get(name)
    if value is None:
        for key, candidate in headers.items():
            if isinstance(key, str) and key.lower() == name:
                value = candidate
                break
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    return value


def _parse_timestamped_header(header: str) -> Tuple[int, List[str]]:
    timestamp: Optional[int] = None
    signatures: List[str] = []
    for part in header.split(","):
        key, sep, value = part.strip().partition("=")
        if not sep:
            continue
        if key == "t":
            try:
                timestamp = int(value)
            except ValueError as exc:
                raise WebhookVerificationError("Malformed signature timestamp") from exc
        elif key == "v1" and value:
            signatures.append(value)

    if timestamp is None:
        raise WebhookVerificationError("Signature header has no timestamp")
    if not signatures:
        raise WebhookVerificationError("Signature header has no v1 signature")
    return timestamp, signatures


class WebhookVerifier:
    """
    Verify inbound webhook payloads with a fixed :class:`SignatureScheme`.

    ``clock`` returns the current unix time and exists so tests can pin it.
    """

    def __init__(
        self,
        scheme: SignatureScheme = SignatureScheme.HMAC_SHA512,
        *,
        tolerance: Optional[int] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.scheme = SignatureScheme(scheme)
        if tolerance is None and self.scheme is SignatureScheme.TIMESTAMPED_SHA256:
            tolerance = DEFAULT_TOLERANCE_SECONDS
        if tolerance is not None and tolerance < 0:
            raise ValueError("tolerance must not be negative")
        self.tolerance = tolerance
        self._clock = clock

    @property
    def signature_header(self) -> str:
        return self.scheme.header

    def compute_digest(self, payload: Payload, secret: str, timestamp: Optional[int] = None) -> str:
        raw = _to_bytes(payload)
        key = secret.encode("utf-8")
        if self.scheme is SignatureScheme.HMAC_SHA512:
            return hmac.new(key, raw, hashlib.sha512).hexdigest()
        if timestamp is None:
            raise ValueError("The timestamped scheme needs a timestamp")
        signed = str(timestamp).encode("ascii") + b"." + raw
        return hmac.new(key, signed, hashlib.sha256).hexdigest()

    def sign(self, payload: Payload, secret: str, timestamp: Optional[int] = None) -> str:
        """
        Produce the header value the gateway would send for ``payload``.
        """
        if not secret:
            raise ValueError("Webhook secret must not be empty")
        if self.scheme is SignatureScheme.HMAC_SHA512:
            return self.compute_digest(payload, secret)
        if timestamp is None:
            timestamp = int(self._clock())
        digest = self.compute_digest(payload, secret, timestamp)
        return f"t={timestamp},v1={digest}"

    def verify(self, context: VerificationContext) -> WebhookEvent:
        """
        Authenticate ``context`` and return the parsed event.

        Raises :class:`WebhookVerificationError` on any failure.
        """
        if not context.signature:
            raise WebhookVerificationError("Missing webhook signature")
        if not context.secret:
            raise WebhookVerificationError("Missing webhook secret")

        tolerance = self.tolerance if context.tolerance is None else context.tolerance

        if self.scheme is SignatureScheme.HMAC_SHA512:
            expected = self.compute_digest(context.payload, context.secret)
            if not secure_compare(expected, context.signature):
                raise WebhookVerificationError("Invalid webhook signature")
            event = self._parse(context.payload)
            if tolerance is not None:
                self._check_event_age(event, tolerance)
            return event

        timestamp, candidates = _parse_timestamped_header(context.signature)
        self._check_timestamp(timestamp, tolerance)
        expected = self.compute_digest(context.payload, context.secret, timestamp)
        matched = False
        for candidate in candidates:
            matched |= secure_compare(expected, candidate)
        if not matched:
            raise WebhookVerificationError("Invalid webhook signature")
        return self._parse(context.payload)

    def construct_event(
        self,
        payload: Payload,
        signature: Optional[str],
        secret: str,
        *,
        tolerance: Optional[int] = None,
    ) -> WebhookEvent:
        return self.verify(
            VerificationContext(
                payload=_to_bytes(payload),
                signature=signature,
                secret=secret,
                tolerance=tolerance,
            )
        )

    def verify_signature(self, payload: Payload, signature: Optional[str], secret: str) -> bool:
        """Signature check only; never parses the payload."""
        if not signature or not secret:
            return False
        if self.scheme is SignatureScheme.HMAC_SHA512:
            return secure_compare(self.compute_digest(payload, secret), signature)
        try:
            timestamp, candidates = _parse_timestamped_header(signature)
            self._check_timestamp(timestamp, self.tolerance)
        except WebhookVerificationError:
            return False
        expected = self.compute_digest(payload, secret, timestamp)
        matched = False
        for candidate in candidates:
            matched |= secure_compare(expected, candidate)
        return matched

    def _check_timestamp(self, timestamp: int, tolerance: Optional[int]) -> None:
        if tolerance is None:
            return
        skew = self._clock() - timestamp
        if skew > tolerance:
            raise WebhookVerificationError("Webhook timestamp is outside the tolerance window")
        if skew < -tolerance:
            raise WebhookVerificationError("Webhook timestamp is too far in the future")

    def _check_event_age(self, event: WebhookEvent, tolerance: int) -> None:
        created = event.created_timestamp()
        if created is None:
            raise WebhookVerificationError("Webhook event has no usable createdAt timestamp")
        skew = self._clock() - created
        if skew > tolerance or skew < -tolerance:
            raise WebhookVerificationError("Webhook event is outside the tolerance window")

    @staticmethod
    def _parse(payload: bytes) -> WebhookEvent:
        try:
            decoded = json.loads(payload)
        except ValueError as exc:
            raise WebhookVerificationError("Failed to parse webhook payload") from exc
        if not isinstance(decoded, dict):
            raise WebhookVerificationError("Webhook payload is not a JSON object")
        return WebhookEvent.from_payload(decoded)
