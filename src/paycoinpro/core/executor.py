"""
Resilient request executor for the PayCoinPro API.

One call to :meth:`RequestExecutor.execute` turns a :class:`RequestSpec` into
one or more physical attempts. Each attempt runs under its own timeout source,
combined with the caller's cancellation token when one is supplied. Retryable
failures (connection errors, timeouts, 429 and 5xx) are retried with
exponential backoff until the retry budget runs out; everything else is raised
immediately.
"""

from __future__ import annotations

import json
import logging
import random
import time
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple
from urllib.parse import urlencode

import requests

from .. import __version__
from .cancellation import CancellationToken, RequestAborted, TIMEOUT_REASON, TimeoutSource
from .config import ClientConfig, ConfigError
from .errors import ClassifiedError
from .transport import RequestsTransport, Transport, TransportResponse

__all__ = [
    "BASE_DELAY_MS",
    "MAX_DELAY_MS",
    "RequestExecutor",
    "RequestSpec",
    "build_url",
    "compute_backoff",
    "encode_body",
    "encode_query",
]

logger = logging.getLogger(__name__)

BASE_DELAY_MS = 1000
MAX_DELAY_MS = 30000
JITTER_RATIO = 0.3

IDEMPOTENCY_HEADER = "Idempotency-Key"
USER_AGENT = f"paycoinpro-python/{__version__}"
_REDACTED_HEADERS = {"authorization"}


@dataclass(frozen=True)
class RequestSpec:
    """
    One logical API call. ``timeout`` is in seconds; ``max_retries`` counts the
    extra attempts allowed after the first.
    """

    method: str
    path: str
    query: Optional[Mapping[str, Any]] = None
    body: Any = None
    headers: Mapping[str, str] = field(default_factory=dict)
    idempotency_key: Optional[str] = None
    timeout: Optional[float] = None
    max_retries: Optional[int] = None
    cancel_token: Optional[CancellationToken] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", self.method.upper())
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))
        if self.query is not None:
            object.__setattr__(self, "query", MappingProxyType(dict(self.query)))
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be greater than zero")
        if self.max_retries is not None and self.max_retries < 0:
            raise ValueError("max_retries must not be negative")


def _isoformat(value: date) -> str:
    if isinstance(value, datetime) and value.tzinfo is not None:
        return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
    return value.isoformat()


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, date):
        return _isoformat(value)
    return str(value)


def _json_default(value: Any) -> Any:
    if isinstance(value, date):
        return _isoformat(value)
    if isinstance(value, Decimal):
        return str(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def encode_body(body: Any) -> Optional[bytes]:
    """JSON-encode a request body; dates become ISO-8601 and decimals strings."""
    if body is None:
        return None
    return json.dumps(body, default=_json_default).encode("utf-8")


def encode_query(params: Optional[Mapping[str, Any]]) -> List[Tuple[str, str]]:
    """
    Flatten query parameters into ordered ``(key, value)`` pairs.

    ``None`` is dropped, dates become ISO-8601 strings and lists or tuples
    expand into one entry per element.
    """
    pairs: List[Tuple[str, str]] = []
    for key, value in (params or {}).items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            pairs.extend((key, _query_value(item)) for item in value if item is not None)
        else:
            pairs.append((key, _query_value(value)))
    return pairs


def build_url(base_url: str, path: str, params: Optional[Mapping[str, Any]] = None) -> str:
    url = f"{base_url.rstrip('/')}/{path.lstrip('/')}"
    query = urlencode(encode_query(params))
    if query:
        url = f"{url}?{query}"
    return url


def compute_backoff(
    attempt: int,
    retry_after: Optional[float] = None,
    *,
    rng: Callable[[], float] = random.random,
) -> float:
    """
    Delay in milliseconds before retry number ``attempt`` (zero-indexed).

    A server supplied ``retry_after`` (seconds) wins over exponential backoff.
    """
    if retry_after is not None:
        return min(retry_after * 1000, MAX_DELAY_MS)

    exponential = BASE_DELAY_MS * (2 ** attempt)
    jitter = rng() * JITTER_RATIO * exponential
    return min(exponential + jitter, MAX_DELAY_MS)


def _aborted(reason: Optional[str], timeout: float) -> ClassifiedError:
    if reason == TIMEOUT_REASON:
        return ClassifiedError.timeout(f"Request timed out after {timeout:g}s")
    return ClassifiedError.cancelled()


def _redact(headers: Mapping[str, str]) -> Dict[str, str]:
    return {
        key: ("***" if key.lower() in _REDACTED_HEADERS else value)
        for key, value in headers.items()
    }


class RequestExecutor:
    """
    Runs :class:`RequestSpec` instances against the configured API.

    The executor holds no per-call state and can be shared between threads.
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        transport: Optional[Transport] = None,
        rng: Callable[[], float] = random.random,
    ) -> None:
        if not config.api_key:
            raise ConfigError("API key is required")
        self.config = config
        self.transport: Transport = transport or RequestsTransport()
        self._rng = rng

    def get(
        self,
        path: str,
        params: Optional[Mapping[str, Any]] = None,
        **options: Any,
    ) -> Any:
        return self.execute(RequestSpec("GET", path, query=params, **options))

    def post(self, path: str, body: Any = None, **options: Any) -> Any:
        return self.execute(RequestSpec("POST", path, body=body, **options))

    def put(self, path: str, body: Any = None, **options: Any) -> Any:
        return self.execute(RequestSpec("PUT", path, body=body, **options))

    def patch(self, path: str, body: Any = None, **options: Any) -> Any:
        return self.execute(RequestSpec("PATCH", path, body=body, **options))

    def delete(self, path: str, **options: Any) -> Any:
        return self.execute(RequestSpec("DELETE", path, **options))

    def build_headers(self, spec: RequestSpec) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.config.api_key}",
            "User-Agent": USER_AGENT,
        }
        headers.update(self.config.default_headers)
        headers.update(spec.headers)
        if spec.idempotency_key:
            headers[IDEMPOTENCY_HEADER] = spec.idempotency_key
        return headers

    def execute(self, spec: RequestSpec) -> Any:
        """
        Run ``spec`` and return the decoded payload.

        Raises :class:`ClassifiedError` once the error is terminal or the retry
        budget is spent; the last error is raised as-is.
        """
        max_retries = self.config.max_retries if spec.max_retries is None else spec.max_retries
        url = build_url(self.config.base_url, spec.path, spec.query)
        headers = self.build_headers(spec)
        body = encode_body(spec.body)
        caller_token = spec.cancel_token

        attempt = 0
        while True:
            if caller_token is not None and caller_token.cancelled:
                raise ClassifiedError.cancelled()

            try:
                return self._attempt(spec, url, headers, body, attempt)
            except ClassifiedError as error:
                if not error.retryable or attempt >= max_retries:
                    raise
                if caller_token is not None and caller_token.cancelled:
                    raise ClassifiedError.cancelled() from error

                delay_ms = compute_backoff(attempt, error.retry_after, rng=self._rng)
                self._trace(
                    "Retrying request (attempt %d/%d) after %.0fms: %s",
                    attempt + 1,
                    max_retries,
                    delay_ms,
                    error,
                )
                if self._pause(delay_ms / 1000, caller_token):
                    raise ClassifiedError.cancelled() from error
            attempt += 1

    def _pause(self, seconds: float, token: Optional[CancellationToken]) -> bool:
        """Wait out a backoff delay; ``True`` means the caller cancelled meanwhile."""
        if token is None:
            time.sleep(seconds)
            return False
        return token.wait(seconds)

    def _attempt(
        self,
        spec: RequestSpec,
        url: str,
        headers: Mapping[str, str],
        body: Optional[bytes],
        attempt: int,
    ) -> Any:
        timeout = self.config.timeout if spec.timeout is None else spec.timeout
        self._trace("%s %s (attempt %d)", spec.method, url, attempt)

        with TimeoutSource(timeout) as timeout_token:
            signal = CancellationToken.combine(spec.cancel_token, timeout_token)
            try:
                response = self.transport.send(
                    spec.method,
                    url,
                    headers=headers,
                    body=body,
                    timeout=timeout,
                    cancel_token=signal,
                )
            except RequestAborted as exc:
                raise _aborted(exc.reason, timeout) from exc
            except requests.RequestException as exc:
                # The token may have torn the call down before the failure
                # surfaced; its reason takes precedence.
                if signal.cancelled:
                    raise _aborted(signal.reason, timeout) from exc
                if isinstance(exc, requests.Timeout):
                    raise ClassifiedError.timeout(
                        f"Request timed out after {timeout:g}s"
                    ) from exc
                raise ClassifiedError.connection(str(exc) or "Connection failed") from exc
            finally:
                signal.release()

        self._trace(
            "Response: %d %s",
            response.status_code,
            _redact(dict(response.headers)),
        )
        return self._decode(response)

    def _decode(self, response: TransportResponse) -> Any:
        data: Any = None
        decoded = False
        if response.content and response.is_json:
            try:
                data = response.json()
                decoded = True
            except ValueError:
                data = None

        if not response.ok:
            raise ClassifiedError.from_response(response.status_code, response.headers, data)

        if decoded:
            if isinstance(data, dict) and "data" in data:
                return data["data"]
            return data
        return response.text or None

    def _trace(self, message: str, *args: Any) -> None:
        if self.config.debug:
            logger.debug(message, *args)
