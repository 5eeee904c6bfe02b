"""
Network primitive used by the request executor.

The executor only talks to a :class:`Transport`; :class:`RequestsTransport`
is the default and any object with the same ``send`` signature can replace it
(tests use an in-memory fake).
"""

from __future__ import annotations

import json
import socket
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Protocol

import requests
from requests.structures import CaseInsensitiveDict

from .cancellation import CancellationToken, RequestAborted

__all__ = [
    "RequestsTransport",
    "Transport",
    "TransportResponse",
]

_CHUNK_SIZE = 16 * 1024


def _socket_of(response: requests.Response) -> Optional[socket.socket]:
    sock = getattr(getattr(response.raw, "connection", None), "sock", None)
    if sock is None:
        # http.client drops conn.sock for "Connection: close" responses; the
        # body stream still holds the socket.
        stream = getattr(getattr(response.raw, "_fp", None), "fp", None)
        sock = getattr(getattr(stream, "raw", None), "_sock", None)
    return sock


def _abort(response: requests.Response) -> None:
    """Unblock any thread reading ``response`` and release its connection."""
    sock = _socket_of(response)
    if sock is not None:
        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            # already closed by the peer
            pass
    response.close()


@dataclass(frozen=True)
class TransportResponse:
    status_code: int
    headers: Mapping[str, str] = field(default_factory=CaseInsensitiveDict)
    content: bytes = b""

    def __post_init__(self) -> None:
        if not isinstance(self.headers, CaseInsensitiveDict):
            object.__setattr__(self, "headers", CaseInsensitiveDict(self.headers))

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def is_json(self) -> bool:
        return "application/json" in (self.headers.get("content-type") or "")

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")

    def json(self) -> Any:
        return json.loads(self.content)


class Transport(Protocol):
    def send(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str],
        body: Optional[bytes],
        timeout: float,
        cancel_token: CancellationToken,
    ) -> TransportResponse:
        """
        Perform one physical HTTP call.

        Failures are raised as ``requests`` exceptions, or as
        :class:`RequestAborted` when ``cancel_token`` fires mid-call.
        """
        ...


class RequestsTransport:
    """
    :class:`Transport` backed by a :class:`requests.Session`.

    The body is streamed in chunks. When the token fires, the underlying
    socket is shut down so a read blocked on a slow server returns at once and
    the call raises :class:`RequestAborted` with the token's reason.
    """

    def __init__(self, session: Optional[requests.Session] = None) -> None:
        self.session = session or requests.Session()

    def send(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str],
        body: Optional[bytes],
        timeout: float,
        cancel_token: CancellationToken,
    ) -> TransportResponse:
        cancel_token.raise_if_cancelled()
        response = self.session.request(
            method,
            url,
            headers=dict(headers),
            data=body,
            timeout=timeout,
            stream=True,
        )
        unregister = cancel_token.add_callback(lambda _: _abort(response))
        try:
            chunks = []
            for chunk in response.iter_content(chunk_size=_CHUNK_SIZE):
                cancel_token.raise_if_cancelled()
                chunks.append(chunk)
        except RequestAborted:
            raise
        except Exception as exc:
            # A read torn down by _abort surfaces as whatever the socket layer
            # raised; report the token's reason instead.
            if cancel_token.cancelled:
                raise RequestAborted(cancel_token.reason) from exc
            raise
        finally:
            unregister()
            response.close()

        cancel_token.raise_if_cancelled()
        return TransportResponse(
            status_code=response.status_code,
            headers=CaseInsensitiveDict(response.headers),
            content=b"".join(chunks),
        )

    def close(self) -> None:
        self.session.close()
