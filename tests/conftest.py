"""Shared fixtures for the PayCoinPro client tests."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Mapping, Optional
from unittest.mock import patch

import pytest

from paycoinpro.core.cancellation import CancellationToken
from paycoinpro.core.config import ClientConfig
from paycoinpro.core.executor import RequestExecutor
from paycoinpro.core.transport import TransportResponse


def json_response(
    payload: Any,
    status: int = 200,
    headers: Optional[Mapping[str, str]] = None,
) -> TransportResponse:
    merged = {"content-type": "application/json"}
    merged.update(headers or {})
    return TransportResponse(
        status_code=status,
        headers=merged,
        content=json.dumps(payload).encode("utf-8"),
    )


def error_response(
    status: int,
    code: str = "some_error",
    message: str = "Something went wrong",
    headers: Optional[Mapping[str, str]] = None,
    details: Optional[Dict[str, Any]] = None,
) -> TransportResponse:
    error: Dict[str, Any] = {"code": code, "message": message}
    if details is not None:
        error["details"] = details
    return json_response({"success": False, "error": error}, status=status, headers=headers)


class FakeTransport:
    """
    Replays a scripted list of outcomes. Each entry is either a
    :class:`TransportResponse` to return or an exception to raise.
    """

    def __init__(self, *outcomes: Any) -> None:
        self.outcomes: List[Any] = list(outcomes)
        self.calls: List[Dict[str, Any]] = []

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
        self.calls.append(
            {
                "method": method,
                "url": url,
                "headers": dict(headers),
                "body": body,
                "timeout": timeout,
                "cancel_token": cancel_token,
            }
        )
        if not self.outcomes:
            raise AssertionError("FakeTransport ran out of scripted outcomes")
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


@pytest.fixture
def config() -> ClientConfig:
    return ClientConfig(api_key="pk_test_123", base_url="https://api.example.com/v1")


@pytest.fixture
def make_executor(config):
    def factory(*outcomes: Any, **config_overrides: Any):
        cfg = config
        if config_overrides:
            values = {
                "api_key": config.api_key,
                "base_url": config.base_url,
                "timeout": config.timeout,
                "max_retries": config.max_retries,
                "debug": config.debug,
                "default_headers": config.default_headers,
            }
            values.update(config_overrides)
            cfg = ClientConfig(**values)
        transport = FakeTransport(*outcomes)
        return RequestExecutor(cfg, transport=transport, rng=lambda: 0.0), transport

    return factory


@pytest.fixture
def no_sleep():
    with patch("paycoinpro.core.executor.time.sleep") as mock_sleep:
        yield mock_sleep
