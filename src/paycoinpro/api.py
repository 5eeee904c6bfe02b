"""
Public, high-level helpers for building a PayCoinPro client.
"""

from __future__ import annotations

from typing import Mapping, Optional

from .core.client import PayCoinProClient
from .core.config import ClientConfig, ClientParameters, load_client_config
from .core.transport import Transport
from .core.webhooks import SignatureScheme, WebhookEvent, WebhookVerifier

__all__ = [
    "construct_event",
    "create_client",
]


def create_client(
    *,
    config: Optional[ClientConfig] = None,
    transport: Optional[Transport] = None,
    env_file: Optional[str] = ".env",
    overrides: Optional[Mapping[str, str]] = None,
    base: Optional[Mapping[str, str]] = None,
    parameters: Optional[ClientParameters] = None,
    api_key: Optional[str] = None,
    base_url: Optional[str] = None,
    timeout: Optional[float | int | str] = None,
    max_retries: Optional[int | str] = None,
    debug: Optional[bool | str] = None,
    webhook_secret: Optional[str] = None,
    default_headers: Optional[Mapping[str, str]] = None,
    webhook_scheme: SignatureScheme = SignatureScheme.HMAC_SHA512,
) -> PayCoinProClient:
    """
    Construct a :class:`PayCoinProClient`.

    Callers can either supply a ready-made :class:`ClientConfig` or let the
    helper assemble one from environment data and keyword arguments.
    """
    if config is not None:
        extras = (
            overrides,
            base,
            parameters,
            api_key,
            base_url,
            timeout,
            max_retries,
            debug,
            webhook_secret,
            default_headers,
        )
        if any(item is not None and item != {} for item in extras):
            raise ValueError(
                "Provide either a pre-built ClientConfig or individual parameters, not both."
            )
        cfg = config
    else:
        cfg = load_client_config(
            env_file=env_file,
            overrides=overrides,
            base=base,
            parameters=parameters,
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=max_retries,
            debug=debug,
            webhook_secret=webhook_secret,
            default_headers=default_headers,
        )
    return PayCoinProClient(cfg, transport=transport, webhook_scheme=webhook_scheme)


def construct_event(
    payload: bytes | str,
    signature: Optional[str],
    secret: str,
    *,
    scheme: SignatureScheme = SignatureScheme.HMAC_SHA512,
    tolerance: Optional[int] = None,
) -> WebhookEvent:
    """
    Verify a webhook without building a full client (no API key needed).
    """
    verifier = WebhookVerifier(scheme)
    return verifier.construct_event(payload, signature, secret, tolerance=tolerance)
