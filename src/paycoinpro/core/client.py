"""
Client facade bundling the executor, resource wrappers and webhook verifier.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from .config import ClientConfig
from .executor import RequestExecutor, RequestSpec
from .resources import (
    Assets,
    Balances,
    DepositAddresses,
    Deposits,
    Invoices,
    Withdrawals,
)
from .transport import Transport
from .webhooks import (
    SignatureScheme,
    WebhookEvent,
    WebhookVerifier,
    get_signature_from_headers,
)

__all__ = ["PayCoinProClient"]


class PayCoinProClient:
    """
    Entry point for integrators.

    ``transport`` replaces the default :class:`requests`-based network
    primitive, e.g. with a fake in tests.
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        transport: Optional[Transport] = None,
        webhook_scheme: SignatureScheme = SignatureScheme.HMAC_SHA512,
        webhook_tolerance: Optional[int] = None,
    ) -> None:
        self.config = config
        self.executor = RequestExecutor(config, transport=transport)
        self.invoices = Invoices(self.executor)
        self.deposit_addresses = DepositAddresses(self.executor)
        self.deposits = Deposits(self.executor)
        self.assets = Assets(self.executor)
        self.balances = Balances(self.executor)
        self.withdrawals = Withdrawals(self.executor)
        self.webhooks = WebhookVerifier(webhook_scheme, tolerance=webhook_tolerance)
        if config.debug:
            logging.getLogger(__name__).debug("Client configured: %r", config)

    def request(self, spec: RequestSpec) -> Any:
        return self.executor.execute(spec)

    def construct_event(
        self,
        payload: bytes | str,
        signature: Optional[str],
        secret: Optional[str] = None,
        *,
        tolerance: Optional[int] = None,
    ) -> WebhookEvent:
        """
        Verify a webhook with ``secret`` or, failing that, the configured
        webhook secret.
        """
        return self.webhooks.construct_event(
            payload,
            signature,
            secret if secret is not None else (self.config.webhook_secret or ""),
            tolerance=tolerance,
        )

    def construct_event_from_headers(
        self,
        payload: bytes | str,
        headers: Mapping[str, Any],
        secret: Optional[str] = None,
        *,
        tolerance: Optional[int] = None,
    ) -> WebhookEvent:
        signature = get_signature_from_headers(headers, self.webhooks.scheme)
        return self.construct_event(payload, signature, secret, tolerance=tolerance)
