"""Tests for the client facade, resource wrappers and api helpers."""

from __future__ import annotations

import hashlib
import hmac
import json
from datetime import datetime, timezone
from urllib.parse import parse_qsl, urlsplit

import pytest

from conftest import FakeTransport, json_response
from paycoinpro import (
    CancellationToken,
    ClientConfig,
    PayCoinProClient,
    RequestOptions,
    SignatureScheme,
    WebhookVerificationError,
    construct_event,
    create_client,
)


@pytest.fixture
def transport():
    return FakeTransport(*[json_response({"success": True, "data": {"ok": True}}) for _ in range(5)])


@pytest.fixture
def client(config, transport):
    return PayCoinProClient(config, transport=transport)


def _split(url):
    parts = urlsplit(url)
    return parts.path, parse_qsl(parts.query)


class TestResources:
    def test_invoice_create_posts_body(self, client, transport):
        assert client.invoices.create({"amount": 99.99, "currency": "USDT", "network": "bsc"}) == {"ok": True}

        call = transport.calls[0]
        assert call["method"] == "POST"
        assert _split(call["url"])[0] == "/v1/invoices"
        assert json.loads(call["body"]) == {"amount": 99.99, "currency": "USDT", "network": "bsc"}

    def test_invoice_list_maps_filters(self, client, transport):
        client.invoices.list(
            limit=10,
            status="completed",
            order_id="ORD-1",
            created_after=datetime(2024, 1, 15, tzinfo=timezone.utc),
        )

        path, query = _split(transport.calls[0]["url"])
        assert path == "/v1/invoices"
        assert query == [
            ("limit", "10"),
            ("status", "completed"),
            ("orderId", "ORD-1"),
            ("createdAfter", "2024-01-15T00:00:00Z"),
        ]

    def test_retrieve_encodes_identifier(self, client, transport):
        client.invoices.retrieve("inv/1")

        assert transport.calls[0]["url"].endswith("/invoices/inv%2F1")

    def test_balances_list_repeats_assets(self, client, transport):
        client.balances.list(["USDT", "BTC"])

        assert _split(transport.calls[0]["url"])[1] == [("assets", "USDT"), ("assets", "BTC")]

    def test_balances_retrieve(self, client, transport):
        client.balances.retrieve("USDT")

        assert _split(transport.calls[0]["url"])[0] == "/v1/balances/USDT"

    def test_other_resources_hit_their_paths(self, client, transport):
        client.deposit_addresses.create({"asset": "USDT", "network": "tron"})
        client.deposits.list(status="confirmed")
        client.assets.list()
        client.withdrawals.create({"amount": 1, "asset": "USDT", "network": "bsc", "address": "0xabc"})
        client.withdrawals.list(asset="USDT")

        paths = [(call["method"], _split(call["url"])[0]) for call in transport.calls]
        assert paths == [
            ("POST", "/v1/deposit-addresses"),
            ("GET", "/v1/deposits"),
            ("GET", "/v1/assets"),
            ("POST", "/v1/withdrawals"),
            ("GET", "/v1/withdrawals"),
        ]

    def test_request_options_are_forwarded(self, client, transport):
        token = CancellationToken()
        client.withdrawals.create(
            {"amount": 1},
            RequestOptions(timeout=4, idempotency_key="wd-1", headers={"X-Trace": "t1"}, cancel_token=token),
        )

        call = transport.calls[0]
        assert call["timeout"] == 4
        assert call["headers"]["Idempotency-Key"] == "wd-1"
        assert call["headers"]["X-Trace"] == "t1"


class TestClientWebhooks:
    def test_construct_event_uses_configured_secret(self, transport):
        config = ClientConfig(api_key="pk", webhook_secret="whsec_cfg")
        client = PayCoinProClient(config, transport=transport)
        payload = b'{"id": "evt_1", "type": "deposit.confirmed", "data": {}, "createdAt": "2024-01-15T10:30:00Z"}'
        signature = hmac.new(b"whsec_cfg", payload, hashlib.sha512).hexdigest()

        event = client.construct_event_from_headers(payload, {"X-Payload-Hash": signature})

        assert event.type == "deposit.confirmed"

    def test_construct_event_without_any_secret_fails(self, client):
        with pytest.raises(WebhookVerificationError, match="Missing webhook secret"):
            client.construct_event(b"{}", "abc")

    def test_timestamped_client(self, config, transport):
        client = PayCoinProClient(config, transport=transport, webhook_scheme=SignatureScheme.TIMESTAMPED_SHA256)

        assert client.webhooks.signature_header == "x-paycoinpro-signature"
        assert client.webhooks.tolerance == 300


class TestApiHelpers:
    def test_create_client_from_keywords(self, transport):
        client = create_client(env_file=None, base={}, api_key="pk_kw", transport=transport)

        assert client.config.api_key == "pk_kw"
        client.assets.list()
        assert transport.calls[0]["headers"]["Authorization"] == "Bearer pk_kw"

    def test_create_client_rejects_mixed_inputs(self, config):
        with pytest.raises(ValueError):
            create_client(config=config, api_key="other")

    def test_module_level_construct_event(self):
        payload = b'{"id": "evt_2", "type": "invoice.paid"}'
        signature = hmac.new(b"s", payload, hashlib.sha512).hexdigest()

        assert construct_event(payload, signature, "s").id == "evt_2"
