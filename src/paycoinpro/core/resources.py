"""
Per-resource wrappers over :class:`~paycoinpro.core.executor.RequestExecutor`.

These are pass-through calls: they pick the path, translate snake_case filters
into the API's query names and hand everything else to the executor.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Mapping, Optional, Sequence, Union
from urllib.parse import quote

from .cancellation import CancellationToken
from .executor import RequestExecutor, RequestSpec

__all__ = [
    "Assets",
    "Balances",
    "DepositAddresses",
    "Deposits",
    "Invoices",
    "RequestOptions",
    "Withdrawals",
]

DateFilter = Union[str, date]


@dataclass(frozen=True)
class RequestOptions:
    """Per-call overrides forwarded to the executor."""

    timeout: Optional[float] = None
    max_retries: Optional[int] = None
    headers: Mapping[str, str] = field(default_factory=dict)
    idempotency_key: Optional[str] = None
    cancel_token: Optional[CancellationToken] = None

    def as_kwargs(self) -> Dict[str, Any]:
        return {
            "timeout": self.timeout,
            "max_retries": self.max_retries,
            "headers": self.headers,
            "idempotency_key": self.idempotency_key,
            "cancel_token": self.cancel_token,
        }


def _segment(value: str) -> str:
    return quote(str(value), safe="")


class _Resource:
    def __init__(self, executor: RequestExecutor) -> None:
        self._executor = executor

    def _request(
        self,
        method: str,
        path: str,
        *,
        query: Optional[Mapping[str, Any]] = None,
        body: Any = None,
        options: Optional[RequestOptions] = None,
    ) -> Any:
        overrides = (options or RequestOptions()).as_kwargs()
        return self._executor.execute(
            RequestSpec(method, path, query=query, body=body, **overrides)
        )


class Invoices(_Resource):
    def create(self, params: Mapping[str, Any], options: Optional[RequestOptions] = None) -> Any:
        return self._request("POST", "/invoices", body=dict(params), options=options)

    def retrieve(self, invoice_id: str, options: Optional[RequestOptions] = None) -> Any:
        return self._request("GET", f"/invoices/{_segment(invoice_id)}", options=options)

    def list(
        self,
        *,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        cursor: Optional[str] = None,
        status: Optional[str] = None,
        currency: Optional[str] = None,
        order_id: Optional[str] = None,
        created_after: Optional[DateFilter] = None,
        created_before: Optional[DateFilter] = None,
        options: Optional[RequestOptions] = None,
    ) -> Any:
        query = {
            "limit": limit,
            "offset": offset,
            "cursor": cursor,
            "status": status,
            "currency": currency,
            "orderId": order_id,
            "createdAfter": created_after,
            "createdBefore": created_before,
        }
        return self._request("GET", "/invoices", query=query, options=options)


class DepositAddresses(_Resource):
    def create(self, params: Mapping[str, Any], options: Optional[RequestOptions] = None) -> Any:
        return self._request("POST", "/deposit-addresses", body=dict(params), options=options)

    def retrieve(self, address_id: str, options: Optional[RequestOptions] = None) -> Any:
        return self._request(
            "GET", f"/deposit-addresses/{_segment(address_id)}", options=options
        )

    def list(
        self,
        *,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        cursor: Optional[str] = None,
        asset: Optional[str] = None,
        network: Optional[str] = None,
        options: Optional[RequestOptions] = None,
    ) -> Any:
        query = {
            "limit": limit,
            "offset": offset,
            "cursor": cursor,
            "asset": asset,
            "network": network,
        }
        return self._request("GET", "/deposit-addresses", query=query, options=options)


class Deposits(_Resource):
    def retrieve(self, deposit_id: str, options: Optional[RequestOptions] = None) -> Any:
        return self._request("GET", f"/deposits/{_segment(deposit_id)}", options=options)

    def list(
        self,
        *,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        cursor: Optional[str] = None,
        asset: Optional[str] = None,
        network: Optional[str] = None,
        status: Optional[str] = None,
        address: Optional[str] = None,
        created_after: Optional[DateFilter] = None,
        created_before: Optional[DateFilter] = None,
        options: Optional[RequestOptions] = None,
    ) -> Any:
        query = {
            "limit": limit,
            "offset": offset,
            "cursor": cursor,
            "asset": asset,
            "network": network,
            "status": status,
            "address": address,
            "createdAfter": created_after,
            "createdBefore": created_before,
        }
        return self._request("GET", "/deposits", query=query, options=options)


class Assets(_Resource):
    def list(self, options: Optional[RequestOptions] = None) -> Any:
        return self._request("GET", "/assets", options=options)


class Balances(_Resource):
    def list(
        self,
        assets: Optional[Sequence[str]] = None,
        options: Optional[RequestOptions] = None,
    ) -> Any:
        query = {"assets": list(assets) if assets is not None else None}
        return self._request("GET", "/balances", query=query, options=options)

    def retrieve(self, asset: str, options: Optional[RequestOptions] = None) -> Any:
        return self._request("GET", f"/balances/{_segment(asset)}", options=options)


class Withdrawals(_Resource):
    def create(self, params: Mapping[str, Any], options: Optional[RequestOptions] = None) -> Any:
        return self._request("POST", "/withdrawals", body=dict(params), options=options)

    def retrieve(self, withdrawal_id: str, options: Optional[RequestOptions] = None) -> Any:
        return self._request("GET", f"/withdrawals/{_segment(withdrawal_id)}", options=options)

    def list(
        self,
        *,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        cursor: Optional[str] = None,
        asset: Optional[str] = None,
        network: Optional[str] = None,
        status: Optional[str] = None,
        created_after: Optional[DateFilter] = None,
        created_before: Optional[DateFilter] = None,
        options: Optional[RequestOptions] = None,
    ) -> Any:
        query = {
            "limit": limit,
            "offset": offset,
            "cursor": cursor,
            "asset": asset,
            "network": network,
            "status": status,
            "createdAfter": created_after,
            "createdBefore": created_before,
        }
        return self._request("GET", "/withdrawals", query=query, options=options)
