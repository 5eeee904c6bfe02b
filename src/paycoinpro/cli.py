"""
Command-line interface for exercising the PayCoinPro API and webhook helpers.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from .api import create_client
from .core.config import ConfigError, load_client_config
from .core.environment import build_environment
from .core.errors import ClassifiedError, WebhookVerificationError
from .core.executor import RequestSpec
from .core.webhooks import SignatureScheme, WebhookVerifier

_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE")


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def _key_value(value: str) -> Tuple[str, str]:
    if "=" not in value:
        raise argparse.ArgumentTypeError("Values must look like KEY=VALUE")
    key, val = value.split("=", 1)
    key = key.strip()
    if not key:
        raise argparse.ArgumentTypeError("Key must not be empty")
    return key, val


def _collect_overrides(pairs: Iterable[Tuple[str, str]]) -> dict[str, str]:
    overrides: dict[str, str] = {}
    for key, value in pairs:
        overrides[key] = value
    return overrides


def _collect_query(pairs: Iterable[Tuple[str, str]]) -> dict[str, Any]:
    # Repeated keys become lists so they expand to repeated query entries.
    query: dict[str, Any] = {}
    for key, value in pairs:
        if key in query:
            existing = query[key]
            query[key] = (existing if isinstance(existing, list) else [existing]) + [value]
        else:
            query[key] = value
    return query


def _json_body(value: str) -> Any:
    try:
        return json.loads(value)
    except json.JSONDecodeError as exc:
        raise argparse.ArgumentTypeError(f"--data must be valid JSON: {exc}") from exc


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--env-file",
        default=".env",
        help="Path to the .env file containing PAYCOINPRO_* settings (default: .env)",
    )
    parser.add_argument(
        "--set",
        action="append",
        type=_key_value,
        metavar="KEY=VALUE",
        default=None,
        help="Override an environment variable without editing the .env file",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Python logging level (default: INFO)",
    )


def _add_scheme_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--scheme",
        choices=[scheme.value for scheme in SignatureScheme],
        default=SignatureScheme.HMAC_SHA512.value,
        help="Webhook signature scheme (default: hmac-sha512)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="paycoinpro",
        description="Call the PayCoinPro API and sign or verify webhook payloads",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    request = subparsers.add_parser("request", help="Issue a single API request")
    _add_common_arguments(request)
    request.add_argument("method", type=str.upper, choices=_METHODS)
    request.add_argument("path", help="API path relative to the base URL, e.g. /invoices")
    request.add_argument(
        "--query",
        action="append",
        type=_key_value,
        metavar="KEY=VALUE",
        default=None,
        help="Query parameter; repeat a key to send it several times",
    )
    request.add_argument("--data", type=_json_body, help="JSON request body")
    request.add_argument("--idempotency-key", help="Idempotency key for this request")
    request.add_argument("--timeout", type=float, help="Per-request timeout in seconds")
    request.add_argument("--max-retries", type=int, help="Per-request retry budget")
    request.add_argument(
        "--debug",
        action="store_true",
        help="Trace every attempt (implies --log-level DEBUG)",
    )

    sign = subparsers.add_parser("sign-webhook", help="Print the signature for a payload file")
    _add_common_arguments(sign)
    _add_scheme_argument(sign)
    sign.add_argument("payload_file", type=Path)
    sign.add_argument("--secret", help="Webhook secret (default: PAYCOINPRO_WEBHOOK_SECRET)")
    sign.add_argument("--timestamp", type=int, help="Unix timestamp for the timestamped scheme")

    verify = subparsers.add_parser("verify-webhook", help="Verify a payload file and print the event")
    _add_common_arguments(verify)
    _add_scheme_argument(verify)
    verify.add_argument("payload_file", type=Path)
    verify.add_argument("--signature", required=True, help="Signature header value")
    verify.add_argument("--secret", help="Webhook secret (default: PAYCOINPRO_WEBHOOK_SECRET)")
    verify.add_argument("--tolerance", type=int, help="Replay window in seconds")

    return parser


def _resolve_secret(args: argparse.Namespace) -> Optional[str]:
    if args.secret:
        return args.secret
    environment = build_environment(
        env_file=args.env_file,
        overrides=_collect_overrides(args.set or ()),
    )
    return environment.get("PAYCOINPRO_WEBHOOK_SECRET")


def _read_payload(path: Path) -> Optional[bytes]:
    try:
        return path.read_bytes()
    except OSError as exc:
        logging.error("Cannot read payload file %s: %s", path, exc.strerror or exc)
        return None


def _run_request(args: argparse.Namespace) -> int:
    overrides = _collect_overrides(args.set or ())
    if args.debug:
        overrides["PAYCOINPRO_DEBUG"] = "true"

    try:
        config = load_client_config(env_file=args.env_file, overrides=overrides)
    except (ConfigError, ValueError) as exc:
        logging.error("Invalid configuration: %s", exc)
        return 1

    try:
        spec = RequestSpec(
            args.method,
            args.path,
            query=_collect_query(args.query or ()),
            body=args.data,
            idempotency_key=args.idempotency_key,
            timeout=args.timeout,
            max_retries=args.max_retries,
        )
    except ValueError as exc:
        logging.error("Invalid request: %s", exc)
        return 1

    client = create_client(config=config)

    try:
        result = client.request(spec)
    except ClassifiedError as exc:
        logging.error("Request failed (%s): %s", exc.kind.value, exc)
        if exc.details:
            logging.error("Details: %s", exc.details)
        return 1

    print(json.dumps(result, indent=2, sort_keys=True))
    return 0


def _run_sign(args: argparse.Namespace) -> int:
    secret = _resolve_secret(args)
    if not secret:
        logging.error("A webhook secret is required (--secret or PAYCOINPRO_WEBHOOK_SECRET)")
        return 1

    payload = _read_payload(args.payload_file)
    if payload is None:
        return 1

    verifier = WebhookVerifier(SignatureScheme(args.scheme))
    print(verifier.sign(payload, secret, timestamp=args.timestamp))
    return 0


def _run_verify(args: argparse.Namespace) -> int:
    payload = _read_payload(args.payload_file)
    if payload is None:
        return 1

    secret = _resolve_secret(args)
    verifier = WebhookVerifier(SignatureScheme(args.scheme))

    try:
        event = verifier.construct_event(
            payload,
            args.signature,
            secret or "",
            tolerance=args.tolerance,
        )
    except WebhookVerificationError as exc:
        logging.error("Webhook rejected: %s", exc)
        return 1

    logging.info("Verified %s event %s", event.type, event.id)
    print(json.dumps(event.raw, indent=2, sort_keys=True))
    return 0


def run_cli(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    _configure_logging("DEBUG" if getattr(args, "debug", False) else args.log_level)

    handlers = {
        "request": _run_request,
        "sign-webhook": _run_sign,
        "verify-webhook": _run_verify,
    }
    return handlers[args.command](args)


def main(argv: Optional[List[str]] = None) -> None:
    sys.exit(run_cli(argv))
