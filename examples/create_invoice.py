"""
Minimal script that uses the public API to create and poll an invoice.
"""

from __future__ import annotations

import argparse
import logging
import sys
import uuid

from paycoinpro import ClassifiedError, ConfigError, RequestOptions, create_client


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create a PayCoinPro invoice using the SDK API")
    parser.add_argument(
        "--env-file",
        default=".env",
        help="Path to the .env file containing PAYCOINPRO_* settings",
    )
    parser.add_argument("--amount", type=float, default=99.99, help="Invoice amount")
    parser.add_argument("--currency", default="USDT", help="Currency to charge")
    parser.add_argument("--network", default="bsc", help="Blockchain network")
    parser.add_argument("--order-id", help="Your internal order ID")
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Python logging level (default: INFO)",
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(message)s",
    )

    try:
        client = create_client(env_file=args.env_file)
    except ConfigError as exc:
        logging.error("Invalid configuration: %s", exc)
        return 1

    params = {
        "amount": args.amount,
        "currency": args.currency,
        "network": args.network,
        "orderId": args.order_id,
    }
    try:
        invoice = client.invoices.create(
            {key: value for key, value in params.items() if value is not None},
            RequestOptions(idempotency_key=str(uuid.uuid4())),
        )
        logging.info("Invoice %s created, pay to %s", invoice["id"], invoice.get("paymentAddress"))

        fetched = client.invoices.retrieve(invoice["id"])
        logging.info("Invoice status: %s", fetched.get("status"))
    except ClassifiedError as exc:
        logging.error("Request failed (%s): %s", exc.kind.value, exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
