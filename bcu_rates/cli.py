"""Command line access to the BCU USD exchange rates."""

from __future__ import annotations

import argparse
import json
import os
import sys
from typing import Any, Sequence

from bcu_rates import BCURates
from bcu_rates.exceptions import BCUError
from bcu_rates.settings import BCUSettings
from bcu_rates.utils.date_range import is_iso_date, parse_date
from bcu_rates.utils.logger import get_logger

LOGGER = get_logger(__name__)

__all__ = ["build_parser", "parse_args", "main"]


def _iso_date(value: str):
    if not is_iso_date(value):
        raise argparse.ArgumentTypeError(f"invalid date {value!r}, expected YYYY-MM-DD")
    try:
        return parse_date(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid date {value!r}: {exc}") from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="bcu-rates", description=__doc__)
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("currency", help="Show the BCU code of the USD cash currency")

    rate = subparsers.add_parser("rate", help="USD rate for a given date")
    rate.add_argument("--date", dest="rate_date", required=True, type=_iso_date, help="Date (YYYY-MM-DD)")

    subparsers.add_parser("latest", help="Latest available USD rate")

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="0.0.0.0", help="Interface to bind")
    serve.add_argument(
        "--port",
        type=int,
        default=int(os.environ.get("PORT", "3000")),
        help="Port to listen on (defaults to $PORT or 3000)",
    )
    return parser


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def _serve(args: argparse.Namespace, service: BCURates) -> int:
    from bcu_rates.api.server import create_app

    app = create_app(service)
    LOGGER.info("%s listening on http://%s:%s", service.settings.app_name, args.host, args.port)
    app.run(host=args.host, port=args.port)
    return 0


def main(argv: Sequence[str] | None = None, *, service: BCURates | None = None) -> int:
    args = parse_args(argv)
    service = service or BCURates(BCUSettings.from_env())

    if args.command == "serve":
        return _serve(args, service)

    try:
        currency = service.get_currency_code()
        if args.command == "currency":
            _print_json(currency.as_dict())
            return 0
        if args.command == "rate":
            record = service.get_rate_for_date(currency.code, args.rate_date)
            missing = f"No exchange rate available for {args.rate_date.isoformat()}"
        else:
            record = service.get_latest_rate(currency.code)
            missing = "Unable to determine the latest exchange rate"
    except BCUError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    if record is None:
        print(missing, file=sys.stderr)
        return 1
    _print_json(record.as_dict())
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
