"""Flask application exposing the BCU USD rates over HTTP."""

from __future__ import annotations

import os
import platform
import time
from datetime import datetime, timezone
from typing import Any

from flask import Flask, Response, current_app, g, jsonify, redirect, request
from werkzeug.exceptions import HTTPException

from bcu_rates import BCURates, __version__
from bcu_rates.settings import BCUSettings
from bcu_rates.utils.date_range import is_iso_date, parse_date
from bcu_rates.utils.logger import get_logger

LOGGER = get_logger(__name__)

SOURCE = "Central Bank of Uruguay - Exchange Rates Web Services"
DATE_EXAMPLE = "/usd-rate?date=2025-08-28"
AVAILABLE_ENDPOINTS = [
    "GET /health",
    "GET /health/detailed",
    "GET /usd-rate?date=YYYY-MM-DD",
    "GET /usd-rate/latest",
]

_STARTED_AT = time.monotonic()


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _uptime() -> float:
    return round(time.monotonic() - _STARTED_AT, 3)


def _service() -> BCURates:
    return current_app.extensions["bcu_rates"]


def _settings() -> BCUSettings:
    return _service().settings


def _server_error(message: str, exc: Exception):
    body: dict[str, Any] = {"error": message}
    if _settings().is_development:
        body["details"] = str(exc)
    body["timestamp"] = _timestamp()
    return jsonify(body), 500


def _rate_payload(currency: str, record, source: str) -> dict[str, Any]:
    payload = record.as_dict()
    return {
        "currency": currency,
        "date": payload["date"],
        "isoCode": payload["isoCode"],
        "issuer": payload["issuer"],
        "buyRate": payload["buyRate"],
        "sellRate": payload["sellRate"],
        "source": source,
        "timestamp": _timestamp(),
    }


def health():
    settings = _settings()
    return jsonify({
        "status": "OK",
        "service": settings.app_name,
        "version": __version__,
        "environment": settings.environment,
        "timestamp": _timestamp(),
        "uptime": _uptime(),
    })


def health_detailed():
    settings = _settings()
    return jsonify({
        "status": "OK",
        "service": settings.app_name,
        "version": __version__,
        "environment": settings.environment,
        "timestamp": _timestamp(),
        "system": {
            "platform": platform.system().lower(),
            "arch": platform.machine(),
            "pythonVersion": platform.python_version(),
            "pid": os.getpid(),
            "uptime": _uptime(),
        },
        "services": settings.service_addresses(),
    })


def usd_rate():
    date_param = request.args.get("date")
    if not date_param:
        return jsonify({
            "error": "Missing required parameter: date (format: YYYY-MM-DD)",
            "example": DATE_EXAMPLE,
            "timestamp": _timestamp(),
        }), 400
    if not is_iso_date(date_param):
        return jsonify({
            "error": "Invalid date format. Please use YYYY-MM-DD",
            "provided": date_param,
            "example": DATE_EXAMPLE,
            "timestamp": _timestamp(),
        }), 400
    try:
        rate_date = parse_date(date_param)
    except ValueError:
        return jsonify({
            "error": "Invalid date. Please provide a valid date in YYYY-MM-DD format",
            "provided": date_param,
            "timestamp": _timestamp(),
        }), 400

    LOGGER.debug("Requesting exchange rate for date: %s", rate_date)
    try:
        service = _service()
        currency = service.get_currency_code()
        record = service.get_rate_for_date(currency.code, rate_date)
    except Exception as exc:
        LOGGER.error("Error in /usd-rate endpoint: %s", exc, exc_info=True)
        return _server_error(
            "Internal server error while querying BCU web service. "
            "Please verify connectivity and service availability.",
            exc,
        )

    if record is None:
        return jsonify({
            "error": "No exchange rate available for the specified date "
                     "(may be holiday, weekend, or outside available range)",
            "currency": currency.name,
            "date": rate_date.isoformat(),
            "suggestion": "Try /usd-rate/latest for the most recent available rate",
            "timestamp": _timestamp(),
        }), 404
    return jsonify(_rate_payload(currency.name, record, SOURCE))


def usd_rate_latest():
    LOGGER.debug("Requesting latest exchange rate")
    try:
        service = _service()
        currency = service.get_currency_code()
        record = service.get_latest_rate(currency.code)
    except Exception as exc:
        LOGGER.error("Error in /usd-rate/latest endpoint: %s", exc, exc_info=True)
        return _server_error("Internal server error while querying latest exchange rate", exc)

    if record is None:
        return jsonify({
            "error": "Unable to determine the latest exchange rate",
            "currency": currency.name,
            "suggestion": "BCU service may be temporarily unavailable or no recent data exists",
            "timestamp": _timestamp(),
        }), 404
    return jsonify(_rate_payload(currency.name, record, f"{SOURCE} (Latest Closing)"))


def _log_deprecated(redirect_url: str) -> None:
    LOGGER.warning(
        "Deprecated endpoint %s accessed (redirect: %s, user agent: %s, ip: %s)",
        request.full_path.rstrip("?"),
        redirect_url,
        request.headers.get("User-Agent"),
        request.remote_addr,
    )


def legacy_usd_billete():
    query = request.query_string.decode("utf-8")
    redirect_url = f"/usd-rate?{query}" if query else "/usd-rate"
    _log_deprecated(redirect_url)
    return redirect(redirect_url, code=301)


def legacy_usd_billete_latest():
    _log_deprecated("/usd-rate/latest")
    return redirect("/usd-rate/latest", code=301)


def _handle_preflight():
    if request.method == "OPTIONS":
        return current_app.response_class(status=200)
    return None


def _start_timer():
    g.request_started = time.perf_counter()


def _add_cors_headers(response: Response) -> Response:
    response.headers["Access-Control-Allow-Origin"] = "*"
    response.headers["Access-Control-Allow-Headers"] = "Content-Type, Authorization"
    response.headers["Access-Control-Allow-Methods"] = "GET, POST, PUT, DELETE, OPTIONS"
    return response


def _log_request(response: Response) -> Response:
    if _settings().is_development:
        started = g.get("request_started")
        duration_ms = (time.perf_counter() - started) * 1000 if started else 0.0
        LOGGER.info(
            "%s %s - %s (%.0fms)",
            request.method,
            request.full_path.rstrip("?"),
            response.status_code,
            duration_ms,
        )
    return response


def _not_found(_error):
    return jsonify({
        "error": "Endpoint not found",
        "path": request.path,
        "method": request.method,
        "availableEndpoints": AVAILABLE_ENDPOINTS,
        "timestamp": _timestamp(),
    }), 404


def _unhandled(error: Exception):
    if isinstance(error, HTTPException):
        if error.code is None:
            return error
        return jsonify({
            "error": error.name,
            "path": request.path,
            "method": request.method,
            "timestamp": _timestamp(),
        }), error.code
    LOGGER.error("Unhandled application error: %s", error, exc_info=True)
    body: dict[str, Any] = {"error": "Internal server error"}
    if _settings().is_development:
        body["details"] = str(error)
    body["timestamp"] = _timestamp()
    return jsonify(body), 500


def create_app(service: BCURates | None = None, settings: BCUSettings | None = None) -> Flask:
    """Build the Flask application serving the USD rate endpoints.

    ``service`` defaults to a :class:`BCURates` built from ``settings`` (or
    from the environment when both are omitted).
    """

    if service is None:
        service = BCURates(settings or BCUSettings.from_env())
    app = Flask(__name__)
    app.extensions["bcu_rates"] = service
    app.json.sort_keys = False

    app.before_request(_handle_preflight)
    app.before_request(_start_timer)
    app.after_request(_add_cors_headers)
    app.after_request(_log_request)

    app.add_url_rule("/health", "health", health, methods=["GET"])
    app.add_url_rule("/health/detailed", "health_detailed", health_detailed, methods=["GET"])
    app.add_url_rule("/usd-rate", "usd_rate", usd_rate, methods=["GET"])
    app.add_url_rule("/usd-rate/latest", "usd_rate_latest", usd_rate_latest, methods=["GET"])
    app.add_url_rule("/usd-billete", "legacy_usd_billete", legacy_usd_billete, methods=["GET"])
    app.add_url_rule(
        "/usd-billete/latest",
        "legacy_usd_billete_latest",
        legacy_usd_billete_latest,
        methods=["GET"],
    )

    app.register_error_handler(404, _not_found)
    app.register_error_handler(Exception, _unhandled)
    return app


if __name__ == "__main__":
    port = int(os.environ.get("PORT", "3000"))
    create_app().run(host="0.0.0.0", port=port)
