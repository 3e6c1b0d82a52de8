"""Runtime configuration for the BCU exchange-rate services."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Any, Callable, Mapping

QUOTATIONS_WSDL = "https://cotizaciones.bcu.gub.uy/wscotizaciones/servlet/awsbcucotizaciones?wsdl"
CURRENCIES_WSDL = "https://cotizaciones.bcu.gub.uy/wscotizaciones/servlet/awsbcumonedas?wsdl"
LAST_CLOSING_WSDL = "https://cotizaciones.bcu.gub.uy/wscotizaciones/servlet/awsultimocierre?wsdl"

# Group 2 is "Cotizaciones locales" in the BCU documentation.
LOCAL_EXCHANGE_GROUP = 2
DEFAULT_MAX_LOOKBACK_DAYS = 31

APP_NAME = "BCU USD Exchange Rate API"


@dataclass(frozen=True, slots=True)
class BCUSettings:
    """Immutable settings injected into every lookup component."""

    quotations_wsdl: str = QUOTATIONS_WSDL
    currencies_wsdl: str = CURRENCIES_WSDL
    last_closing_wsdl: str = LAST_CLOSING_WSDL
    local_exchange_group: int = LOCAL_EXCHANGE_GROUP
    max_lookback_days: int = DEFAULT_MAX_LOOKBACK_DAYS
    timeout: float = 30.0
    client_retries: int = 3
    retry_backoff: float = 1.0
    environment: str = "production"
    app_name: str = APP_NAME

    def __post_init__(self) -> None:
        if self.max_lookback_days <= 0:
            raise ValueError("max_lookback_days must be positive")
        if self.client_retries <= 0:
            raise ValueError("client_retries must be positive")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "BCUSettings":
        """Build settings from ``BCU_*`` environment variables.

        Unset variables keep their defaults; malformed numbers raise
        :class:`ValueError` naming the offending variable.
        """

        env = os.environ if environ is None else environ
        overrides: dict[str, Any] = {}
        for field_name, variable in (
            ("quotations_wsdl", "BCU_QUOTATIONS_WSDL"),
            ("currencies_wsdl", "BCU_CURRENCIES_WSDL"),
            ("last_closing_wsdl", "BCU_LAST_CLOSING_WSDL"),
        ):
            if env.get(variable):
                overrides[field_name] = env[variable]

        numeric: tuple[tuple[str, str, Callable[[str], Any]], ...] = (
            ("local_exchange_group", "BCU_LOCAL_GROUP", int),
            ("max_lookback_days", "BCU_MAX_LOOKBACK_DAYS", int),
            ("timeout", "BCU_TIMEOUT", float),
            ("client_retries", "BCU_CLIENT_RETRIES", int),
            ("retry_backoff", "BCU_RETRY_BACKOFF", float),
        )
        for field_name, variable, cast in numeric:
            raw = env.get(variable)
            if raw in (None, ""):
                continue
            try:
                overrides[field_name] = cast(raw.strip())
            except ValueError as exc:
                raise ValueError(f"{variable} must be a number, got {raw!r}") from exc

        environment = env.get("APP_ENV") or env.get("FLASK_ENV")
        if environment:
            overrides["environment"] = environment.lower()
        return cls(**overrides)

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    def with_overrides(self, **changes: Any) -> "BCUSettings":
        """Return a copy with ``changes`` applied."""

        return replace(self, **changes)

    def service_addresses(self) -> dict[str, str]:
        return {
            "bcuExchangeRates": self.quotations_wsdl,
            "bcuCurrencies": self.currencies_wsdl,
            "bcuLastClosing": self.last_closing_wsdl,
        }


__all__ = [
    "APP_NAME",
    "BCUSettings",
    "CURRENCIES_WSDL",
    "DEFAULT_MAX_LOOKBACK_DAYS",
    "LAST_CLOSING_WSDL",
    "LOCAL_EXCHANGE_GROUP",
    "QUOTATIONS_WSDL",
]
