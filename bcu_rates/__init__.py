"""Public interface for the bcu_rates package."""

from __future__ import annotations

from datetime import date
from importlib import metadata as importlib_metadata
from typing import Any

from bcu_rates.exceptions import (
    BCUError,
    CurrencyNotFoundError,
    MalformedResponseError,
    TransportError,
    UpstreamError,
)
from bcu_rates.ingestion.currencies import CurrencyResolver
from bcu_rates.ingestion.latest import LatestRateResolver
from bcu_rates.ingestion.models import CurrencyDescriptor, RateRecord
from bcu_rates.ingestion.quotations import RateFetcher
from bcu_rates.ingestion.soap_client import BCUSoapClient
from bcu_rates.ingestion.strategy import SoapTransport
from bcu_rates.settings import BCUSettings
from bcu_rates.utils.date_range import parse_date

__all__ = [
    "__version__",
    "BCUError",
    "BCURates",
    "BCUSettings",
    "BCUSoapClient",
    "CurrencyDescriptor",
    "CurrencyNotFoundError",
    "MalformedResponseError",
    "RateRecord",
    "SoapTransport",
    "TransportError",
    "UpstreamError",
    "create_app",
]

try:
    __version__ = importlib_metadata.version("bcu-rates")
except importlib_metadata.PackageNotFoundError:  # pragma: no cover - fallback for local runs
    __version__ = "2.0.0"


class BCURates:
    """Package facade wiring the lookup components around one transport."""

    __slots__ = ("settings", "transport", "currencies", "fetcher", "latest")

    # Provide direct access to the package version as a class attribute.
    __version__ = __version__

    def __init__(
        self,
        settings: BCUSettings | None = None,
        *,
        transport: SoapTransport | None = None,
    ) -> None:
        """Build the lookup layer.

        Without an explicit ``transport`` a :class:`BCUSoapClient` talking to
        the real BCU web services is created from ``settings``.
        """

        self.settings = settings or BCUSettings()
        if transport is None:
            transport = BCUSoapClient(self.settings)
        self.transport = transport
        self.currencies = CurrencyResolver(transport, self.settings)
        self.fetcher = RateFetcher(transport, self.settings)
        self.latest = LatestRateResolver(transport, self.settings, fetcher=self.fetcher)

    @classmethod
    def from_env(cls, *, transport: SoapTransport | None = None) -> "BCURates":
        return cls(BCUSettings.from_env(), transport=transport)

    def get_currency_code(self) -> CurrencyDescriptor:
        """Return the USD cash currency of the local exchange group."""

        return self.currencies.resolve()

    def get_rate_for_date(self, code: int, rate_date: str | date) -> RateRecord | None:
        return self.fetcher.fetch_for_date(code, parse_date(rate_date))

    def get_latest_rate(self, code: int) -> RateRecord | None:
        return self.latest.resolve(code)

    def usd_rate(
        self, rate_date: str | date | None = None
    ) -> tuple[CurrencyDescriptor, RateRecord | None]:
        """Resolve the USD code and return it with the rate of ``rate_date``.

        When ``rate_date`` is omitted the latest available rate is returned.
        """

        currency = self.get_currency_code()
        if rate_date is None:
            return currency, self.get_latest_rate(currency.code)
        return currency, self.get_rate_for_date(currency.code, rate_date)

    def close(self) -> None:
        closer = getattr(self.transport, "close", None)
        if callable(closer):
            closer()


def __getattr__(name: str) -> Any:
    """Lazily import the Flask application factory."""

    if name == "create_app":
        from bcu_rates.api.server import create_app as _create_app

        return _create_app
    raise AttributeError(f"module 'bcu_rates' has no attribute {name}")
