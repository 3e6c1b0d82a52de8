"""Quotation lookups against ``awsbcucotizaciones``."""

from __future__ import annotations

from datetime import date
from typing import Any, Mapping

from bcu_rates.exceptions import TransportError, UpstreamError
from bcu_rates.ingestion.models import RateRecord, parse_currency_code
from bcu_rates.ingestion.normalizer import extract_quotation_rows, extract_status
from bcu_rates.ingestion.soap_client import QUOTATION_OPERATIONS
from bcu_rates.ingestion.strategy import SoapTransport
from bcu_rates.settings import BCUSettings
from bcu_rates.utils.date_range import coerce_upstream_date
from bcu_rates.utils.logger import get_logger

LOGGER = get_logger(__name__)


class RateFetcher:
    """Fetch buy/sell quotations for one currency of the local exchange group."""

    def __init__(self, transport: SoapTransport, settings: BCUSettings | None = None) -> None:
        self.transport = transport
        self.settings = settings or BCUSettings()

    def build_arguments(self, currency_code: int, start: date, end: date) -> dict[str, Any]:
        return {
            "Entrada": {
                "Moneda": {"item": [currency_code]},
                "FechaDesde": start.isoformat(),
                "FechaHasta": end.isoformat(),
                "Grupo": self.settings.local_exchange_group,
            }
        }

    def query(self, currency_code: int, start: date, end: date) -> Any:
        """Invoke the quotations service for ``[start, end]`` and return the raw response."""

        if start > end:
            raise ValueError("start date must not be after end date")
        args = self.build_arguments(currency_code, start, end)
        response = self.transport.invoke(self.settings.quotations_wsdl, QUOTATION_OPERATIONS, args)
        if not response:
            raise TransportError(
                "Failed to invoke BCU exchange rates web service (awsbcucotizaciones)"
            )
        LOGGER.debug("BCU SOAP response received for %s → %s", start, end)
        return response

    def _rows_for_currency(
        self,
        response: Any,
        currency_code: int,
        label: str,
        *,
        tolerate_errors: bool = False,
    ) -> list[Mapping[str, Any]] | None:
        """Return the rows of ``currency_code``; ``None`` on the "no data" status.

        Any other non-zero status raises :class:`UpstreamError` unless
        ``tolerate_errors`` is set, in which case it is logged and whatever
        rows the envelope carries are still used.
        """

        status = extract_status(response)
        if status.no_data:
            LOGGER.info("No exchange rate data available for: %s", label)
            return None
        if not status.ok:
            if not tolerate_errors:
                raise UpstreamError(status.error_code, status.message)
            LOGGER.warning(
                "BCU reported status %s (%s) for %s; using the rows received",
                status.error_code,
                status.message,
                label,
            )

        extraction = extract_quotation_rows(response)
        if extraction.malformed:
            LOGGER.warning("Quotations response for %s matched no known envelope", label)
        return [
            row
            for row in extraction.records
            if parse_currency_code(row.get("Moneda")) == currency_code
        ]

    def fetch_for_date(self, currency_code: int, rate_date: date) -> RateRecord | None:
        """Return the quotation of ``currency_code`` on ``rate_date``.

        ``None`` means the BCU has no quotation for that day (weekend,
        holiday, or a response without the requested row). Any other
        non-zero status raises :class:`UpstreamError`.
        """

        response = self.query(currency_code, rate_date, rate_date)
        rows = self._rows_for_currency(response, currency_code, rate_date.isoformat())
        if rows is None:
            return None
        for row in rows:
            if coerce_upstream_date(row.get("Fecha")) == rate_date:
                return RateRecord.from_upstream(row)
        LOGGER.debug("No matching record found for currency %s on %s", currency_code, rate_date)
        return None

    def rows_in_range(
        self, currency_code: int, start: date, end: date
    ) -> list[tuple[date, Mapping[str, Any]]]:
        """Return ``(day, row)`` pairs of ``currency_code`` in the window, newest first.

        Upstream error statuses are logged rather than raised and rows
        without a usable ``Fecha`` are skipped. Only transport failures
        propagate.
        """

        label = f"{start} → {end}"
        response = self.query(currency_code, start, end)
        rows = self._rows_for_currency(response, currency_code, label, tolerate_errors=True)
        dated: list[tuple[date, Mapping[str, Any]]] = []
        for row in rows or ():
            day = coerce_upstream_date(row.get("Fecha"))
            if day is None:
                LOGGER.warning("Skipping quotation row without a valid date: %r", row.get("Fecha"))
                continue
            dated.append((day, row))
        dated.sort(key=lambda pair: pair[0], reverse=True)
        return dated

    def fetch_latest_in_range(self, currency_code: int, start: date, end: date) -> RateRecord | None:
        """Return the newest quotation of ``currency_code`` in ``[start, end]``."""

        dated = self.rows_in_range(currency_code, start, end)
        if not dated:
            return None
        return RateRecord.from_upstream(dated[0][1])


__all__ = ["RateFetcher"]
