"""Latest available quotation, via the last-closing service or a window scan."""

from __future__ import annotations

from datetime import date
from typing import Callable

from bcu_rates.exceptions import MalformedResponseError, TransportError
from bcu_rates.ingestion.models import RateRecord
from bcu_rates.ingestion.normalizer import extract_last_closing
from bcu_rates.ingestion.quotations import RateFetcher
from bcu_rates.ingestion.soap_client import LAST_CLOSING_OPERATIONS
from bcu_rates.ingestion.strategy import SoapTransport
from bcu_rates.settings import BCUSettings
from bcu_rates.utils.date_range import lookback_window
from bcu_rates.utils.logger import get_logger

LOGGER = get_logger(__name__)


class LatestRateResolver:
    """Resolve the most recent quotation of a currency.

    The ``awsultimocierre`` service is asked for the last closing date first.
    Whenever that path fails or yields nothing, the quotations service is
    queried once for the whole lookback window and the newest row wins.
    """

    def __init__(
        self,
        transport: SoapTransport,
        settings: BCUSettings | None = None,
        *,
        fetcher: RateFetcher | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.transport = transport
        self.settings = settings or BCUSettings()
        self.fetcher = fetcher or RateFetcher(transport, self.settings)
        self._today = today

    def last_closing_date(self) -> date | None:
        args = {"wsultimocierrein": {"Grupo": self.settings.local_exchange_group}}
        response = self.transport.invoke(
            self.settings.last_closing_wsdl, LAST_CLOSING_OPERATIONS, args
        )
        if not response:
            raise TransportError("Failed to invoke BCU last closing web service (awsultimocierre)")
        closing = extract_last_closing(response)
        if closing is None:
            raise MalformedResponseError("Last closing response carries no UltimoCierre date")
        return closing

    def _from_last_closing(self, currency_code: int) -> RateRecord | None:
        LOGGER.debug("Attempting to get latest rate via last closing service")
        try:
            closing = self.last_closing_date()
            record = self.fetcher.fetch_for_date(currency_code, closing)
        except Exception as exc:
            LOGGER.warning("Last closing service failed, using fallback method: %s", exc)
            return None
        if record is not None:
            LOGGER.info("Latest rate found via last closing service: %s", closing)
        return record

    def _from_window_scan(self, currency_code: int) -> RateRecord | None:
        window = lookback_window(self.settings.max_lookback_days, today=self._today())
        LOGGER.debug("Using fallback method to find latest rate in %s → %s", *window.as_iso())
        latest = self.fetcher.fetch_latest_in_range(currency_code, window.start, window.end)
        if latest is None:
            LOGGER.warning("No recent exchange rate data found for currency %s", currency_code)
            return None
        LOGGER.info("Latest rate found via fallback method: %s", latest.rate_date)
        return latest

    def resolve(self, currency_code: int) -> RateRecord | None:
        record = self._from_last_closing(currency_code)
        if record is not None:
            return record
        return self._from_window_scan(currency_code)


__all__ = ["LatestRateResolver"]
