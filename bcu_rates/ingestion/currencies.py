"""Resolution of the "USD cash" entry in the BCU currency list."""

from __future__ import annotations

from typing import Any, Callable, Mapping, Sequence, TypeVar

from bcu_rates.exceptions import CurrencyNotFoundError, MalformedResponseError, TransportError
from bcu_rates.ingestion.models import CurrencyDescriptor, parse_currency_code
from bcu_rates.ingestion.normalizer import extract_currency_list
from bcu_rates.ingestion.soap_client import CURRENCY_OPERATIONS
from bcu_rates.ingestion.strategy import SoapTransport
from bcu_rates.settings import BCUSettings
from bcu_rates.utils.logger import get_logger
from bcu_rates.utils.text import normalize_name

LOGGER = get_logger(__name__)

USD_MARKERS = ("DOLAR USA", "DLS USA", "DLS. USA")
RAW_USD_MARKER = "DLS. USA"
CASH_MARKERS = ("BILLETE", "CASH")

T = TypeVar("T")


def is_usd_candidate(name: str | None) -> bool:
    """Return True when ``name`` designates a US dollar quotation."""

    normalized = normalize_name(name)
    if any(marker in normalized for marker in USD_MARKERS):
        return True
    # Upstream data is inconsistent; the raw spelling is checked as well.
    return RAW_USD_MARKER in (name or "")


def is_cash_variant(name: str | None) -> bool:
    normalized = normalize_name(name)
    return any(marker in normalized for marker in CASH_MARKERS)


def _pick_usd(items: Sequence[T], name_of: Callable[[T], Any]) -> T:
    candidates = [item for item in items if is_usd_candidate(name_of(item))]
    if not candidates:
        available = ["" if name_of(item) is None else str(name_of(item)) for item in items]
        LOGGER.error("Available currencies: %s", ", ".join(available))
        raise CurrencyNotFoundError(
            "USD currency not found within Group 2 (Local Exchange Rates)",
            available=available,
        )
    for candidate in candidates:
        if is_cash_variant(name_of(candidate)):
            return candidate
    return candidates[0]


def select_usd(descriptors: Sequence[CurrencyDescriptor]) -> CurrencyDescriptor:
    """Pick the USD cash descriptor, preferring BILLETE/CASH variants.

    Falls back to the first USD candidate in upstream order and raises
    :class:`CurrencyNotFoundError` when there is none.
    """

    return _pick_usd(descriptors, lambda item: item.name)


def select_usd_row(rows: Sequence[Mapping[str, Any]]) -> CurrencyDescriptor:
    """Pick the USD cash row of a ``{Codigo, Nombre}`` list and convert it.

    The code is only validated once the row is chosen; a chosen row with a
    non-numeric ``Codigo`` raises :class:`MalformedResponseError`.
    """

    row = _pick_usd(rows, lambda item: item.get("Nombre"))
    code = parse_currency_code(row.get("Codigo"))
    if code is None:
        LOGGER.error("Selected currency %r has invalid code %r", row.get("Nombre"), row.get("Codigo"))
        raise MalformedResponseError("Invalid currency code received from BCU service")
    return CurrencyDescriptor(code=code, name=str(row.get("Nombre")))


class CurrencyResolver:
    """Query ``awsbcumonedas`` and locate the USD cash currency code."""

    def __init__(self, transport: SoapTransport, settings: BCUSettings | None = None) -> None:
        self.transport = transport
        self.settings = settings or BCUSettings()

    def fetch_rows(self) -> list[Mapping[str, Any]]:
        args = {"Entrada": {"Grupo": self.settings.local_exchange_group}}
        response = self.transport.invoke(self.settings.currencies_wsdl, CURRENCY_OPERATIONS, args)
        if not response:
            raise TransportError("Failed to invoke BCU currencies web service (awsbcumonedas)")
        extraction = extract_currency_list(response)
        if extraction.malformed:
            LOGGER.warning("Currencies response matched no known envelope: %r", response)
        return extraction.records

    def resolve(self, descriptors: Sequence[CurrencyDescriptor] | None = None) -> CurrencyDescriptor:
        """Return the USD cash descriptor, fetching the list when not given."""

        if descriptors is None:
            selected = select_usd_row(self.fetch_rows())
        else:
            selected = select_usd(descriptors)
        LOGGER.info("Selected USD currency: %s (Code: %s)", selected.name, selected.code)
        return selected


__all__ = [
    "CASH_MARKERS",
    "CurrencyResolver",
    "USD_MARKERS",
    "is_cash_variant",
    "is_usd_candidate",
    "select_usd",
    "select_usd_row",
]
