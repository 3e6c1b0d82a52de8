"""Data models shared across ingestion modules."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from bcu_rates.exceptions import MalformedResponseError
from bcu_rates.utils.date_range import coerce_upstream_date

NO_DATA_ERROR_CODE = 100


@dataclass(frozen=True, slots=True)
class CurrencyDescriptor:
    """One entry of the BCU currency list for a quotation group."""

    code: int
    name: str

    def as_dict(self) -> dict[str, Any]:
        return {"code": self.code, "name": self.name}


@dataclass(frozen=True, slots=True)
class ServiceStatus:
    """Status block (``respuestastatus``) of a quotations response."""

    error_code: int = 0
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.error_code == 0

    @property
    def no_data(self) -> bool:
        """True for the "no quotation for the requested date" sentinel."""

        return self.error_code == NO_DATA_ERROR_CODE


def parse_currency_code(raw: object) -> int | None:
    """Return ``raw`` as an integer currency code, ``None`` when it is not one."""

    if raw is None or isinstance(raw, bool):
        return None
    try:
        number = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError):
        return None
    if not number.is_finite() or number != number.to_integral_value():
        return None
    return int(number)


def _to_decimal(value: object, field: str, *, non_negative: bool = False) -> Decimal:
    if isinstance(value, bool) or value is None:
        raise MalformedResponseError(f"{field} is not numeric: {value!r}")
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as exc:
        raise MalformedResponseError(f"{field} is not numeric: {value!r}") from exc
    if not number.is_finite():
        raise MalformedResponseError(f"{field} is not finite: {value!r}")
    if non_negative and number < 0:
        raise MalformedResponseError(f"{field} must not be negative: {value!r}")
    return number


def _optional_text(value: object) -> str | None:
    if value is None:
        return None
    return str(value)


@dataclass(frozen=True, slots=True)
class RateRecord:
    """Buy/sell quotation of one currency on one business day."""

    rate_date: date
    currency: str
    iso_code: str | None
    issuer: str | None
    buy_rate: Decimal
    sell_rate: Decimal
    arbitrage: Decimal | None = None
    arbitrage_method: str | None = None

    @classmethod
    def from_upstream(cls, row: Mapping[str, Any]) -> "RateRecord":
        """Build a record from a ``datoscotizaciones`` row.

        Raises :class:`MalformedResponseError` when the date or the rates
        cannot be coerced.
        """

        rate_date = coerce_upstream_date(row.get("Fecha"))
        if rate_date is None:
            raise MalformedResponseError(f"Fecha is not a date: {row.get('Fecha')!r}")
        arbitrage_raw = row.get("ArbAct")
        return cls(
            rate_date=rate_date,
            currency=str(row.get("Nombre") or ""),
            iso_code=_optional_text(row.get("CodigoISO")),
            issuer=_optional_text(row.get("Emisor")),
            buy_rate=_to_decimal(row.get("TCC"), "TCC", non_negative=True),
            sell_rate=_to_decimal(row.get("TCV"), "TCV", non_negative=True),
            arbitrage=None if arbitrage_raw is None else _to_decimal(arbitrage_raw, "ArbAct"),
            arbitrage_method=_optional_text(row.get("FormaArbitrar")),
        )

    def as_dict(self) -> dict[str, Any]:
        """JSON-ready representation used by the HTTP layer and the CLI."""

        return {
            "date": self.rate_date.isoformat(),
            "currency": self.currency,
            "isoCode": self.iso_code,
            "issuer": self.issuer,
            "buyRate": float(self.buy_rate),
            "sellRate": float(self.sell_rate),
            "arbitrage": None if self.arbitrage is None else float(self.arbitrage),
            "arbitrageMethod": self.arbitrage_method,
        }


__all__ = [
    "CurrencyDescriptor",
    "NO_DATA_ERROR_CODE",
    "RateRecord",
    "ServiceStatus",
    "parse_currency_code",
]
