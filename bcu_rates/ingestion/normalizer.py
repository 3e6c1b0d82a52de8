"""Normalisation of the loosely shaped BCU SOAP responses.

The BCU services wrap the same payload differently depending on the WSDL
version and operation that answered. Every known envelope is listed here as
an ordered tuple of key paths; callers never walk responses themselves.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping, Sequence

from bcu_rates.exceptions import MalformedResponseError
from bcu_rates.ingestion.models import ServiceStatus
from bcu_rates.utils.date_range import coerce_upstream_date
from bcu_rates.utils.logger import get_logger

LOGGER = get_logger(__name__)

KeyPath = tuple[str, ...]

CURRENCY_LIST_PATHS: tuple[KeyPath, ...] = (
    ("Salida", "wsmonedasout.Linea"),
    ("wsmonedasout", "Monedas"),
    ("wsmonedasout",),
    ("return", "Monedas"),
    ("return",),
)
QUOTATION_ROW_PATHS: tuple[KeyPath, ...] = (
    ("Salida", "datoscotizaciones", "datoscotizaciones.dato"),
    ("Salida", "datoscotizaciones"),
    ("wsbcucotizacionesout", "datoscotizaciones"),
    ("datoscotizaciones",),
    ("return", "datoscotizaciones"),
)
STATUS_PATHS: tuple[KeyPath, ...] = (
    ("Salida", "respuestastatus"),
    ("wsbcucotizacionesout", "respuestastatus"),
    ("respuestastatus",),
    ("return", "respuestastatus"),
)
LAST_CLOSING_PATHS: tuple[KeyPath, ...] = (
    ("wsultimocierreout", "UltimoCierre"),
    ("Salida", "UltimoCierre"),
    ("UltimoCierre",),
    ("return", "UltimoCierre"),
)

CURRENCY_RECORD_KEYS = frozenset({"Codigo", "Nombre"})
QUOTATION_RECORD_KEYS = frozenset({"Fecha", "Moneda", "TCC", "TCV", "CodigoISO"})

STATUS_CODE_KEYS = ("codigoerror", "Codigoerror", "Codigoerr", "Codigo")
STATUS_MESSAGE_KEYS = ("Mensaje", "mensaje")

_MISSING = object()


@dataclass(frozen=True)
class Extraction:
    """Outcome of matching a response against a list of envelope paths.

    ``envelope_found`` is False when none of the known keys exist at all,
    which is how a malformed response differs from a legitimately empty one.
    """

    path: KeyPath | None
    envelope_found: bool
    records: list[Mapping[str, Any]] = field(default_factory=list)

    @property
    def malformed(self) -> bool:
        return not self.envelope_found


def _dig(response: Any, path: KeyPath) -> Any:
    current = response
    for key in path:
        if not isinstance(current, Mapping) or key not in current:
            return _MISSING
        current = current[key]
    return current


def _is_empty(value: Any) -> bool:
    if value is None or value is _MISSING:
        return True
    if isinstance(value, (str, bytes, Mapping, list, tuple)):
        return len(value) == 0
    return False


def first_match(response: Any, paths: Sequence[KeyPath]) -> tuple[KeyPath, Any] | None:
    """Return the first ``(path, value)`` whose value is not empty."""

    for path in paths:
        value = _dig(response, path)
        if not _is_empty(value):
            return path, value
    return None


def _looks_like_record(value: Mapping[str, Any], record_keys: Iterable[str]) -> bool:
    if any(key in value for key in record_keys):
        return True
    # A mapping of scalars is a record even when its keys are unknown.
    return not any(isinstance(item, (Mapping, list, tuple)) for item in value.values())


def as_record_list(value: Any, record_keys: Iterable[str] = ()) -> list[Mapping[str, Any]]:
    """Coerce a matched envelope value into a list of record mappings.

    Lists are kept as-is, a single record-shaped mapping is wrapped into a
    one-element list and a mapping of records contributes its values. A
    single record is never iterated field by field.
    """

    keys = tuple(record_keys)
    if isinstance(value, (list, tuple)):
        records: list[Mapping[str, Any]] = []
        for item in value:
            if isinstance(item, Mapping):
                records.append(item)
            elif isinstance(item, (list, tuple)):
                records.extend(as_record_list(item, keys))
        return records
    if isinstance(value, Mapping):
        if _looks_like_record(value, keys):
            return [value]
        records = []
        for item in value.values():
            records.extend(as_record_list(item, keys))
        return records
    return []


def extract(
    response: Any,
    paths: Sequence[KeyPath],
    record_keys: Iterable[str] = (),
) -> Extraction:
    """Match ``response`` against ``paths`` and return the records found.

    A response that is itself a list (zeep unwraps single-child outputs down
    to the repeated element) is the top-level array envelope.
    """

    if isinstance(response, (list, tuple)):
        return Extraction(path=(), envelope_found=True, records=as_record_list(response, record_keys))
    envelope_found = any(_dig(response, path) is not _MISSING for path in paths)
    matched = first_match(response, paths)
    if matched is None:
        return Extraction(path=None, envelope_found=envelope_found)
    path, value = matched
    return Extraction(path=path, envelope_found=True, records=as_record_list(value, record_keys))


def extract_records(
    response: Any,
    paths: Sequence[KeyPath],
    record_keys: Iterable[str] = (),
) -> list[Mapping[str, Any]]:
    return extract(response, paths, record_keys).records


def extract_currency_list(response: Any) -> Extraction:
    return extract(response, CURRENCY_LIST_PATHS, CURRENCY_RECORD_KEYS)


def extract_quotation_rows(response: Any) -> Extraction:
    return extract(response, QUOTATION_ROW_PATHS, QUOTATION_RECORD_KEYS)


def _first_present(mapping: Mapping[str, Any], keys: Sequence[str]) -> Any:
    for key in keys:
        value = mapping.get(key)
        if value is not None:
            return value
    return None


def _parse_error_code(raw: Any) -> int:
    if raw is None:
        return 0
    try:
        number = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError):
        LOGGER.debug("Ignoring non-numeric BCU status code %r", raw)
        return 0
    if not number.is_finite():
        return 0
    return int(number)


def extract_status(response: Any) -> ServiceStatus:
    """Read the ``respuestastatus`` block; a missing block means success."""

    matched = first_match(response, STATUS_PATHS)
    if matched is None or not isinstance(matched[1], Mapping):
        return ServiceStatus()
    status = matched[1]
    message = _first_present(status, STATUS_MESSAGE_KEYS)
    return ServiceStatus(
        error_code=_parse_error_code(_first_present(status, STATUS_CODE_KEYS)),
        message=None if message is None else str(message),
    )


def extract_last_closing(response: Any) -> date | None:
    """Return the ``UltimoCierre`` date, ``None`` when the response has none."""

    matched = first_match(response, LAST_CLOSING_PATHS)
    if matched is None:
        return None
    closing = coerce_upstream_date(matched[1])
    if closing is None:
        raise MalformedResponseError(f"UltimoCierre is not a date: {matched[1]!r}")
    return closing


__all__ = [
    "CURRENCY_LIST_PATHS",
    "CURRENCY_RECORD_KEYS",
    "Extraction",
    "LAST_CLOSING_PATHS",
    "QUOTATION_RECORD_KEYS",
    "QUOTATION_ROW_PATHS",
    "STATUS_PATHS",
    "as_record_list",
    "extract",
    "extract_currency_list",
    "extract_last_closing",
    "extract_quotation_rows",
    "extract_records",
    "extract_status",
    "first_match",
]
