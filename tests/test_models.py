from datetime import date
from decimal import Decimal

import pytest

from bcu_rates.exceptions import MalformedResponseError
from bcu_rates.ingestion.models import RateRecord, ServiceStatus, parse_currency_code
from bcu_rates.utils.text import normalize_name


@pytest.mark.parametrize(
    "raw, expected",
    [(2225, 2225), ("2225", 2225), (" 2225 ", 2225), (2225.0, 2225), ("22.5", None), ("", None), (True, None), (None, None)],
)
def test_parse_currency_code(raw, expected) -> None:
    assert parse_currency_code(raw) == expected


def test_rate_record_from_upstream_row() -> None:
    record = RateRecord.from_upstream(
        {
            "Fecha": "2024-03-15",
            "Nombre": "DLS. USA BILLETE",
            "CodigoISO": "USD",
            "Emisor": "BCU",
            "TCC": 39.1,
            "TCV": "39.500",
            "ArbAct": 1,
            "FormaArbitrar": "A",
        }
    )

    assert record.rate_date == date(2024, 3, 15)
    assert record.buy_rate == Decimal("39.1")
    assert record.sell_rate == Decimal("39.500")
    assert record.as_dict() == {
        "date": "2024-03-15",
        "currency": "DLS. USA BILLETE",
        "isoCode": "USD",
        "issuer": "BCU",
        "buyRate": 39.1,
        "sellRate": 39.5,
        "arbitrage": 1.0,
        "arbitrageMethod": "A",
    }


def test_optional_fields_default_to_none() -> None:
    record = RateRecord.from_upstream({"Fecha": date(2024, 3, 15), "TCC": "1", "TCV": "2"})

    assert record.iso_code is None
    assert record.arbitrage is None
    assert record.currency == ""


@pytest.mark.parametrize(
    "row",
    [
        {"Fecha": "not a date", "TCC": "1", "TCV": "2"},
        {"Fecha": "2024-03-15", "TCC": None, "TCV": "2"},
        {"Fecha": "2024-03-15", "TCC": "1", "TCV": "-2"},
        {"Fecha": "2024-03-15", "TCC": "NaN", "TCV": "2"},
    ],
)
def test_bad_rows_are_malformed(row) -> None:
    with pytest.raises(MalformedResponseError):
        RateRecord.from_upstream(row)


def test_service_status_flags() -> None:
    assert ServiceStatus().ok
    assert ServiceStatus(100).no_data
    assert not ServiceStatus(250).ok


def test_normalize_name_strips_accents() -> None:
    assert normalize_name("  Dólar usa billete ") == "DOLAR USA BILLETE"
    assert normalize_name(None) == ""
