import pytest

from bcu_rates.settings import QUOTATIONS_WSDL, BCUSettings


def test_defaults_point_at_bcu() -> None:
    settings = BCUSettings()

    assert settings.quotations_wsdl == QUOTATIONS_WSDL
    assert settings.local_exchange_group == 2
    assert settings.max_lookback_days == 31
    assert not settings.is_development


def test_from_env_overrides() -> None:
    settings = BCUSettings.from_env(
        {
            "BCU_QUOTATIONS_WSDL": "http://mock/quotes?wsdl",
            "BCU_MAX_LOOKBACK_DAYS": "10",
            "BCU_TIMEOUT": "5.5",
            "BCU_CLIENT_RETRIES": "",
            "FLASK_ENV": "Development",
        }
    )

    assert settings.quotations_wsdl == "http://mock/quotes?wsdl"
    assert settings.max_lookback_days == 10
    assert settings.timeout == 5.5
    assert settings.client_retries == 3
    assert settings.is_development


def test_app_env_wins_over_flask_env() -> None:
    settings = BCUSettings.from_env({"APP_ENV": "staging", "FLASK_ENV": "development"})

    assert settings.environment == "staging"


def test_from_env_rejects_bad_numbers() -> None:
    with pytest.raises(ValueError, match="BCU_LOCAL_GROUP"):
        BCUSettings.from_env({"BCU_LOCAL_GROUP": "two"})


def test_lookback_must_be_positive() -> None:
    with pytest.raises(ValueError):
        BCUSettings(max_lookback_days=0)


def test_service_addresses_and_overrides() -> None:
    settings = BCUSettings().with_overrides(currencies_wsdl="http://mock/currencies")

    assert settings.service_addresses()["bcuCurrencies"] == "http://mock/currencies"
    assert set(settings.service_addresses()) == {"bcuExchangeRates", "bcuCurrencies", "bcuLastClosing"}
