from decimal import Decimal

from estateledger.config import Settings


def test_billing_defaults():
    settings = Settings(_env_file=None)

    assert settings.grace_period_day == 10
    assert settings.management_fee_rate == Decimal("0.05")
    assert settings.currency_label == "Ksh"


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv("GRACE_PERIOD_DAY", "15")
    monkeypatch.setenv("MANAGEMENT_FEE_RATE", "0.08")
    monkeypatch.setenv("JSON_LOGS", "true")

    settings = Settings(_env_file=None)

    assert settings.grace_period_day == 15
    assert settings.management_fee_rate == Decimal("0.08")
    assert settings.json_logs is True
