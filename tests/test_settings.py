"""Tests for the application configuration record."""

import pytest

from finledger.domain.errors import ValidationError
from finledger.domain.settings import SettingsService


def test_defaults_created_on_first_read(temp_db):
    config = SettingsService(temp_db).get_config()

    assert config.primary_currency == "LKR"
    assert config.version == 1


def test_set_primary_currency_bumps_version(temp_db):
    service = SettingsService(temp_db)

    config = service.set_primary_currency(" usd ")

    assert config.primary_currency == "USD"
    assert config.version == 2
    assert service.primary_currency() == "USD"


def test_set_primary_currency_rejects_bad_code(temp_db):
    with pytest.raises(ValidationError, match="Currency code must be 3 characters"):
        SettingsService(temp_db).set_primary_currency("US")
