import pytest

from receiptledger.domain.settlement_models import RowKind
from receiptledger.exceptions import SettingsError
from receiptledger.infrastructure.app_constants import DB_PATH
from receiptledger.services.settings_service import SettingsService, SettlementDefaults


def test_settlement_defaults_without_stored_values(settings_stub):
    defaults = SettingsService().settlement_defaults()

    assert defaults == SettlementDefaults()
    assert defaults.multipliers == {RowKind.FIRST: 8.0, RowKind.SECOND: 9.0}
    assert defaults.max_rows == 10
    assert defaults.batch_max_workers == 1


def test_saved_defaults_are_read_back(settings_stub):
    service = SettingsService()
    custom = SettlementDefaults(
        deduction_rate_percent=12.5,
        adjustment_rate_percent=5.0,
        first_multiplier=7.0,
        second_multiplier=6.0,
        max_rows=4,
        batch_max_workers=3,
    )

    service.save_settlement_defaults(custom)

    assert SettingsService().settlement_defaults() == custom


def test_invalid_stored_values_fall_back_to_defaults(settings_stub, caplog):
    service = SettingsService()
    service.set("settlement/first_multiplier", "eight")
    service.set("settlement/max_rows", "0")

    with caplog.at_level("WARNING"):
        defaults = service.settlement_defaults()

    assert defaults.first_multiplier == 8.0
    assert defaults.max_rows == 1
    assert "settlement/first_multiplier" in caplog.text


def test_database_path_defaults_and_overrides(settings_stub):
    service = SettingsService()
    assert service.database_path() == DB_PATH

    service.set("database/path", "/tmp/other.db")
    assert service.database_path() == "/tmp/other.db"


def test_empty_key_is_rejected(settings_stub):
    with pytest.raises(SettingsError):
        SettingsService().set("", 1)
