from __future__ import annotations

import pytest

from receiptledger.exceptions import DatabaseConnectionError
from receiptledger.infrastructure.application import ApplicationBuilder, StartupError
from receiptledger.persistence.database_manager import DatabaseManager
from receiptledger.services.settings_service import SettingsService


class StubLogger:
    def __init__(self) -> None:
        self.records: list[tuple[str, str]] = []

    def _record(self, level: str, message: str, *args, **kwargs) -> None:
        if args:
            message = message % args
        self.records.append((level, message))

    def info(self, message: str, *args, **kwargs) -> None:
        self._record("info", message, *args, **kwargs)

    def debug(self, message: str, *args, **kwargs) -> None:
        self._record("debug", message, *args, **kwargs)

    def warning(self, message: str, *args, **kwargs) -> None:
        self._record("warning", message, *args, **kwargs)

    def error(self, message: str, *args, **kwargs) -> None:
        self._record("error", message, *args, **kwargs)

    def critical(self, message: str, *args, **kwargs) -> None:
        self._record("critical", message, *args, **kwargs)


@pytest.fixture
def log_config(tmp_path):
    return {
        "debug_mode": False,
        "log_dir": str(tmp_path / "logs"),
        "enable_info": True,
        "enable_error": True,
        "enable_debug": False,
        "auto_cleanup": False,
        "cleanup_days": 7,
    }


def _builder(log_config, stub_logger, **overrides):
    calls = {}

    def logging_setup(**kwargs):
        calls["logging"] = kwargs
        return stub_logger

    builder = ApplicationBuilder(
        log_config_getter=lambda: log_config,
        logging_setup=logging_setup,
        **overrides,
    )
    return builder, calls


def test_build_wires_settings_database_and_repository(settings_stub, log_config, tmp_path):
    stub_logger = StubLogger()
    settings_stub().setValue("batch/max_workers", 4)
    builder, calls = _builder(log_config, stub_logger)

    context = builder.build(str(tmp_path / "ledger.db"))
    try:
        assert calls["logging"]["app_name"] == "receipt_ledger"
        assert isinstance(context.settings_service, SettingsService)
        assert isinstance(context.db_manager, DatabaseManager)
        assert context.repository.fetch_history() == []
        assert context.batch_builder.defaults.batch_max_workers == 4
        assert any(
            level == "info" and message.endswith("starting") for level, message in stub_logger.records
        )
    finally:
        context.shutdown()

    assert context.db_manager is None
    assert (tmp_path / "logs").is_dir()


def test_build_uses_database_path_from_settings(settings_stub, log_config, tmp_path):
    target = tmp_path / "configured" / "receipts.db"
    settings_stub().setValue("database/path", str(target))
    builder, _ = _builder(log_config, StubLogger())

    context = builder.build()
    context.shutdown()

    assert target.exists()


def test_database_failure_becomes_startup_error(settings_stub, log_config):
    stub_logger = StubLogger()

    def failing_db(path):
        raise DatabaseConnectionError(f"cannot open {path}")

    builder, _ = _builder(log_config, stub_logger, db_factory=failing_db)

    with pytest.raises(StartupError):
        builder.build("unused.db")

    assert any(level == "critical" for level, _ in stub_logger.records)


def test_auto_cleanup_starts_scheduler(settings_stub, log_config, tmp_path):
    log_config["auto_cleanup"] = True
    builder, _ = _builder(log_config, StubLogger())

    context = builder.build(":memory:")
    try:
        assert context.cleanup_scheduler is not None
        assert context.cleanup_scheduler.is_running
    finally:
        context.shutdown()

    assert not context.cleanup_scheduler.is_running
