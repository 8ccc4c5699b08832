"""Application bootstrap utilities for Receipt Ledger."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional

from receiptledger.exceptions import ReceiptLedgerError
from receiptledger.infrastructure.app_constants import APP_TITLE
from receiptledger.infrastructure.logger import (
    LogCleanupScheduler,
    get_log_config,
    setup_logging,
)
from receiptledger.persistence.database_manager import DatabaseManager
from receiptledger.services.batch_builder import BatchSettlementBuilder
from receiptledger.services.carry_over import SeedCache
from receiptledger.services.settings_service import SettingsService
from receiptledger.services.settlement_repository import DatabaseSettlementRepository


class StartupError(RuntimeError):
    """Raised when the application cannot complete initialization."""


@dataclass
class ApplicationContext:
    """Aggregate of resources created during application bootstrap."""

    logger: Optional[logging.Logger] = None
    cleanup_scheduler: Optional[LogCleanupScheduler] = None
    settings_service: Optional[SettingsService] = None
    db_manager: Optional[DatabaseManager] = None
    repository: Optional[DatabaseSettlementRepository] = None
    seed_cache: Optional[SeedCache] = None
    batch_builder: Optional[BatchSettlementBuilder] = None

    def shutdown(self) -> None:
        """Release resources created during startup."""
        if self.cleanup_scheduler:
            self.cleanup_scheduler.stop()
        if self.db_manager:
            self.db_manager.close()
            self.db_manager = None


class ApplicationBuilder:
    """Coordinate logging, settings and database startup."""

    def __init__(
        self,
        *,
        log_config_getter: Callable[[], dict[str, Any]] = get_log_config,
        logging_setup: Callable[..., logging.Logger] = setup_logging,
        settings_factory: Callable[[], SettingsService] = SettingsService,
        db_factory: Callable[[str], DatabaseManager] = DatabaseManager,
        app_name: str = "receipt_ledger",
    ) -> None:
        self._log_config_getter = log_config_getter
        self._logging_setup = logging_setup
        self._settings_factory = settings_factory
        self._db_factory = db_factory
        self._app_name = app_name

    def build(self, db_path: Optional[str] = None) -> ApplicationContext:
        """Create every shared resource; on failure nothing is left open."""
        context = ApplicationContext()
        try:
            self._configure_logging(context)
            self._configure_services(context, db_path)
        except ReceiptLedgerError as exc:
            logger = context.logger or logging.getLogger(__name__)
            logger.critical("Failed to initialize application: %s", exc, exc_info=True)
            context.shutdown()
            raise StartupError(str(exc)) from exc
        return context

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _configure_logging(self, context: ApplicationContext) -> None:
        log_config = self._log_config_getter()
        Path(log_config["log_dir"]).mkdir(parents=True, exist_ok=True)
        logger = self._logging_setup(
            app_name=self._app_name,
            log_dir=log_config["log_dir"],
            debug_mode=log_config["debug_mode"],
            enable_info=log_config["enable_info"],
            enable_error=log_config["enable_error"],
            enable_debug=log_config["enable_debug"],
        )
        context.logger = logger
        logger.info("%s starting", APP_TITLE)
        logger.debug("Logging configuration: %s", log_config)

        if log_config.get("auto_cleanup"):
            scheduler = LogCleanupScheduler(
                log_dir=log_config["log_dir"],
                cleanup_days=log_config["cleanup_days"],
            )
            scheduler.start()
            logger.info(
                "Log cleanup scheduler initialized with %s days retention",
                log_config["cleanup_days"],
            )
            context.cleanup_scheduler = scheduler

    def _configure_services(self, context: ApplicationContext, db_path: Optional[str]) -> None:
        settings_service = self._settings_factory()
        defaults = settings_service.settlement_defaults()
        path = db_path or settings_service.database_path()

        context.settings_service = settings_service
        context.db_manager = self._db_factory(path)
        context.repository = DatabaseSettlementRepository(
            context.db_manager,
            multipliers=defaults.multipliers,
        )
        context.seed_cache = SeedCache()
        context.batch_builder = BatchSettlementBuilder(defaults, seed_cache=context.seed_cache)
        if context.logger:
            context.logger.info("Settlement store ready at %s", path)
