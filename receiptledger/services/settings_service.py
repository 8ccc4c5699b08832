"""Application settings service built on QSettings."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from PyQt5.QtCore import QSettings

from receiptledger.domain.settlement_models import RowKind
from receiptledger.exceptions import SettingsError
from receiptledger.infrastructure.app_constants import DB_PATH, SETTINGS_APP, SETTINGS_ORG

DEFAULT_DEDUCTION_RATE = 10.0
DEFAULT_ADJUSTMENT_RATE = 10.0
DEFAULT_FIRST_MULTIPLIER = 8.0
DEFAULT_SECOND_MULTIPLIER = 9.0
DEFAULT_MAX_ROWS = 10
DEFAULT_BATCH_WORKERS = 1


@dataclass(frozen=True)
class SettlementDefaults:
    """Vendor-level defaults applied to every new settlement."""

    deduction_rate_percent: float = DEFAULT_DEDUCTION_RATE
    adjustment_rate_percent: float = DEFAULT_ADJUSTMENT_RATE
    first_multiplier: float = DEFAULT_FIRST_MULTIPLIER
    second_multiplier: float = DEFAULT_SECOND_MULTIPLIER
    max_rows: int = DEFAULT_MAX_ROWS
    batch_max_workers: int = DEFAULT_BATCH_WORKERS

    @property
    def multipliers(self) -> Mapping[RowKind, float]:
        return {
            RowKind.FIRST: self.first_multiplier,
            RowKind.SECOND: self.second_multiplier,
        }


class SettingsService:
    def __init__(self, settings: Optional[QSettings] = None) -> None:
        self._settings = settings if settings is not None else QSettings(SETTINGS_ORG, SETTINGS_APP)
        self._logger = logging.getLogger(__name__)

    # --- Settlement defaults -------------------------------------------
    def settlement_defaults(self) -> SettlementDefaults:
        return SettlementDefaults(
            deduction_rate_percent=self._float("settlement/deduction_rate_percent", DEFAULT_DEDUCTION_RATE),
            adjustment_rate_percent=self._float("settlement/adjustment_rate_percent", DEFAULT_ADJUSTMENT_RATE),
            first_multiplier=self._float("settlement/first_multiplier", DEFAULT_FIRST_MULTIPLIER),
            second_multiplier=self._float("settlement/second_multiplier", DEFAULT_SECOND_MULTIPLIER),
            max_rows=max(1, self._int("settlement/max_rows", DEFAULT_MAX_ROWS)),
            batch_max_workers=max(1, self._int("batch/max_workers", DEFAULT_BATCH_WORKERS)),
        )

    def save_settlement_defaults(self, defaults: SettlementDefaults) -> None:
        self._settings.setValue("settlement/deduction_rate_percent", float(defaults.deduction_rate_percent))
        self._settings.setValue("settlement/adjustment_rate_percent", float(defaults.adjustment_rate_percent))
        self._settings.setValue("settlement/first_multiplier", float(defaults.first_multiplier))
        self._settings.setValue("settlement/second_multiplier", float(defaults.second_multiplier))
        self._settings.setValue("settlement/max_rows", int(defaults.max_rows))
        self._settings.setValue("batch/max_workers", int(defaults.batch_max_workers))
        self._settings.sync()

    # --- Database -------------------------------------------------------
    def database_path(self) -> str:
        value = self._settings.value("database/path", DB_PATH)
        return str(value or DB_PATH)

    # --- Convenience ---------------------------------------------------
    def set(self, key: str, value: Any) -> None:
        if not key:
            raise SettingsError("Settings key must not be empty")
        self._settings.setValue(key, value)
        self._settings.sync()

    def _float(self, key: str, default: float) -> float:
        raw = self._settings.value(key, default)
        try:
            return float(raw)
        except (TypeError, ValueError):
            self._logger.warning("Ignoring invalid value %r for setting %s", raw, key)
            return float(default)

    def _int(self, key: str, default: int) -> int:
        raw = self._settings.value(key, default)
        try:
            return int(raw)
        except (TypeError, ValueError):
            self._logger.warning("Ignoring invalid value %r for setting %s", raw, key)
            return int(default)
