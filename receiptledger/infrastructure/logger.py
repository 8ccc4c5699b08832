"""Logging setup for Receipt Ledger: rotating log files, retention and DB operation tracing."""
import logging
import logging.handlers
import os
import sqlite3
import threading
from datetime import datetime, timedelta
from pathlib import Path

from receiptledger.infrastructure.app_constants import LOG_DIR
from receiptledger.infrastructure.settings import get_app_settings

DEBUG_ENV_VAR = "RECEIPT_LEDGER_DEBUG"
LOG_DIR_ENV_VAR = "RECEIPT_LEDGER_LOG_DIR"

LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(module)s:%(lineno)d] [%(funcName)s] %(message)s"
MAX_CLEANUP_DAYS = 365

# (file suffix, level, max bytes, backups)
_FILE_TARGETS = {
    "info": ("", logging.INFO, 5 * 1024 * 1024, 10),
    "error": ("_error", logging.ERROR, 5 * 1024 * 1024, 10),
    "debug": ("_debug", logging.DEBUG, 10 * 1024 * 1024, 5),
}


def _rotating_handler(log_path, app_name, target, formatter):
    suffix, level, max_bytes, backups = _FILE_TARGETS[target]
    handler = logging.handlers.RotatingFileHandler(
        log_path / f"{app_name}{suffix}.log",
        maxBytes=max_bytes,
        backupCount=backups,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(app_name="receipt_ledger", log_dir=LOG_DIR, debug_mode=False,
                  enable_info=True, enable_error=True, enable_debug=True):
    """
    Route the root logger to rotating files under ``log_dir`` plus the console.

    ``<app_name>.log`` receives INFO and above, ``<app_name>_error.log`` ERROR
    and above, and ``<app_name>_debug.log`` everything, but only in debug mode.
    Existing root handlers are closed and replaced.
    """
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if debug_mode else logging.INFO)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)
    wanted = {"info": enable_info, "error": enable_error, "debug": debug_mode and enable_debug}
    for target, enabled in wanted.items():
        if enabled:
            root_logger.addHandler(_rotating_handler(log_path, app_name, target, formatter))

    console = logging.StreamHandler()
    console.setLevel(logging.DEBUG if debug_mode else logging.WARNING)
    console.setFormatter(formatter)
    root_logger.addHandler(console)

    root_logger.info("Logging initialized (debug=%s) in %s", debug_mode, log_path)
    return root_logger


class DatabaseOperation:
    """Trace a named database operation; failures are logged and re-raised."""

    def __init__(self, operation_name, logger=None):
        self.operation_name = operation_name
        self.logger = logger or logging.getLogger(__name__)
        self.success = False

    def __enter__(self):
        self.logger.debug("Starting database operation: %s", self.operation_name)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.success = True
            self.logger.debug("Completed database operation: %s", self.operation_name)
        elif issubclass(exc_type, sqlite3.Error):
            self.logger.error("Database error during %s: %s", self.operation_name, exc_val, exc_info=True)
        elif issubclass(exc_type, (TypeError, ValueError)):
            self.logger.warning("Invalid value during %s: %s", self.operation_name, exc_val)
        else:
            self.logger.error("Unexpected error during %s: %s", self.operation_name, exc_val, exc_info=True)
        return False


def cleanup_old_logs(log_dir=LOG_DIR, max_age_days=1):
    """Delete ``*.log*`` files in ``log_dir`` older than ``max_age_days``; return how many went."""
    logger = logging.getLogger(__name__)
    max_age_days = _clamp_days(max_age_days)

    log_path = Path(log_dir)
    if not log_path.is_dir():
        logger.warning("Log directory %s does not exist, nothing to clean up", log_dir)
        return 0

    cutoff = (datetime.now() - timedelta(days=max_age_days)).timestamp()
    removed = 0
    for file_path in log_path.glob("*.log*"):
        if not file_path.is_file() or file_path.stat().st_mtime >= cutoff:
            continue
        try:
            file_path.unlink()
        except OSError as exc:
            logger.warning("Failed to remove old log file %s: %s", file_path, exc)
        else:
            removed += 1

    logger.info("Log cleanup removed %d files older than %d days", removed, max_age_days)
    return removed


class LogCleanupScheduler:
    """Run ``cleanup_old_logs`` on a repeating daemon timer until stopped."""

    def __init__(self, log_dir=LOG_DIR, cleanup_days=1, interval_seconds=24 * 60 * 60):
        self.log_dir = log_dir
        self.cleanup_days = _clamp_days(cleanup_days)
        self.interval_seconds = interval_seconds
        self.timer = None
        self.is_running = False
        self.logger = logging.getLogger(__name__)
        self._lock = threading.Lock()

    def start(self):
        with self._lock:
            self.is_running = True
        self._arm()
        self.logger.info("Log cleanup scheduled every %.1f hours", self.interval_seconds / 3600)

    def stop(self):
        with self._lock:
            if self.timer is not None:
                self.timer.cancel()
                self.timer = None
            self.is_running = False

    def _arm(self):
        with self._lock:
            if not self.is_running:
                return
            if self.timer is not None:
                self.timer.cancel()
            self.timer = threading.Timer(self.interval_seconds, self._run_cleanup)
            self.timer.daemon = True
            self.timer.start()

    def _run_cleanup(self):
        try:
            cleanup_old_logs(self.log_dir, self.cleanup_days)
        except OSError as exc:
            self.logger.error("Automatic log cleanup failed: %s", exc, exc_info=True)
        finally:
            self._arm()


def get_log_config():
    """
    Read logging options: environment variables first, then ``logging/*`` in QSettings.

    Returns the keyword set ``ApplicationBuilder`` feeds to ``setup_logging``
    plus ``auto_cleanup`` and ``cleanup_days`` for the retention scheduler.
    """
    settings = get_app_settings()

    if DEBUG_ENV_VAR in os.environ:
        debug_mode = os.environ[DEBUG_ENV_VAR].lower() in ("true", "1", "yes")
    else:
        debug_mode = settings.value("logging/debug_mode", False, type=bool)

    try:
        cleanup_days = int(settings.value("logging/cleanup_days", 1, type=int))
    except (TypeError, ValueError):
        cleanup_days = 1

    return {
        "debug_mode": debug_mode,
        "log_dir": os.environ.get(LOG_DIR_ENV_VAR, LOG_DIR),
        "enable_info": settings.value("logging/enable_info", True, type=bool),
        "enable_error": settings.value("logging/enable_error", True, type=bool),
        "enable_debug": settings.value("logging/enable_debug", True, type=bool),
        "auto_cleanup": settings.value("logging/auto_cleanup", False, type=bool),
        "cleanup_days": _clamp_days(cleanup_days),
    }


def _clamp_days(days):
    return max(1, min(int(days), MAX_CLEANUP_DAYS))
