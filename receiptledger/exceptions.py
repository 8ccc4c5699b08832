"""Custom exception hierarchy for the Receipt Ledger engine.

Calculators never raise; these exceptions belong to the submission boundary,
the persistence collaborator and the configuration layer.
"""
from __future__ import annotations

from typing import Optional


class ReceiptLedgerError(Exception):
    """Base exception for all Receipt Ledger errors."""

    pass


# Database-related exceptions
class DatabaseError(ReceiptLedgerError):
    """Base exception for database-related errors."""

    pass


class DatabaseConnectionError(DatabaseError):
    """Raised when no usable database connection is available."""

    pass


class DatabaseMigrationError(DatabaseError):
    """Raised when schema setup or migration fails."""

    pass


# Validation-related exceptions
class ValidationError(ReceiptLedgerError):
    """Base exception for validation errors."""

    pass


class MissingCustomerError(ValidationError):
    """Raised when a settlement is submitted without a resolved customer."""

    def __init__(self, message: str = "Please select a customer before saving.") -> None:
        super().__init__(message)


class RowLimitError(ValidationError):
    """Raised when a settlement would exceed the configured number of rows."""

    pass


# Submission exceptions
class SubmissionError(ReceiptLedgerError):
    """Raised when the persistence collaborator rejects a settlement.

    Carries the customer and the step that failed so the caller can retry
    the single submission.
    """

    def __init__(
        self,
        message: str,
        *,
        customer_id: Optional[str] = None,
        step: str = "submit",
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.customer_id = customer_id
        self.step = step
        self.cause = cause


# Configuration exceptions
class ConfigurationError(ReceiptLedgerError):
    """Base exception for configuration-related errors."""

    pass


class SettingsError(ConfigurationError):
    """Raised when a settings value cannot be read or written."""

    pass
