"""Presenter for the settlement entry experience."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Protocol, Sequence

from receiptledger.domain.row_normalizer import blank_row
from receiptledger.domain.settlement_models import (
    CustomerLedgerSeed,
    EntryRow,
    SettlementBreakdown,
    SettlementRecord,
    SettlementScalars,
    SpecialCategory,
)
from receiptledger.exceptions import (
    DatabaseError,
    MissingCustomerError,
    RowLimitError,
    SubmissionError,
)
from receiptledger.services.carry_over import SeedCache
from receiptledger.services.settings_service import SettlementDefaults
from receiptledger.services.settlement_calculator import compute_settlement
from receiptledger.services.settlement_repository import SettlementRepository


@dataclass(frozen=True)
class SettlementEntryViewState:
    """Snapshot of the data required to run presenter computations."""

    customer_id: str
    rows: Sequence[EntryRow]
    scalars: SettlementScalars = field(default_factory=SettlementScalars)
    special_category: SpecialCategory = SpecialCategory.JACKPOT
    customer_name: str = ""
    record_id: Optional[str] = None
    occurred_at: Optional[datetime] = None


class SettlementEntryView(Protocol):
    """Interface implemented by the entry form so the presenter can talk to it."""

    def capture_state(self) -> SettlementEntryViewState:
        """Return the current state needed for calculations."""

    def apply_totals(self, breakdown: SettlementBreakdown) -> None:
        """Update the totals panel."""

    def apply_seed(self, seed: CustomerLedgerSeed) -> None:
        """Pre-fill pending balance, advance and reference values."""

    def show_status(self, message: str, timeout: int = 3000, level: str = "info") -> None:
        """Display a status message to the user."""


@dataclass(frozen=True)
class SaveOutcome:
    """Result of attempting to save a settlement."""

    success: bool
    message: str
    record: Optional[SettlementRecord] = None
    error_detail: Optional[str] = None


class SettlementEntryPresenter:
    """Orchestrates settlement-entry workflows independent of any widget toolkit."""

    def __init__(
        self,
        view: SettlementEntryView,
        repository: SettlementRepository,
        defaults: Optional[SettlementDefaults] = None,
        *,
        seed_cache: Optional[SeedCache] = None,
    ) -> None:
        self._view = view
        self._repository = repository
        self._defaults = defaults or SettlementDefaults()
        self._seed_cache = seed_cache or SeedCache()
        self._logger = logging.getLogger(__name__)

    @property
    def repository(self) -> SettlementRepository:
        """Expose the underlying repository (useful for testing)."""
        return self._repository

    @property
    def defaults(self) -> SettlementDefaults:
        return self._defaults

    def start_new_settlement(
        self,
        customer_id: str,
        *,
        now: Optional[datetime] = None,
    ) -> CustomerLedgerSeed:
        """Resolve carry-over values for ``customer_id`` and push them to the view."""
        history = self._repository.fetch_history()
        seed = self._seed_cache.resolve(customer_id, history, now=now)
        self._view.apply_seed(seed)
        self._logger.debug(
            "Seeded new settlement for %s: pending=%s advance=%s",
            customer_id,
            seed.opening_pending_balance,
            seed.opening_advance,
        )
        return seed

    def refresh_totals(self) -> SettlementBreakdown:
        """Recompute the breakdown based on the current view state."""
        state = self._view.capture_state()
        breakdown = compute_settlement(state.rows, state.scalars)
        self._view.apply_totals(breakdown)
        return breakdown

    def new_row(self, kind: str, existing_rows: Sequence[EntryRow] = ()) -> EntryRow:
        """Build a blank row of ``kind`` carrying the configured default multiplier."""
        if len(existing_rows) >= self._defaults.max_rows:
            raise RowLimitError(
                f"A settlement can hold at most {self._defaults.max_rows} rows"
            )
        return blank_row(kind, self._defaults.multipliers)

    def save_settlement(
        self,
        state: Optional[SettlementEntryViewState] = None,
        *,
        now: Optional[datetime] = None,
    ) -> SaveOutcome:
        """Validate, compute and submit the settlement.

        Raises ``MissingCustomerError`` before any I/O when no customer is
        selected; collaborator failures come back as an unsuccessful outcome.
        """
        state = state or self._view.capture_state()
        customer_id = (state.customer_id or "").strip()
        if not customer_id:
            raise MissingCustomerError()
        if len(state.rows) > self._defaults.max_rows:
            raise RowLimitError(
                f"A settlement can hold at most {self._defaults.max_rows} rows"
            )

        rows = tuple(state.rows)
        record = SettlementRecord(
            customer_id=customer_id,
            occurred_at=state.occurred_at or now or datetime.now(),
            rows=rows,
            scalars=state.scalars,
            special_category=state.special_category,
            breakdown=compute_settlement(rows, state.scalars),
            record_id=state.record_id,
            customer_name=state.customer_name,
        )

        try:
            saved = self._repository.submit(record)
        except (SubmissionError, DatabaseError) as exc:
            self._logger.error("Failed to save settlement for %s: %s", customer_id, exc)
            self._view.show_status("Save failed. Please try again.", 5000, level="error")
            return SaveOutcome(
                success=False,
                message="Settlement could not be saved.",
                error_detail=str(exc),
            )

        verb = "updated" if state.record_id else "saved"
        message = f"Settlement {saved.record_id} {verb}."
        self._view.show_status(message, 3000)
        self._view.apply_totals(saved.breakdown)
        return SaveOutcome(success=True, message=message, record=saved)

    def load_settlement(self, record_id: str) -> Optional[SettlementRecord]:
        """Find a stored settlement and push its persisted totals to the view."""
        record = next(
            (item for item in self._repository.fetch_history() if item.record_id == record_id),
            None,
        )
        if record is None:
            self._view.show_status(f"Settlement {record_id} not found.", 4000, level="warning")
            return None
        self._view.apply_totals(record.breakdown)
        self._view.show_status(f"Loaded settlement {record_id}.", 2000)
        return record

    def delete_settlement(self, record_id: str) -> bool:
        try:
            deleted = bool(self._repository.delete(record_id))
        except DatabaseError as exc:
            self._logger.error("Failed to delete settlement %s: %s", record_id, exc)
            deleted = False
        if deleted:
            self._view.show_status(f"Settlement {record_id} deleted.", 3000)
        else:
            self._view.show_status(f"Settlement {record_id} could not be deleted.", 4000, level="warning")
        return deleted
