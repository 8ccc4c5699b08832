"""Batch settlement entry: one draft per customer, submitted independently."""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Tuple

from receiptledger.domain.row_normalizer import default_rows
from receiptledger.domain.settlement_models import (
    BatchResult,
    CustomerLedgerSeed,
    EntryRow,
    ReferenceValues,
    SettlementRecord,
    SettlementScalars,
    SpecialCategory,
    SubmissionFailure,
)
from receiptledger.exceptions import MissingCustomerError, SubmissionError
from receiptledger.services.carry_over import SeedCache
from receiptledger.services.settings_service import SettlementDefaults
from receiptledger.services.settlement_calculator import compute_settlement
from receiptledger.services.settlement_repository import SettlementRepository


@dataclass(frozen=True)
class BatchCustomer:
    """A customer offered in the batch grid."""

    customer_id: str
    name: str = ""


@dataclass
class BatchEntry:
    """Editable per-customer draft inside a batch.

    Balances come from the customer's own history. Reference values start
    blank; each customer's open/close/jod is typed in the grid.
    ``opening_advance`` overrides the carried advance when set.
    """

    customer_id: Optional[str]
    customer_name: str = ""
    seed: CustomerLedgerSeed = field(default_factory=CustomerLedgerSeed)
    rows: List[EntryRow] = field(default_factory=list)
    reference_values: ReferenceValues = field(default_factory=ReferenceValues)
    special_category: SpecialCategory = SpecialCategory.JACKPOT
    cutting_fee: float = 0.0
    deposit_amount: float = 0.0
    manual_adjustment: float = 0.0
    use_rate_adjustment: bool = False
    opening_advance: Optional[float] = None


class BatchSettlementBuilder:
    """Prepare, compute and submit settlements for many customers at once."""

    def __init__(
        self,
        defaults: Optional[SettlementDefaults] = None,
        seed_cache: Optional[SeedCache] = None,
    ) -> None:
        self._defaults = defaults or SettlementDefaults()
        self._seed_cache = seed_cache or SeedCache()
        self._logger = logging.getLogger(__name__)

    @property
    def defaults(self) -> SettlementDefaults:
        return self._defaults

    def open_batch(
        self,
        customers: Iterable[BatchCustomer],
        history: Iterable[SettlementRecord],
        *,
        now: Optional[datetime] = None,
    ) -> List[BatchEntry]:
        """Seed one draft per customer with carried balances and the two default rows."""
        now = now or datetime.now()
        records = tuple(history)
        entries: List[BatchEntry] = []
        for customer in customers:
            seed = self._seed_cache.resolve(customer.customer_id, records, now=now)
            entries.append(
                BatchEntry(
                    customer_id=customer.customer_id,
                    customer_name=customer.name,
                    seed=seed,
                    rows=list(default_rows(self._defaults.multipliers)),
                )
            )
        self._logger.debug("Opened batch for %d customers", len(entries))
        return entries

    @staticmethod
    def has_entered_data(entry: BatchEntry) -> bool:
        """True when any row cell or reference value has been filled in."""
        if not entry.reference_values.is_blank():
            return True
        return any(not row.is_empty() for row in entry.rows)

    def build_drafts(
        self,
        entries: Iterable[BatchEntry],
        *,
        now: Optional[datetime] = None,
    ) -> List[SettlementRecord]:
        """Turn entries with data into computed settlement records; others are skipped."""
        occurred_at = now or datetime.now()
        drafts: List[SettlementRecord] = []
        skipped = 0
        for entry in entries:
            if not self.has_entered_data(entry):
                skipped += 1
                continue
            rows = tuple(entry.rows)
            opening_advance = entry.seed.opening_advance
            if entry.opening_advance is not None:
                opening_advance = entry.opening_advance
            scalars = SettlementScalars(
                deduction_rate_percent=self._defaults.deduction_rate_percent,
                opening_pending_balance=entry.seed.opening_pending_balance,
                opening_advance=opening_advance,
                cutting_fee=entry.cutting_fee,
                deposit_amount=entry.deposit_amount,
                manual_adjustment=entry.manual_adjustment,
                use_rate_adjustment=entry.use_rate_adjustment,
                adjustment_rate_percent=self._defaults.adjustment_rate_percent,
                reference_values=entry.reference_values,
            )
            drafts.append(
                SettlementRecord(
                    customer_id=(entry.customer_id or "").strip(),
                    occurred_at=occurred_at,
                    rows=rows,
                    scalars=scalars,
                    special_category=entry.special_category,
                    breakdown=compute_settlement(rows, scalars),
                    customer_name=entry.customer_name,
                )
            )
        if skipped:
            self._logger.debug("Skipped %d customers without entered data", skipped)
        return drafts

    def submit(
        self,
        drafts: Sequence[SettlementRecord],
        repository: SettlementRepository,
    ) -> BatchResult:
        """Submit every draft independently; one failure never blocks the rest."""
        workers = max(1, int(self._defaults.batch_max_workers))
        if workers > 1 and len(drafts) > 1:
            with ThreadPoolExecutor(max_workers=workers) as executor:
                outcomes = list(executor.map(lambda draft: self._submit_one(draft, repository), drafts))
        else:
            outcomes = [self._submit_one(draft, repository) for draft in drafts]

        succeeded = tuple(saved for saved, _ in outcomes if saved is not None)
        failures = tuple(failure for _, failure in outcomes if failure is not None)
        self._logger.info(
            "Batch submission finished: %d succeeded, %d failed",
            len(succeeded),
            len(failures),
        )
        return BatchResult(succeeded=succeeded, failures=failures)

    def _submit_one(
        self,
        draft: SettlementRecord,
        repository: SettlementRepository,
    ) -> Tuple[Optional[SettlementRecord], Optional[SubmissionFailure]]:
        customer_id = (draft.customer_id or "").strip() or None
        try:
            if not customer_id:
                raise MissingCustomerError()
            return repository.submit(draft), None
        except MissingCustomerError as exc:
            failure = SubmissionFailure(customer_id=None, step="validate", cause=str(exc))
        except SubmissionError as exc:
            failure = SubmissionFailure(
                customer_id=exc.customer_id or customer_id,
                step=exc.step,
                cause=str(exc),
            )
        except Exception as exc:
            failure = SubmissionFailure(customer_id=customer_id, step="submit", cause=str(exc))
        self._logger.warning(
            "Submission failed for customer %s at %s: %s",
            failure.customer_id,
            failure.step,
            failure.cause,
        )
        return None, failure
