"""Repository abstraction for settlement submission and history."""
from __future__ import annotations

import logging
import threading
from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence

from receiptledger.domain.row_normalizer import normalize_rows, row_to_dict
from receiptledger.domain.settlement_models import (
    ReferenceValues,
    RowKind,
    RowTotals,
    SettlementBreakdown,
    SettlementRecord,
    SettlementScalars,
)
from receiptledger.exceptions import SubmissionError
from receiptledger.persistence.settlements_repository import new_record_id


class SettlementRepository(Protocol):
    """Interface exposing the persistence operations the settlement core needs."""

    def fetch_history(self, customer_id: Optional[str] = None) -> List[SettlementRecord]:
        ...

    def submit(self, record: SettlementRecord) -> SettlementRecord:
        ...

    def delete(self, record_id: str) -> bool:
        ...


def record_to_header(record: SettlementRecord) -> Dict[str, Any]:
    """Flatten a record's header fields into the stored column mapping."""
    scalars = record.scalars
    breakdown = record.breakdown
    totals = breakdown.row_totals
    return {
        "customer_id": record.customer_id,
        "customer_name": record.customer_name,
        "occurred_at": record.occurred_at.isoformat(),
        "special_category": record.special_category.value,
        "deduction_rate_percent": scalars.deduction_rate_percent,
        "opening_pending_balance": scalars.opening_pending_balance,
        "opening_advance": scalars.opening_advance,
        "cutting_fee": scalars.cutting_fee,
        "deposit_amount": scalars.deposit_amount,
        "manual_adjustment": scalars.manual_adjustment,
        "use_rate_adjustment": scalars.use_rate_adjustment,
        "adjustment_rate_percent": scalars.adjustment_rate_percent,
        "ref_open": scalars.reference_values.open,
        "ref_close": scalars.reference_values.close,
        "ref_jod": scalars.reference_values.jod,
        "field_a_total": totals.field_a_total,
        "field_b_total": totals.field_b_total,
        "field_c_total": totals.field_c_total,
        "pair_a_total": totals.pair_a_total,
        "pair_b_total": totals.pair_b_total,
        "pair_c_total": totals.pair_c_total,
        "gross_income": breakdown.gross_income,
        "payout_total": breakdown.payout_total,
        "deduction_amount": breakdown.deduction_amount,
        "net_after_deduction": breakdown.net_after_deduction,
        "balance_before_carry": breakdown.balance_before_carry,
        "total_due": breakdown.total_due,
        "pre_adjustment_total": breakdown.pre_adjustment_total,
        "adjustment": breakdown.adjustment,
        "closing_balance": breakdown.closing_balance,
        "advance_net": breakdown.advance_net,
    }


def record_from_stored(
    stored: Mapping[str, Any],
    multipliers: Optional[Mapping[RowKind, float]] = None,
) -> SettlementRecord:
    """Rebuild a record from ``{'header': ..., 'rows': [...]}``; breakdown is read, not recomputed."""
    header = stored.get("header") or {}
    rows, category = normalize_rows(
        stored.get("rows"),
        multipliers=multipliers,
        category=header.get("special_category"),
    )

    def number(key: str) -> float:
        value = header.get(key)
        try:
            return float(value) if value is not None else 0.0
        except (TypeError, ValueError):
            return 0.0

    scalars = SettlementScalars(
        deduction_rate_percent=number("deduction_rate_percent"),
        opening_pending_balance=number("opening_pending_balance"),
        opening_advance=number("opening_advance"),
        cutting_fee=number("cutting_fee"),
        deposit_amount=number("deposit_amount"),
        manual_adjustment=number("manual_adjustment"),
        use_rate_adjustment=bool(header.get("use_rate_adjustment")),
        adjustment_rate_percent=number("adjustment_rate_percent"),
        reference_values=ReferenceValues(
            open=str(header.get("ref_open") or ""),
            close=str(header.get("ref_close") or ""),
            jod=str(header.get("ref_jod") or ""),
        ),
    )
    breakdown = SettlementBreakdown(
        row_totals=RowTotals(
            field_a_total=number("field_a_total"),
            field_b_total=number("field_b_total"),
            field_c_total=number("field_c_total"),
            pair_a_total=number("pair_a_total"),
            pair_b_total=number("pair_b_total"),
            pair_c_total=number("pair_c_total"),
        ),
        gross_income=number("gross_income"),
        payout_total=number("payout_total"),
        deduction_amount=number("deduction_amount"),
        net_after_deduction=number("net_after_deduction"),
        balance_before_carry=number("balance_before_carry"),
        total_due=number("total_due"),
        pre_adjustment_total=number("pre_adjustment_total"),
        adjustment=number("adjustment"),
        closing_balance=number("closing_balance"),
        advance_net=number("advance_net"),
    )
    return SettlementRecord(
        customer_id=str(header.get("customer_id") or ""),
        occurred_at=_parse_timestamp(header.get("occurred_at")),
        rows=rows,
        scalars=scalars,
        special_category=category,
        breakdown=breakdown,
        record_id=header.get("record_id"),
        customer_name=str(header.get("customer_name") or ""),
    )


class DatabaseSettlementRepository:
    """Adapter that wraps the database manager's settlements repository."""

    def __init__(
        self,
        db_manager: Any,
        multipliers: Optional[Mapping[RowKind, float]] = None,
    ) -> None:
        self._db = db_manager
        self._multipliers = multipliers
        self._logger = logging.getLogger(__name__)

    @property
    def _repo(self):
        return self._db.settlements_repo

    def fetch_history(self, customer_id: Optional[str] = None) -> List[SettlementRecord]:
        stored = self._repo.get_settlements(customer_id)
        return [record_from_stored(item, self._multipliers) for item in stored]

    def load(self, record_id: str) -> Optional[SettlementRecord]:
        stored = self._repo.get_settlement(record_id)
        if not stored:
            return None
        return record_from_stored(stored, self._multipliers)

    def submit(self, record: SettlementRecord) -> SettlementRecord:
        rows = [row_to_dict(row, record.special_category) for row in record.rows]
        saved_id = self._repo.save_settlement(record.record_id, record_to_header(record), rows)
        if not saved_id:
            raise SubmissionError(
                self.last_error() or "Settlement could not be saved",
                customer_id=record.customer_id,
                step="save_settlement",
            )
        self._logger.info("Saved settlement %s for customer %s", saved_id, record.customer_id)
        return record.with_identity(saved_id)

    def delete(self, record_id: str) -> bool:
        return bool(self._repo.delete_settlement(record_id))

    def last_error(self) -> Optional[str]:
        return getattr(self._repo, "last_error", None)


class InMemorySettlementRepository:
    """Dictionary-backed repository used for tests and throwaway sessions."""

    def __init__(self, records: Sequence[SettlementRecord] = ()) -> None:
        self._records: Dict[str, SettlementRecord] = {}
        self._lock = threading.Lock()
        for record in records:
            self.submit(record)

    def fetch_history(self, customer_id: Optional[str] = None) -> List[SettlementRecord]:
        with self._lock:
            records = list(self._records.values())
        if customer_id is not None:
            records = [record for record in records if record.customer_id == customer_id]
        return records

    def load(self, record_id: str) -> Optional[SettlementRecord]:
        with self._lock:
            return self._records.get(record_id)

    def submit(self, record: SettlementRecord) -> SettlementRecord:
        saved = record if record.record_id else replace(record, record_id=new_record_id())
        with self._lock:
            self._records[saved.record_id] = saved
        return saved

    def delete(self, record_id: str) -> bool:
        with self._lock:
            return self._records.pop(record_id, None) is not None

    def last_error(self) -> Optional[str]:
        return None


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value))
    except (TypeError, ValueError):
        return datetime.min
