from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Dict, Optional

from receiptledger.domain.settlement_models import (
    EntryRow,
    PairValue,
    ReferenceValues,
    SettlementBreakdown,
    SettlementRecord,
    SettlementScalars,
)

try:
    from hypothesis import strategies as st
except ModuleNotFoundError:  # pragma: no cover - optional dependency
    st = None

_HYPOTHESIS_AVAILABLE = st is not None


def _build(base: Dict[str, Any], **overrides: Any) -> Dict[str, Any]:
    item = base.copy()
    item.update(overrides)
    return item


def entry_row(**overrides: Any) -> EntryRow:
    """Factory for a first-kind row with a little of everything filled in."""
    base = EntryRow(
        kind="first",
        income_amount=1000,
        field_a="5",
        field_b="2",
        field_c="",
        multiplier=8.0,
        pair_a=PairValue(v1="3", v2="4"),
    )
    return replace(base, **overrides)


def legacy_row(**overrides: Any) -> Dict[str, Any]:
    """Factory for a row dict in the oldest stored shape."""
    base = {
        "type": "आ.",
        "income": "500",
        "o": "10+5",
        "jod": "2",
        "ko": "",
        "pan": "12",
        "gun": {"val1": "2", "val2": "3"},
        "berij": {"val1": "4", "val2": "5"},
    }
    return _build(base, **overrides)


def settlement_record(
    customer_id: str = "C1",
    *,
    occurred_at: Optional[datetime] = None,
    closing_balance: float = 0.0,
    advance_net: float = 0.0,
    record_id: Optional[str] = None,
    reference_values: Optional[ReferenceValues] = None,
    customer_name: str = "",
) -> SettlementRecord:
    """Factory for a stored record whose breakdown carries the given balances."""
    breakdown = replace(
        SettlementBreakdown.empty(),
        closing_balance=closing_balance,
        advance_net=advance_net,
    )
    return SettlementRecord(
        customer_id=customer_id,
        occurred_at=occurred_at or datetime(2024, 3, 1, 10, 0),
        scalars=SettlementScalars(reference_values=reference_values or ReferenceValues()),
        breakdown=breakdown,
        record_id=record_id,
        customer_name=customer_name,
    )


@dataclass
class FieldBCase:
    """A field_b entry and the multiplier applied to it."""

    terms: tuple
    multiplier: Optional[float]

    @property
    def text(self) -> str:
        return "+".join(str(term) for term in self.terms)

    @property
    def expected_total(self) -> float:
        value = float(sum(self.terms))
        if self.multiplier is None:
            return value
        return value * self.multiplier * 10


@dataclass
class PairCase:
    """Two raw pair entries, possibly blank or non-numeric."""

    v1: Any
    v2: Any

    @staticmethod
    def _coerce(value: Any) -> float:
        if isinstance(value, (int, float)):
            return float(value)
        return 0.0

    @property
    def expected_product(self) -> float:
        return self._coerce(self.v1) * self._coerce(self.v2)


def field_b_cases():
    """Hypothesis strategy producing chained field_b entries with or without a multiplier."""
    if not _HYPOTHESIS_AVAILABLE:  # pragma: no cover - optional dependency
        raise RuntimeError("Hypothesis is not installed")

    terms = st.lists(st.integers(min_value=0, max_value=999), min_size=1, max_size=6).map(tuple)
    multiplier = st.one_of(st.none(), st.sampled_from([8.0, 9.0, 1.0, 2.5]))
    return st.builds(FieldBCase, terms=terms, multiplier=multiplier)


def pair_cases():
    """Hypothesis strategy producing pairs mixing numbers, blanks and junk text."""
    if not _HYPOTHESIS_AVAILABLE:  # pragma: no cover - optional dependency
        raise RuntimeError("Hypothesis is not installed")

    value = st.one_of(
        st.integers(min_value=-1000, max_value=1000),
        st.sampled_from(["", "abc", "  "]),
    )
    return st.builds(PairCase, v1=value, v2=value)


__all__ = [
    "entry_row",
    "legacy_row",
    "settlement_record",
    "FieldBCase",
    "PairCase",
    "field_b_cases",
    "pair_cases",
]
