"""Domain models supporting settlement calculations."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Optional, Sequence, Tuple


class RowKind(Enum):
    """Canonical row kinds that carry a default multiplier."""

    FIRST = "first"
    SECOND = "second"

    @classmethod
    def from_label(cls, value: str | None) -> Optional["RowKind"]:
        """Map a stored or displayed label to a canonical kind, if it is one."""
        normalized = (value or "").strip().lower().rstrip(".")
        if normalized in {"first", "आ"}:
            return cls.FIRST
        if normalized in {"second", "कु"}:
            return cls.SECOND
        return None


class PairAMode(Enum):
    """Two-valued classification tag carried by ``pair_a``; no numeric effect."""

    SP = "sp"
    DP = "dp"

    @classmethod
    def from_label(cls, value: str | None) -> "PairAMode":
        normalized = (value or "").strip().lower()
        if normalized == "dp":
            return cls.DP
        return cls.SP


class SpecialCategory(Enum):
    """Settlement-wide label for the ``pair_c`` column."""

    JACKPOT = "jackpot"
    SUM = "sum"
    DIFFERENCE = "difference"

    @classmethod
    def from_label(cls, value: str | None) -> "SpecialCategory":
        """Map UI text or legacy tags to the corresponding category."""
        normalized = (value or "").strip().lower()
        if normalized in {"sum", "berij"}:
            return cls.SUM
        if normalized in {"difference", "frak"}:
            return cls.DIFFERENCE
        return cls.JACKPOT


@dataclass(frozen=True)
class PairValue:
    """Two raw entries whose product feeds a running total.

    Values are kept as entered (text or number); coercion happens in the
    calculator so that blank cells survive a save/load cycle.
    """

    v1: object = ""
    v2: object = ""

    def is_empty(self) -> bool:
        return _is_blank(self.v1) and _is_blank(self.v2)


@dataclass(frozen=True)
class EntryRow:
    """Represents a single row of wagering activity."""

    kind: str = ""
    income_amount: object = ""
    field_a: str = ""
    field_b: str = ""
    field_c: str = ""
    multiplier: Optional[float] = None
    pair_a: PairValue = field(default_factory=PairValue)
    pair_a_mode: PairAMode = PairAMode.SP
    pair_b: PairValue = field(default_factory=PairValue)
    pair_c: PairValue = field(default_factory=PairValue)

    @property
    def canonical_kind(self) -> Optional[RowKind]:
        return RowKind.from_label(self.kind)

    def is_empty(self) -> bool:
        """Return True when the user has not typed anything into this row."""
        return (
            _is_blank(self.income_amount)
            and _is_blank(self.field_a)
            and _is_blank(self.field_b)
            and _is_blank(self.field_c)
            and self.pair_a.is_empty()
            and self.pair_b.is_empty()
            and self.pair_c.is_empty()
        )


@dataclass(frozen=True)
class ReferenceValues:
    """Day-level open/close/jod figures shared by every customer."""

    open: str = ""
    close: str = ""
    jod: str = ""

    def is_blank(self) -> bool:
        return _is_blank(self.open) and _is_blank(self.close) and _is_blank(self.jod)


@dataclass(frozen=True)
class SettlementScalars:
    """Per-settlement manual inputs."""

    deduction_rate_percent: float = 10.0
    opening_pending_balance: float = 0.0
    opening_advance: float = 0.0
    cutting_fee: float = 0.0
    deposit_amount: float = 0.0
    manual_adjustment: float = 0.0
    use_rate_adjustment: bool = False
    adjustment_rate_percent: float = 10.0
    reference_values: ReferenceValues = field(default_factory=ReferenceValues)


@dataclass(frozen=True)
class RowTotals:
    """The six aggregate contributions of one or more rows."""

    field_a_total: float = 0.0
    field_b_total: float = 0.0
    field_c_total: float = 0.0
    pair_a_total: float = 0.0
    pair_b_total: float = 0.0
    pair_c_total: float = 0.0

    @property
    def payout(self) -> float:
        return (
            self.field_a_total
            + self.field_b_total
            + self.field_c_total
            + self.pair_a_total
            + self.pair_b_total
            + self.pair_c_total
        )

    def __add__(self, other: "RowTotals") -> "RowTotals":
        return RowTotals(
            field_a_total=self.field_a_total + other.field_a_total,
            field_b_total=self.field_b_total + other.field_b_total,
            field_c_total=self.field_c_total + other.field_c_total,
            pair_a_total=self.pair_a_total + other.pair_a_total,
            pair_b_total=self.pair_b_total + other.pair_b_total,
            pair_c_total=self.pair_c_total + other.pair_c_total,
        )


@dataclass(frozen=True)
class SettlementBreakdown:
    """Itemized result of a settlement computation."""

    row_totals: RowTotals
    gross_income: float
    payout_total: float
    deduction_amount: float
    net_after_deduction: float
    balance_before_carry: float
    total_due: float
    pre_adjustment_total: float
    adjustment: float
    closing_balance: float
    advance_net: float

    @classmethod
    def empty(cls) -> "SettlementBreakdown":
        return cls(
            row_totals=RowTotals(),
            gross_income=0.0,
            payout_total=0.0,
            deduction_amount=0.0,
            net_after_deduction=0.0,
            balance_before_carry=0.0,
            total_due=0.0,
            pre_adjustment_total=0.0,
            adjustment=0.0,
            closing_balance=0.0,
            advance_net=0.0,
        )


@dataclass(frozen=True)
class SettlementRecord:
    """The persisted unit: one customer's settlement on one occasion."""

    customer_id: str
    occurred_at: datetime
    rows: Tuple[EntryRow, ...] = ()
    scalars: SettlementScalars = field(default_factory=SettlementScalars)
    special_category: SpecialCategory = SpecialCategory.JACKPOT
    breakdown: SettlementBreakdown = field(default_factory=SettlementBreakdown.empty)
    record_id: Optional[str] = None
    customer_name: str = ""

    def __post_init__(self) -> None:
        # occurred_at is always naive local time; rows is always a tuple.
        object.__setattr__(self, "occurred_at", local_naive(self.occurred_at))
        object.__setattr__(self, "rows", tuple(self.rows))

    @property
    def closing_balance(self) -> float:
        return self.breakdown.closing_balance

    @property
    def advance_net(self) -> float:
        return self.breakdown.advance_net

    @property
    def reference_values(self) -> ReferenceValues:
        return self.scalars.reference_values

    def with_identity(self, record_id: str) -> "SettlementRecord":
        return replace(self, record_id=record_id)


@dataclass(frozen=True)
class CustomerLedgerSeed:
    """Values that open a new settlement; derived, never persisted."""

    opening_pending_balance: float = 0.0
    opening_advance: float = 0.0
    reference_values: ReferenceValues = field(default_factory=ReferenceValues)


@dataclass(frozen=True)
class SubmissionFailure:
    """One customer's failed submission inside a batch."""

    customer_id: Optional[str]
    step: str
    cause: str


@dataclass(frozen=True)
class BatchResult:
    """Outcome of submitting a batch of drafts independently."""

    succeeded: Sequence[SettlementRecord] = ()
    failures: Sequence[SubmissionFailure] = ()

    @property
    def success_count(self) -> int:
        return len(self.succeeded)

    @property
    def failure_count(self) -> int:
        return len(self.failures)


def local_naive(moment: datetime) -> datetime:
    """Return ``moment`` as naive local wall-clock time; naive values pass through."""
    if moment.tzinfo is None:
        return moment
    return moment.astimezone().replace(tzinfo=None)


def _is_blank(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False
