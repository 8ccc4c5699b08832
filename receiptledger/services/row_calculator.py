"""Pure per-row calculation helpers for settlement entry."""
from __future__ import annotations

import math
import re
from typing import Optional

from receiptledger.domain.settlement_models import EntryRow, PairValue, RowTotals
from receiptledger.services.expression_evaluator import evaluate_expression

# Unit of ``field_b`` is quoted in tens.
FIELD_B_SCALE = 10.0

_DECIMAL_LITERAL = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")


def coerce_number(value: object) -> float:
    """Return ``value`` as a finite float, or 0.0 when it is blank or non-numeric."""
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text or not _DECIMAL_LITERAL.match(text):
            return 0.0
        try:
            number = float(text)
        except (ValueError, OverflowError):
            return 0.0
    else:
        return 0.0
    return number if math.isfinite(number) else 0.0


def coerce_optional_number(value: object) -> Optional[float]:
    """Like :func:`coerce_number` but keeps ``None`` (an absent multiplier)."""
    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    return coerce_number(value)


def compute_pair_product(pair: PairValue) -> float:
    """Return the signed product of the two pair entries."""
    return coerce_number(pair.v1) * coerce_number(pair.v2)


def compute_row_totals(row: EntryRow) -> RowTotals:
    """Return one row's contribution to each of the six aggregate totals."""
    value_a = evaluate_expression(row.field_a)
    value_b = evaluate_expression(row.field_b)
    value_c = evaluate_expression(row.field_c)

    if row.multiplier is not None:
        multiplier = coerce_number(row.multiplier)
        field_a_total = value_a * multiplier
        field_b_total = value_b * multiplier * FIELD_B_SCALE
        field_c_total = value_c * multiplier
    else:
        field_a_total = value_a
        field_b_total = value_b
        field_c_total = value_c

    return RowTotals(
        field_a_total=field_a_total,
        field_b_total=field_b_total,
        field_c_total=field_c_total,
        pair_a_total=compute_pair_product(row.pair_a),
        pair_b_total=compute_pair_product(row.pair_b),
        pair_c_total=compute_pair_product(row.pair_c),
    )

