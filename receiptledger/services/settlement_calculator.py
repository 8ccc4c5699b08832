"""Pure calculation helpers for a full settlement breakdown."""
from __future__ import annotations

from typing import Iterable

from receiptledger.domain.settlement_models import (
    EntryRow,
    RowTotals,
    SettlementBreakdown,
    SettlementScalars,
)
from receiptledger.services.row_calculator import coerce_number, compute_row_totals


def sum_row_totals(rows: Iterable[EntryRow]) -> RowTotals:
    """Aggregate the six row contributions across every row."""
    totals = RowTotals()
    for row in rows:
        totals = totals + compute_row_totals(row)
    return totals


def compute_gross_income(rows: Iterable[EntryRow]) -> float:
    """Sum the income entered on each row; blanks count as zero."""
    return sum((coerce_number(row.income_amount) for row in rows), 0.0)


def compute_adjustment(pre_adjustment_total: float, scalars: SettlementScalars) -> float:
    """Return the adjustment taken off the running total.

    In rate mode the adjustment is a percentage of ``pre_adjustment_total``;
    otherwise the manually entered value is used as-is, negative values
    included (a negative adjustment raises the closing balance).
    """
    if scalars.use_rate_adjustment:
        rate = coerce_number(scalars.adjustment_rate_percent)
        return pre_adjustment_total * (rate / 100.0)
    return coerce_number(scalars.manual_adjustment)


def compute_settlement(
    rows: Iterable[EntryRow],
    scalars: SettlementScalars,
) -> SettlementBreakdown:
    """Compute the itemized settlement for one receipt."""
    row_list = list(rows)

    row_totals = sum_row_totals(row_list)
    gross_income = compute_gross_income(row_list)
    payout_total = row_totals.payout

    deduction_rate = coerce_number(scalars.deduction_rate_percent)
    deduction_amount = gross_income * (deduction_rate / 100.0)
    net_after_deduction = gross_income - deduction_amount
    balance_before_carry = net_after_deduction - payout_total

    total_due = balance_before_carry + coerce_number(scalars.opening_pending_balance)
    pre_adjustment_total = total_due - coerce_number(scalars.deposit_amount)
    adjustment = compute_adjustment(pre_adjustment_total, scalars)
    closing_balance = pre_adjustment_total - adjustment

    advance_net = coerce_number(scalars.opening_advance) - coerce_number(scalars.cutting_fee)

    return SettlementBreakdown(
        row_totals=row_totals,
        gross_income=gross_income,
        payout_total=payout_total,
        deduction_amount=deduction_amount,
        net_after_deduction=net_after_deduction,
        balance_before_carry=balance_before_carry,
        total_due=total_due,
        pre_adjustment_total=pre_adjustment_total,
        adjustment=adjustment,
        closing_balance=closing_balance,
        advance_net=advance_net,
    )
