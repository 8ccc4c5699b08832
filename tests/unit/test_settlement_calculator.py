import pytest

from receiptledger.domain.settlement_models import EntryRow, SettlementScalars
from receiptledger.services.settlement_calculator import (
    compute_adjustment,
    compute_gross_income,
    compute_settlement,
    sum_row_totals,
)
from tests.factories import entry_row


def test_income_only_row_deducts_commission():
    rows = [EntryRow(kind="first", income_amount=1000, multiplier=8.0)]

    breakdown = compute_settlement(rows, SettlementScalars(deduction_rate_percent=10))

    assert breakdown.gross_income == 1000.0
    assert breakdown.payout_total == 0.0
    assert breakdown.deduction_amount == 100.0
    assert breakdown.net_after_deduction == 900.0
    assert breakdown.balance_before_carry == 900.0
    assert breakdown.closing_balance == 900.0


def test_rate_adjustment_applies_to_pre_adjustment_total():
    scalars = SettlementScalars(
        opening_pending_balance=500,
        deposit_amount=200,
        use_rate_adjustment=True,
        adjustment_rate_percent=20,
    )

    breakdown = compute_settlement([], scalars)

    assert breakdown.total_due == 500.0
    assert breakdown.pre_adjustment_total == 300.0
    assert breakdown.adjustment == pytest.approx(60.0)
    assert breakdown.closing_balance == pytest.approx(240.0)


def test_negative_manual_adjustment_raises_closing_balance():
    scalars = SettlementScalars(
        opening_pending_balance=500,
        deposit_amount=200,
        use_rate_adjustment=False,
        manual_adjustment=-50,
        adjustment_rate_percent=20,
    )

    breakdown = compute_settlement([], scalars)

    assert breakdown.pre_adjustment_total == 300.0
    assert breakdown.adjustment == -50.0
    assert breakdown.closing_balance == 350.0


def test_manual_adjustment_ignored_in_rate_mode():
    scalars = SettlementScalars(manual_adjustment=75, use_rate_adjustment=True, adjustment_rate_percent=0)

    assert compute_adjustment(300.0, scalars) == 0.0


def test_payout_and_carry_over_flow_into_closing_balance():
    rows = [
        entry_row(),
        EntryRow(kind="second", multiplier=9.0, field_a="1"),
    ]
    scalars = SettlementScalars(
        deduction_rate_percent=10,
        opening_pending_balance=100,
        opening_advance=50,
        cutting_fee=20,
        deposit_amount=30,
        manual_adjustment=5,
    )

    breakdown = compute_settlement(rows, scalars)

    # first row: 40 + 160 + 12, second row: 1 * 9
    assert breakdown.payout_total == 221.0
    assert breakdown.gross_income == 1000.0
    assert breakdown.balance_before_carry == pytest.approx(900.0 - 221.0)
    assert breakdown.total_due == pytest.approx(779.0)
    assert breakdown.pre_adjustment_total == pytest.approx(749.0)
    assert breakdown.closing_balance == pytest.approx(744.0)
    assert breakdown.advance_net == 30.0


def test_empty_row_list_is_valid():
    breakdown = compute_settlement([], SettlementScalars())

    assert breakdown.gross_income == 0.0
    assert breakdown.payout_total == 0.0
    assert breakdown.closing_balance == 0.0


def test_rates_are_not_clamped():
    rows = [EntryRow(income_amount=100)]

    breakdown = compute_settlement(rows, SettlementScalars(deduction_rate_percent=150))

    assert breakdown.deduction_amount == 150.0
    assert breakdown.net_after_deduction == -50.0


def test_blank_and_text_income_count_as_zero():
    rows = [EntryRow(income_amount=""), EntryRow(income_amount="abc"), EntryRow(income_amount="25")]

    assert compute_gross_income(rows) == 25.0


def test_compute_settlement_is_idempotent():
    rows = [entry_row(), entry_row(kind="second", multiplier=9.0)]
    scalars = SettlementScalars(opening_pending_balance=12.5, use_rate_adjustment=True)

    first = compute_settlement(rows, scalars)
    second = compute_settlement(rows, scalars)

    assert first == second
    assert sum_row_totals(rows) == first.row_totals
