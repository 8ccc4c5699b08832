from datetime import datetime

import pytest

from receiptledger.services.ledger_report import (
    BalanceDirection,
    balance_direction,
    format_amount,
    latest_balances,
    summarize_positions,
)
from tests.factories import settlement_record


@pytest.fixture
def history():
    return [
        settlement_record("C1", occurred_at=datetime(2024, 3, 1), closing_balance=-50, customer_name="Asha"),
        settlement_record("C1", occurred_at=datetime(2024, 3, 4), closing_balance=100, customer_name="Asha"),
        settlement_record("C2", occurred_at=datetime(2024, 3, 2), closing_balance=-30, advance_net=20),
        settlement_record("C3", occurred_at=datetime(2024, 3, 3), closing_balance=0, advance_net=-5),
    ]


@pytest.mark.parametrize(
    "amount, direction",
    [(10.0, BalanceDirection.RECEIVABLE), (-0.5, BalanceDirection.PAYABLE), (0.0, BalanceDirection.SETTLED)],
)
def test_balance_direction(amount, direction):
    assert balance_direction(amount) is direction


def test_format_amount_uses_two_places():
    assert format_amount(1234.5) == "1,234.50"
    assert format_amount(-12.5) == "-12.50"
    assert format_amount(-0.001) == "0.00"
    assert format_amount(None) == "0.00"


def test_latest_balances_picks_each_customers_latest_record(history):
    balances = latest_balances(history)

    assert [balance.customer_id for balance in balances] == ["C1", "C2", "C3"]
    assert balances[0].closing_balance == 100
    assert balances[0].customer_name == "Asha"
    assert balances[1].direction is BalanceDirection.PAYABLE


def test_summarize_positions(history):
    position = summarize_positions(history)

    assert position.total_receivable == 100
    assert position.total_payable == 30
    assert position.net_balance == 70
    assert position.total_advance == 20
    assert position.receivable_count == 1
    assert position.payable_count == 1


def test_summarize_positions_with_no_history():
    position = summarize_positions([])

    assert position.net_balance == 0.0
    assert position.receivable_count == 0
