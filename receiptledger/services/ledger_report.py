"""Outstanding-position report across every customer's latest settlement."""
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List

from receiptledger.domain.settlement_models import SettlementRecord
from receiptledger.services.carry_over import latest_settlement


class BalanceDirection(Enum):
    """Which way money flows for a closing balance."""

    RECEIVABLE = "receivable"  # customer owes the vendor
    PAYABLE = "payable"  # vendor owes the customer
    SETTLED = "settled"


@dataclass(frozen=True)
class CustomerBalance:
    customer_id: str
    customer_name: str
    closing_balance: float
    advance_net: float
    record_id: str | None = None

    @property
    def direction(self) -> BalanceDirection:
        return balance_direction(self.closing_balance)


@dataclass(frozen=True)
class LedgerPosition:
    """Vendor-wide totals; ``total_payable`` is reported as a positive magnitude."""

    total_receivable: float = 0.0
    total_payable: float = 0.0
    net_balance: float = 0.0
    total_advance: float = 0.0
    receivable_count: int = 0
    payable_count: int = 0


def balance_direction(amount: float) -> BalanceDirection:
    if amount > 0:
        return BalanceDirection.RECEIVABLE
    if amount < 0:
        return BalanceDirection.PAYABLE
    return BalanceDirection.SETTLED


def format_amount(amount: float) -> str:
    """Two-place display with thousands separators; ``-0.00`` is shown as ``0.00``."""
    rounded = round(float(amount or 0.0), 2)
    if rounded == 0:
        rounded = 0.0
    return f"{rounded:,.2f}"


def latest_balances(history: Iterable[SettlementRecord]) -> List[CustomerBalance]:
    """Latest closing balance and advance per customer, ordered by customer id."""
    by_customer: Dict[str, List[SettlementRecord]] = defaultdict(list)
    for record in history:
        by_customer[record.customer_id].append(record)

    balances: List[CustomerBalance] = []
    for customer_id in sorted(by_customer):
        latest = latest_settlement(by_customer[customer_id])
        if latest is None:
            continue
        balances.append(
            CustomerBalance(
                customer_id=customer_id,
                customer_name=latest.customer_name,
                closing_balance=latest.closing_balance,
                advance_net=latest.advance_net,
                record_id=latest.record_id,
            )
        )
    return balances


def summarize_positions(history: Iterable[SettlementRecord]) -> LedgerPosition:
    total_receivable = 0.0
    total_payable = 0.0
    total_advance = 0.0
    receivable_count = 0
    payable_count = 0

    for balance in latest_balances(history):
        direction = balance.direction
        if direction is BalanceDirection.RECEIVABLE:
            total_receivable += balance.closing_balance
            receivable_count += 1
        elif direction is BalanceDirection.PAYABLE:
            total_payable += abs(balance.closing_balance)
            payable_count += 1
        if balance.advance_net > 0:
            total_advance += balance.advance_net

    return LedgerPosition(
        total_receivable=total_receivable,
        total_payable=total_payable,
        net_balance=total_receivable - total_payable,
        total_advance=total_advance,
        receivable_count=receivable_count,
        payable_count=payable_count,
    )
