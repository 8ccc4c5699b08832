#!/usr/bin/env python
"""Print the outstanding-position summary for the configured settlement store."""
import logging
import sys

from receiptledger.infrastructure.application import ApplicationBuilder, StartupError
from receiptledger.services.ledger_report import format_amount, latest_balances, summarize_positions


def main(argv=None):
    argv = list(sys.argv[1:] if argv is None else argv)
    db_path = argv[0] if argv else None

    try:
        context = ApplicationBuilder().build(db_path)
    except StartupError as exc:
        print(f"Initialization Error: {exc}", file=sys.stderr)
        return 1

    logger = context.logger or logging.getLogger(__name__)
    try:
        history = context.repository.fetch_history()
        logger.info("Loaded %d settlements", len(history))
        for balance in latest_balances(history):
            print(
                f"{balance.customer_id:<12} {balance.customer_name:<24} "
                f"{format_amount(balance.closing_balance):>14} {balance.direction.value}"
            )
        position = summarize_positions(history)
        print(f"Receivable: {format_amount(position.total_receivable)} ({position.receivable_count})")
        print(f"Payable:    {format_amount(position.total_payable)} ({position.payable_count})")
        print(f"Net:        {format_amount(position.net_balance)}")
        print(f"Advance:    {format_amount(position.total_advance)}")
        return 0
    finally:
        context.shutdown()


if __name__ == '__main__':
    sys.exit(main())
