"""Carry-over resolution: seed a new settlement from prior history.

Balances are a property of the customer: they come from that customer's most
recent settlement. Reference values (open/close/jod) are a property of the
day: they come from the most recent settlement of today, whichever customer
it belongs to.
"""
from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from datetime import date, datetime
from typing import Hashable, Iterable, Optional, Tuple

from receiptledger.domain.settlement_models import (
    CustomerLedgerSeed,
    ReferenceValues,
    SettlementRecord,
    local_naive,
)

logger = logging.getLogger(__name__)


def recency_key(record: SettlementRecord) -> Tuple[datetime, str]:
    """Sort key for "most recent": occurrence time, then the larger record id."""
    return record.occurred_at, record.record_id or ""


def latest_settlement(records: Iterable[SettlementRecord]) -> Optional[SettlementRecord]:
    """Return the most recent record, or None when there are none."""
    return max(records, key=recency_key, default=None)


def calendar_day(moment: datetime) -> date:
    """Return the local calendar day of ``moment``, aware or naive."""
    return local_naive(moment).date()


def resolve_reference_values(
    history: Iterable[SettlementRecord],
    now: Optional[datetime] = None,
) -> ReferenceValues:
    """Return today's latest reference triple across all customers, or blanks."""
    today = calendar_day(now or datetime.now())
    todays = [record for record in history if calendar_day(record.occurred_at) == today]
    latest = latest_settlement(todays)
    if latest is None:
        return ReferenceValues()
    return latest.reference_values


def resolve_seed(
    customer_id: str,
    history: Iterable[SettlementRecord],
    *,
    now: Optional[datetime] = None,
) -> CustomerLedgerSeed:
    """Pick the opening values for a new settlement of ``customer_id``."""
    records = list(history)
    references = resolve_reference_values(records, now)

    latest = latest_settlement(record for record in records if record.customer_id == customer_id)
    if latest is None:
        logger.debug("No prior settlements for customer %s; using zero seed", customer_id)
        return CustomerLedgerSeed(reference_values=references)

    logger.debug(
        "Seeding customer %s from settlement %s (%s)",
        customer_id,
        latest.record_id,
        latest.occurred_at.isoformat(),
    )
    return CustomerLedgerSeed(
        opening_pending_balance=latest.closing_balance,
        opening_advance=latest.advance_net,
        reference_values=references,
    )


class SeedCache:
    """Memoize seeds by customer, the history they were derived from, and the day."""

    def __init__(self, max_entries: int = 256) -> None:
        self._max_entries = max(1, max_entries)
        self._entries: "OrderedDict[Hashable, CustomerLedgerSeed]" = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def resolve(
        self,
        customer_id: str,
        history: Iterable[SettlementRecord],
        *,
        now: Optional[datetime] = None,
    ) -> CustomerLedgerSeed:
        now = now or datetime.now()
        records = tuple(history)
        key = (customer_id, tuple(_fingerprint(record) for record in records), calendar_day(now))
        with self._lock:
            cached = self._entries.get(key)
            if cached is not None:
                self._entries.move_to_end(key)
                self.hits += 1
                return cached
        seed = resolve_seed(customer_id, records, now=now)
        with self._lock:
            self.misses += 1
            self._entries[key] = seed
            while len(self._entries) > self._max_entries:
                self._entries.popitem(last=False)
        return seed

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


def _fingerprint(record: SettlementRecord) -> Hashable:
    """The parts of a record that can change a seed."""
    return (
        record.record_id,
        record.customer_id,
        record.occurred_at,
        record.closing_balance,
        record.advance_net,
        record.reference_values,
    )
