"""Presenter layer modules."""

from .settlement_entry_presenter import (
    SaveOutcome,
    SettlementEntryPresenter,
    SettlementEntryView,
    SettlementEntryViewState,
)

__all__ = [
    "SaveOutcome",
    "SettlementEntryPresenter",
    "SettlementEntryView",
    "SettlementEntryViewState",
]
