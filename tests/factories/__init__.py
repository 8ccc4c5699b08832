from .settlements import (
    entry_row,
    field_b_cases,
    legacy_row,
    pair_cases,
    settlement_record,
    FieldBCase,
    PairCase,
)

__all__ = [
    "entry_row",
    "legacy_row",
    "settlement_record",
    "FieldBCase",
    "PairCase",
    "field_b_cases",
    "pair_cases",
]
