"""Normalization of stored row shapes into canonical ``EntryRow`` objects.

Rows arrive in several historical shapes: the original field names
(``type``, ``income``, ``o``, ``jod``, ``ko``, ``pan``, ``gun``, ``special``),
``pan`` saved as a bare string, the ``special`` column saved as separate
``jackpot``/``berij``/``frak`` objects, and rows saved without a multiplier.
Everything is folded into one shape here, once, on load.
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from receiptledger.domain.settlement_models import (
    EntryRow,
    PairAMode,
    PairValue,
    RowKind,
    SpecialCategory,
)

DEFAULT_MULTIPLIERS: Mapping[RowKind, float] = {
    RowKind.FIRST: 8.0,
    RowKind.SECOND: 9.0,
}

_LEGACY_SPECIAL_KEYS = (
    ("jackpot", SpecialCategory.JACKPOT),
    ("berij", SpecialCategory.SUM),
    ("frak", SpecialCategory.DIFFERENCE),
)


def default_multiplier_for(
    kind: str,
    multipliers: Optional[Mapping[RowKind, float]] = None,
) -> Optional[float]:
    """Return the default multiplier for a row kind; None for user-defined kinds."""
    canonical = RowKind.from_label(kind)
    if canonical is None:
        return None
    table = multipliers if multipliers is not None else DEFAULT_MULTIPLIERS
    return table.get(canonical)


def canonical_kind_label(kind: object) -> str:
    text = str(kind or "").strip()
    canonical = RowKind.from_label(text)
    return canonical.value if canonical is not None else text


def blank_row(
    kind: str = "",
    multipliers: Optional[Mapping[RowKind, float]] = None,
) -> EntryRow:
    """Build an empty row carrying the kind's default multiplier."""
    return EntryRow(
        kind=canonical_kind_label(kind),
        multiplier=default_multiplier_for(kind, multipliers),
    )


def default_rows(multipliers: Optional[Mapping[RowKind, float]] = None) -> Tuple[EntryRow, ...]:
    """The two rows every new settlement starts with."""
    return (
        blank_row(RowKind.FIRST.value, multipliers),
        blank_row(RowKind.SECOND.value, multipliers),
    )


def normalize_row(
    raw: Mapping[str, Any],
    *,
    multipliers: Optional[Mapping[RowKind, float]] = None,
) -> EntryRow:
    """Convert one stored row mapping (any known shape) to an ``EntryRow``."""
    kind = canonical_kind_label(_first_present(raw, "kind", "type"))

    multiplier = _optional_float(raw.get("multiplier"))
    if multiplier is None:
        multiplier = default_multiplier_for(kind, multipliers)

    pair_a_raw = _first_present(raw, "pair_a", "pan")
    pair_a, pair_a_mode = _normalize_pair_a(pair_a_raw)

    return EntryRow(
        kind=kind,
        income_amount=_cell(_first_present(raw, "income_amount", "income")),
        field_a=_text(_first_present(raw, "field_a", "o")),
        field_b=_text(_first_present(raw, "field_b", "jod")),
        field_c=_text(_first_present(raw, "field_c", "ko")),
        multiplier=multiplier,
        pair_a=pair_a,
        pair_a_mode=pair_a_mode,
        pair_b=_normalize_pair(_first_present(raw, "pair_b", "gun")),
        pair_c=_normalize_pair(_special_payload(raw)[1]),
    )


def resolve_special_category(raw_rows: Iterable[Mapping[str, Any]]) -> SpecialCategory:
    """The settlement-wide category is whatever the first row carries."""
    for raw in raw_rows:
        category, _ = _special_payload(raw)
        return category
    return SpecialCategory.JACKPOT


def normalize_rows(
    raw_rows: Optional[Iterable[Mapping[str, Any]]],
    *,
    multipliers: Optional[Mapping[RowKind, float]] = None,
    category: Optional[object] = None,
) -> Tuple[Tuple[EntryRow, ...], SpecialCategory]:
    """Normalize a stored row list and resolve its single special category.

    An explicit ``category`` (settlement-level value) wins over whatever the
    rows carry. An absent row list yields the two default rows.
    """
    if raw_rows is None:
        rows = default_rows(multipliers)
        raw_list: list = []
    else:
        raw_list = [raw for raw in raw_rows if isinstance(raw, Mapping)]
        rows = tuple(normalize_row(raw, multipliers=multipliers) for raw in raw_list)
    if category is not None and str(category).strip():
        resolved = SpecialCategory.from_label(
            category.value if isinstance(category, SpecialCategory) else str(category)
        )
    else:
        resolved = resolve_special_category(raw_list)
    return rows, resolved


def row_to_dict(row: EntryRow, category: SpecialCategory) -> Dict[str, Any]:
    """Serialize a row into the canonical stored shape."""
    return {
        "kind": row.kind,
        "income_amount": row.income_amount,
        "field_a": row.field_a,
        "field_b": row.field_b,
        "field_c": row.field_c,
        "multiplier": row.multiplier,
        "pair_a": {"v1": row.pair_a.v1, "v2": row.pair_a.v2, "mode": row.pair_a_mode.value},
        "pair_b": {"v1": row.pair_b.v1, "v2": row.pair_b.v2},
        "pair_c": {"v1": row.pair_c.v1, "v2": row.pair_c.v2, "category": category.value},
    }


# ---------------------------------------------------------------------- #
# Internal helpers
# ---------------------------------------------------------------------- #
def _first_present(raw: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in raw and raw[key] is not None:
            return raw[key]
    return None


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _cell(value: Any) -> object:
    """Keep numbers and text as entered; anything else becomes blank."""
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float, str)):
        return value
    return ""


def _optional_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _normalize_pair(value: Any) -> PairValue:
    if isinstance(value, Mapping):
        return PairValue(
            v1=_cell(_first_present(value, "v1", "val1")),
            v2=_cell(_first_present(value, "v2", "val2")),
        )
    return PairValue()


def _normalize_pair_a(value: Any) -> Tuple[PairValue, PairAMode]:
    if isinstance(value, Mapping):
        mode = PairAMode.from_label(_first_present(value, "mode", "type"))
        return _normalize_pair(value), mode
    if isinstance(value, (str, int, float)) and not isinstance(value, bool):
        # Oldest receipts stored the pan column as a single value.
        return PairValue(v1=value, v2=""), PairAMode.SP
    return PairValue(), PairAMode.SP


def _special_payload(raw: Mapping[str, Any]) -> Tuple[SpecialCategory, Any]:
    canonical = raw.get("pair_c")
    if isinstance(canonical, Mapping):
        return SpecialCategory.from_label(canonical.get("category")), canonical
    special = raw.get("special")
    if isinstance(special, Mapping):
        return SpecialCategory.from_label(special.get("type")), special
    for key, category in _LEGACY_SPECIAL_KEYS:
        legacy = raw.get(key)
        if isinstance(legacy, Mapping):
            return category, legacy
    return SpecialCategory.JACKPOT, None
