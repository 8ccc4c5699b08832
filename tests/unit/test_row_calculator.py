import math

import pytest

from receiptledger.domain.settlement_models import EntryRow, PairValue
from receiptledger.services.row_calculator import (
    coerce_number,
    coerce_optional_number,
    compute_pair_product,
    compute_row_totals,
)
from tests.factories import entry_row


@pytest.mark.parametrize(
    "value, expected",
    [
        ("12", 12.0),
        (" 4.5 ", 4.5),
        ("1e3", 1000.0),
        ("-3", -3.0),
        ("abc", 0.0),
        ("", 0.0),
        (None, 0.0),
        (7, 7.0),
        (math.nan, 0.0),
        (math.inf, 0.0),
        ([1, 2], 0.0),
    ],
)
def test_coerce_number(value, expected):
    assert coerce_number(value) == expected


def test_coerce_optional_number_keeps_absent_values():
    assert coerce_optional_number(None) is None
    assert coerce_optional_number("  ") is None
    assert coerce_optional_number("9") == 9.0


def test_pair_product_preserves_sign():
    assert compute_pair_product(PairValue(v1="-3", v2="4")) == -12.0
    assert compute_pair_product(PairValue(v1=-2, v2=-5)) == 10.0
    assert compute_pair_product(PairValue(v1="x", v2="4")) == 0.0


def test_row_totals_scale_by_multiplier():
    totals = compute_row_totals(entry_row())

    assert totals.field_a_total == 40.0
    assert totals.field_b_total == 160.0
    assert totals.field_c_total == 0.0
    assert totals.pair_a_total == 12.0
    assert totals.payout == 212.0


def test_row_totals_without_multiplier_are_unscaled():
    row = EntryRow(kind="custom", field_a="2", field_b="3", field_c="4", multiplier=None)

    totals = compute_row_totals(row)

    assert (totals.field_a_total, totals.field_b_total, totals.field_c_total) == (2.0, 3.0, 4.0)


def test_blank_row_contributes_nothing():
    assert compute_row_totals(EntryRow(kind="first", multiplier=8.0)).payout == 0.0


try:
    from hypothesis import given
    _HYPOTHESIS_AVAILABLE = True
except ModuleNotFoundError:
    _HYPOTHESIS_AVAILABLE = False

if _HYPOTHESIS_AVAILABLE:
    from tests.factories import field_b_cases, pair_cases

    @given(case=field_b_cases())
    def test_field_b_total_property(case):
        row = EntryRow(kind="custom", field_b=case.text, multiplier=case.multiplier)

        totals = compute_row_totals(row)

        assert totals.field_b_total == pytest.approx(case.expected_total)

    @given(case=pair_cases())
    def test_pair_product_property(case):
        row = EntryRow(pair_b=PairValue(v1=case.v1, v2=case.v2))

        totals = compute_row_totals(row)

        assert totals.pair_b_total == pytest.approx(case.expected_product)

else:

    @pytest.mark.skip(reason='hypothesis not installed')
    def test_field_b_total_property():  # pragma: no cover - dependency optional
        pytest.skip('hypothesis not installed')

    @pytest.mark.skip(reason='hypothesis not installed')
    def test_pair_product_property():  # pragma: no cover - dependency optional
        pytest.skip('hypothesis not installed')
