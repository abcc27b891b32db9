from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from school_admin.common.datetime_utils import academic_year_for, fee_month_key, next_month
from school_admin.common.money import percent_of, to_money
from school_admin.common.pagination import page_of
from school_admin.common.validators import require_decimal, require_percentage
from school_admin.core.exceptions import ValidationError


def test_to_money_rounds_half_up():
    assert to_money("10.005") == Decimal("10.01")
    assert to_money(None) == Decimal("0.00")
    assert to_money(2.675) == Decimal("2.68")
    assert percent_of(Decimal("250.00"), Decimal("10")) == Decimal("25.00")


def test_require_decimal_rejects_non_numbers():
    assert require_decimal(" 12.5 ", "amount") == Decimal("12.5")
    for bad in (None, "", "abc", True):
        with pytest.raises(ValidationError, match="amount must be a number"):
            require_decimal(bad, "amount")
    with pytest.raises(ValidationError):
        require_percentage("101", "discount")


@pytest.mark.parametrize("raw", ["NaN", "sNaN", "Infinity", "-inf", float("nan"), Decimal("Infinity")])
def test_require_decimal_rejects_non_finite_values(raw):
    with pytest.raises(ValidationError, match="amount must be a finite number"):
        require_decimal(raw, "amount")


def test_to_money_rejects_out_of_range_values():
    with pytest.raises(ValidationError):
        to_money("1e999")


def test_month_helpers():
    assert next_month(2025, 12) == (2026, 1)
    assert next_month(2025, 3) == (2025, 4)
    assert fee_month_key(2026, 1) == "2026-01"


def test_academic_year_starts_in_july():
    assert academic_year_for(date(2025, 7, 1)) == "2025-2026"
    assert academic_year_for(date(2026, 6, 30)) == "2025-2026"


def test_page_of():
    page = page_of(3, None, default_limit=20)

    assert page.offset == 40
    with pytest.raises(ValidationError):
        page_of(0, 10, default_limit=20)
    with pytest.raises(ValidationError):
        page_of(1, 501, default_limit=20)
