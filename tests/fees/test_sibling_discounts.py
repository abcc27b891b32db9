from __future__ import annotations

from decimal import Decimal

from school_admin.core.enums import AmountType
from school_admin.fees.discounts import SiblingDiscountCalculator
from school_admin.fees.model import FeeSettings, SiblingDiscountTier

from tests.fees.fakes import InMemoryFeeSettings, InMemoryStudents, InMemoryTiers, directory, student


def _calculator(*, siblings: int, tiers=None, settings=None) -> SiblingDiscountCalculator:
    if tiers is None:
        tiers = [
            SiblingDiscountTier(tier_id=1, school_id=1, sibling_count=2, discount_type=AmountType.PERCENTAGE, discount_value=Decimal("10")),
            SiblingDiscountTier(tier_id=2, school_id=1, sibling_count=3, discount_type=AmountType.FIXED, discount_value=Decimal("80")),
        ]
    return SiblingDiscountCalculator(
        InMemoryFeeSettings({1: settings or FeeSettings(school_id=1)}),
        InMemoryTiers(list(tiers)),
        InMemoryStudents({1: student(1), 5: student(5, school_id=2)}, siblings={1: siblings, 5: siblings}),
        directory(),
    )


def test_two_siblings_get_percentage_tier():
    calc = _calculator(siblings=2)

    assert calc.calculate(student_id=1, school_id=1, fee_category_id=1, base_amount=Decimal("500")) == Decimal("50.00")


def test_tier_must_match_sibling_count_exactly():
    calc = _calculator(siblings=4)

    assert calc.calculate(student_id=1, school_id=1, fee_category_id=1, base_amount=Decimal("500")) == Decimal("0.00")


def test_only_child_gets_nothing():
    calc = _calculator(siblings=1)

    assert calc.calculate(student_id=1, school_id=1, fee_category_id=1, base_amount=Decimal("500")) == Decimal("0.00")


def test_fixed_discount_is_capped_at_base_amount():
    calc = _calculator(siblings=3)

    assert calc.calculate(student_id=1, school_id=1, fee_category_id=1, base_amount=Decimal("60")) == Decimal("60.00")


def test_disabled_setting_gives_no_discount():
    calc = _calculator(siblings=2, settings=FeeSettings(school_id=1, enable_sibling_discounts=False))

    assert calc.calculate(student_id=1, school_id=1, fee_category_id=1, base_amount=Decimal("500")) == Decimal("0.00")


def test_tier_limited_to_other_categories_does_not_apply():
    tiers = [
        SiblingDiscountTier(
            tier_id=1,
            school_id=1,
            sibling_count=2,
            discount_type=AmountType.PERCENTAGE,
            discount_value=Decimal("10"),
            applies_to_categories=(7,),
        )
    ]
    calc = _calculator(siblings=2, tiers=tiers)

    assert calc.calculate(student_id=1, school_id=1, fee_category_id=1, base_amount=Decimal("500")) == Decimal("0.00")
    assert calc.calculate(student_id=1, school_id=1, fee_category_id=7, base_amount=Decimal("500")) == Decimal("50.00")


def test_campus_uses_parent_school_tiers():
    calc = _calculator(siblings=2)

    assert calc.calculate(student_id=5, school_id=2, fee_category_id=1, base_amount=Decimal("200")) == Decimal("20.00")
