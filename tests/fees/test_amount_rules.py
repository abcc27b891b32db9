from decimal import Decimal

from school_admin.core.enums import AmountType, FeeStatus
from school_admin.fees.amounts import compute_final_amount, status_after_change
from school_admin.fees.rules.factory import AmountRuleFactory
from school_admin.fees.rules.fixed_rule import FixedRule
from school_admin.fees.rules.percentage_rule import PercentageRule


def test_factory_picks_percentage_rule():
    rule = AmountRuleFactory().for_type(AmountType.PERCENTAGE, Decimal("10"))

    assert isinstance(rule, PercentageRule)
    assert rule.amount_for(Decimal("333.33")) == Decimal("33.33")


def test_factory_picks_fixed_rule_from_string():
    rule = AmountRuleFactory().for_type("fixed", Decimal("25"))

    assert isinstance(rule, FixedRule)
    assert rule.amount_for(Decimal("1000")) == Decimal("25.00")


def test_final_amount_ignores_forfeited_sibling_discount():
    kwargs = dict(
        base_amount=Decimal("500.00"),
        services_amount=Decimal("50.00"),
        sibling_discount=Decimal("50.00"),
        custom_discount=Decimal("20.00"),
        late_fee_applied=Decimal("25.00"),
    )

    assert compute_final_amount(discount_forfeited=False, **kwargs) == Decimal("505.00")
    assert compute_final_amount(discount_forfeited=True, **kwargs) == Decimal("555.00")


def test_status_after_change():
    zero = Decimal("0")
    hundred = Decimal("100")

    assert status_after_change(current=FeeStatus.PENDING, amount_paid=hundred, final_amount=hundred) == FeeStatus.PAID
    assert status_after_change(current=FeeStatus.PENDING, amount_paid=Decimal("1"), final_amount=hundred) == FeeStatus.PARTIAL
    assert status_after_change(current=FeeStatus.PARTIAL, amount_paid=zero, final_amount=hundred) == FeeStatus.PENDING
    assert status_after_change(current=FeeStatus.OVERDUE, amount_paid=Decimal("10"), final_amount=hundred) == FeeStatus.OVERDUE
    assert status_after_change(current=FeeStatus.WAIVED, amount_paid=hundred, final_amount=hundred) == FeeStatus.WAIVED
