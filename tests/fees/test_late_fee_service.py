from __future__ import annotations

from datetime import date
from decimal import Decimal

from school_admin.core.enums import AmountType, FeeStatus
from school_admin.fees.late_fee_service import LateFeeService
from school_admin.fees.model import FeeSettings

from tests.fees.fakes import InMemoryFeeSettings, InMemoryStudentFees, directory, fee

TODAY = date(2025, 10, 1)


def _fees() -> InMemoryStudentFees:
    return InMemoryStudentFees(
        [
            fee(1, due_date=date(2025, 9, 5), base_amount=Decimal("500.00"), sibling_discount=Decimal("50.00"),
                final_amount=Decimal("450.00")),
            fee(2, school_id=2, due_date=date(2025, 9, 20), amount_paid=Decimal("40.00"), status=FeeStatus.PARTIAL),
            fee(3, due_date=date(2025, 9, 30)),
            fee(4, due_date=date(2025, 8, 5), late_fee_applied=Decimal("5.00"), final_amount=Decimal("105.00")),
        ]
    )


def test_late_fee_applied_after_grace_period_and_discount_forfeited():
    fees = _fees()
    service = LateFeeService(fees, InMemoryFeeSettings({1: FeeSettings(school_id=1)}), directory())

    result = service.apply_late_fees(school_id=1, today=TODAY)

    assert result == {"fees_updated": 2, "discounts_forfeited": 2}
    first = fees.get(1)
    assert first.late_fee_applied == Decimal("22.50")
    assert first.discount_forfeited is True
    assert first.sibling_discount == Decimal("50.00")
    assert first.final_amount == Decimal("522.50")
    assert first.status == FeeStatus.OVERDUE

    campus = fees.get(2)
    assert campus.late_fee_applied == Decimal("5.00")
    assert campus.final_amount == Decimal("105.00")
    assert campus.discount_forfeited is True
    assert campus.status == FeeStatus.OVERDUE

    assert fees.get(3).late_fee_applied == Decimal("0.00")
    assert fees.get(4).final_amount == Decimal("105.00")


def test_late_fee_is_charged_once():
    fees = _fees()
    service = LateFeeService(fees, InMemoryFeeSettings({1: FeeSettings(school_id=1)}), directory())

    service.apply_late_fees(school_id=1, today=TODAY)
    again = service.apply_late_fees(school_id=1, today=TODAY)

    assert again == {"fees_updated": 0, "discounts_forfeited": 0}
    assert fees.get(1).final_amount == Decimal("522.50")


def test_fixed_late_fee_without_forfeiture():
    fees = _fees()
    settings = FeeSettings(
        school_id=1,
        late_fee_type=AmountType.FIXED,
        late_fee_value=Decimal("15"),
        discount_forfeiture_enabled=False,
    )
    service = LateFeeService(fees, InMemoryFeeSettings({1: settings}), directory())

    result = service.apply_late_fees(school_id=1, today=TODAY)

    assert result["discounts_forfeited"] == 0
    assert fees.get(1).final_amount == Decimal("465.00")
    assert fees.get(1).discount_forfeited is False


def test_disabled_or_missing_settings_do_nothing():
    fees = _fees()
    disabled = LateFeeService(
        fees, InMemoryFeeSettings({1: FeeSettings(school_id=1, enable_late_fees=False)}), directory()
    )
    missing = LateFeeService(fees, InMemoryFeeSettings(), directory())

    assert disabled.apply_late_fees(school_id=1, today=TODAY)["fees_updated"] == 0
    assert missing.apply_late_fees(school_id=1, today=TODAY)["fees_updated"] == 0


def test_all_schools_only_visits_enabled_schools():
    settings = InMemoryFeeSettings(
        {1: FeeSettings(school_id=1), 3: FeeSettings(school_id=3, enable_late_fees=False)}
    )
    service = LateFeeService(_fees(), settings, directory(), clock=lambda: TODAY)

    result = service.apply_late_fees_all_schools()

    assert result == {"schools_processed": 1, "total_fees_updated": 2, "total_discounts_forfeited": 2}
