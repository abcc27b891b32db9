from __future__ import annotations

from decimal import Decimal

import pytest

from school_admin.core.exceptions import ConflictError, NotFoundError, ValidationError
from school_admin.fees.model import FeeCategory
from school_admin.fees.override_service import FeeOverrideService

from tests.fees.fakes import InMemoryCategories, InMemoryOverrides, InMemoryStudents, directory, student


def _service():
    overrides = InMemoryOverrides()
    service = FeeOverrideService(
        overrides,
        InMemoryCategories([FeeCategory(fee_category_id=1, school_id=1, name="Tuition", code="TUI")]),
        InMemoryStudents({1: student(1), 2: student(2, school_id=2)}),
        directory(),
    )
    return service, overrides


def test_create_override_and_duplicate_conflicts():
    service, overrides = _service()

    override_id = service.create(
        school_id=1, student_id=1, fee_category_id=1, academic_year="2025-2026", override_amount="120.5", reason=" scholarship "
    )

    created = overrides.get(override_id)
    assert created.override_amount == Decimal("120.50")
    assert created.reason == "scholarship"
    with pytest.raises(ConflictError):
        service.create(school_id=1, student_id=1, fee_category_id=1, academic_year="2025-2026", override_amount="90")


def test_inactive_override_does_not_block_new_one():
    service, _ = _service()
    first = service.create(school_id=1, student_id=1, fee_category_id=1, academic_year="2025-2026", override_amount="0")
    service.update(school_id=1, override_id=first, changes={"is_active": False})

    second = service.create(school_id=1, student_id=1, fee_category_id=1, academic_year="2025-2026", override_amount="10")

    with pytest.raises(ConflictError):
        service.update(school_id=1, override_id=first, changes={"is_active": True})
    assert service.get(school_id=1, override_id=second).override_amount == Decimal("10.00")


def test_campus_student_uses_parent_categories():
    service, overrides = _service()

    override_id = service.create(school_id=2, student_id=2, fee_category_id=1, academic_year="2025-2026", override_amount="5")

    assert overrides.get(override_id).school_id == 2


def test_validation_and_lookups():
    service, _ = _service()

    with pytest.raises(ValidationError):
        service.create(school_id=1, student_id=1, fee_category_id=1, academic_year="2025-2026", override_amount="-1")
    with pytest.raises(NotFoundError):
        service.create(school_id=1, student_id=1, fee_category_id=99, academic_year="2025-2026", override_amount="1")
    with pytest.raises(NotFoundError):
        service.get(school_id=1, override_id=42)


def test_list_for_school_is_paged():
    service, _ = _service()
    service.create(school_id=1, student_id=1, fee_category_id=1, academic_year="2025-2026", override_amount="1")

    result = service.list_for_school(school_id=1, page=1, limit=10)

    assert result["total"] == 1
    assert result["limit"] == 10
    assert len(result["overrides"]) == 1
