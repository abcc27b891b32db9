from __future__ import annotations

import dataclasses
import logging
from typing import Any, Iterable, Optional, Sequence

from ..common.money import to_money
from ..common.validators import (
    int_list,
    optional_date,
    optional_text,
    require_choice,
    require_non_empty,
    require_non_negative,
    require_percentage,
    require_positive,
)
from ..core.enums import AmountType, PeriodType
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..schools.service import SchoolDirectory
from .model import FeeCategory, FeeSettings, FeeStructure, SiblingDiscountTier
from .repository import DiscountTierRepository, FeeCategoryRepository, FeeSettingsRepository, FeeStructureRepository

logger = logging.getLogger(__name__)

_BOOL_SETTINGS = {
    "enable_late_fees",
    "enable_sibling_discounts",
    "discount_forfeiture_enabled",
    "admin_can_restore_discounts",
    "allow_partial_payments",
}


class FeeConfigService:
    """School-wide fee setup: settings, categories, sibling tiers and fee structures.

    Everything here is stored against the owner school, so a campus id resolves to its parent.
    """

    def __init__(
        self,
        settings: FeeSettingsRepository,
        categories: FeeCategoryRepository,
        tiers: DiscountTierRepository,
        structures: FeeStructureRepository,
        schools: SchoolDirectory,
    ):
        self._settings = settings
        self._categories = categories
        self._tiers = tiers
        self._structures = structures
        self._schools = schools

    def _owner(self, school_id: int) -> int:
        return self._schools.resource_owner_id(int(school_id))

    # -------- Settings --------
    def get_settings(self, *, school_id: int) -> Optional[FeeSettings]:
        return self._settings.get(self._owner(school_id))

    def upsert_settings(self, *, school_id: int, changes: dict[str, Any]) -> FeeSettings:
        owner_id = self._owner(school_id)
        current = self._settings.get(owner_id) or FeeSettings(school_id=owner_id)

        values: dict[str, Any] = {}
        for key, raw in changes.items():
            if key in _BOOL_SETTINGS:
                values[key] = bool(raw)
            elif key == "late_fee_type":
                values[key] = require_choice(raw, AmountType, "late_fee_type")
            elif key == "late_fee_value":
                values[key] = to_money(require_non_negative(raw, "late_fee_value"))
            elif key == "grace_days":
                days = int(require_non_negative(raw, "grace_days"))
                values[key] = days
            elif key == "min_partial_payment_percent":
                values[key] = to_money(require_percentage(raw, "min_partial_payment_percent"))

        updated = dataclasses.replace(current, **values)
        if updated.late_fee_type == AmountType.PERCENTAGE and updated.late_fee_value > 100:
            raise ValidationError("late_fee_value cannot exceed 100 for percentage late fees")

        self._settings.upsert(updated)
        logger.info("Fee settings saved for school %s", owner_id)
        return updated

    # -------- Categories --------
    def list_categories(self, *, school_id: int, active_only: bool = True) -> Sequence[FeeCategory]:
        return self._categories.list(school_id=self._owner(school_id), active_only=active_only)

    def create_category(
        self,
        *,
        school_id: int,
        name: str,
        code: str,
        description: Optional[str] = None,
        is_mandatory: bool = True,
        is_discountable: bool = True,
        display_order: int = 0,
    ) -> int:
        owner_id = self._owner(school_id)
        name = require_non_empty(name, "Category name")
        code = require_non_empty(code, "Category code").upper()
        if self._categories.get_by_code(school_id=owner_id, code=code):
            raise ConflictError(f"Fee category code {code} already exists")

        return self._categories.create(
            school_id=owner_id,
            name=name,
            code=code,
            description=optional_text(description),
            is_mandatory=bool(is_mandatory),
            is_discountable=bool(is_discountable),
            display_order=int(display_order or 0),
        )

    def update_category(self, *, school_id: int, fee_category_id: int, changes: dict[str, Any]) -> FeeCategory:
        owner_id = self._owner(school_id)
        existing = self._categories.get(fee_category_id=int(fee_category_id), school_id=owner_id)
        if not existing:
            raise NotFoundError("Fee category not found")

        values: dict[str, Any] = {}
        if "name" in changes:
            values["name"] = require_non_empty(changes["name"], "Category name")
        if "code" in changes:
            code = require_non_empty(changes["code"], "Category code").upper()
            clash = self._categories.get_by_code(school_id=owner_id, code=code)
            if clash and clash.fee_category_id != existing.fee_category_id:
                raise ConflictError(f"Fee category code {code} already exists")
            values["code"] = code
        if "description" in changes:
            values["description"] = optional_text(changes["description"])
        for flag in ("is_mandatory", "is_discountable", "is_active"):
            if flag in changes:
                values[flag] = int(bool(changes[flag]))
        if "display_order" in changes:
            values["display_order"] = int(changes["display_order"] or 0)

        if values:
            self._categories.update(fee_category_id=existing.fee_category_id, school_id=owner_id, changes=values)
        return self._categories.get(fee_category_id=existing.fee_category_id, school_id=owner_id) or existing

    def delete_category(self, *, school_id: int, fee_category_id: int) -> None:
        owner_id = self._owner(school_id)
        if not self._categories.get(fee_category_id=int(fee_category_id), school_id=owner_id):
            raise NotFoundError("Fee category not found")
        self._categories.deactivate(fee_category_id=int(fee_category_id), school_id=owner_id)

    # -------- Sibling discount tiers --------
    def list_tiers(self, *, school_id: int) -> Sequence[SiblingDiscountTier]:
        return self._tiers.list_active(school_id=self._owner(school_id))

    def replace_tiers(self, *, school_id: int, tiers: Iterable[dict]) -> Sequence[SiblingDiscountTier]:
        owner_id = self._owner(school_id)
        parsed: list[SiblingDiscountTier] = []
        seen: set[int] = set()
        for raw in tiers:
            count = int(raw.get("sibling_count") or 0)
            if count < 2:
                raise ValidationError("sibling_count must be at least 2")
            if count in seen:
                raise ValidationError(f"Duplicate tier for {count} siblings")
            seen.add(count)

            discount_type = require_choice(raw.get("discount_type", "percentage"), AmountType, "discount_type")
            if discount_type == AmountType.PERCENTAGE:
                value = require_percentage(raw.get("discount_value"), "discount_value")
            else:
                value = require_non_negative(raw.get("discount_value"), "discount_value")

            parsed.append(
                SiblingDiscountTier(
                    tier_id=0,
                    school_id=owner_id,
                    sibling_count=count,
                    discount_type=discount_type,
                    discount_value=to_money(value),
                    applies_to_categories=tuple(int_list(raw.get("applies_to_categories"))),
                )
            )

        self._tiers.replace_all(school_id=owner_id, tiers=parsed)
        logger.info("Replaced sibling discount tiers for school %s (%d active)", owner_id, len(parsed))
        return self._tiers.list_active(school_id=owner_id)

    # -------- Fee structures --------
    def list_structures(self, *, school_id: int, academic_year: Optional[str] = None) -> Sequence[FeeStructure]:
        return self._structures.list(school_id=self._owner(school_id), academic_year=academic_year)

    def create_structure(
        self,
        *,
        school_id: int,
        academic_year: str,
        fee_category_id: int,
        amount: Any,
        grade_level_id: Optional[int] = None,
        period_type: str = PeriodType.MONTHLY.value,
        period_name: Optional[str] = None,
        period_number: Optional[int] = None,
        due_date: Any = None,
    ) -> int:
        owner_id = self._owner(school_id)
        academic_year = require_non_empty(academic_year, "Academic year")
        if not self._categories.get(fee_category_id=int(fee_category_id), school_id=owner_id):
            raise NotFoundError("Fee category not found")
        kind = require_choice(period_type, PeriodType, "period_type")

        return self._structures.create(
            school_id=owner_id,
            academic_year=academic_year,
            grade_level_id=int(grade_level_id) if grade_level_id else None,
            fee_category_id=int(fee_category_id),
            period_type=kind.value,
            period_name=optional_text(period_name),
            period_number=int(period_number) if period_number is not None else None,
            amount=to_money(require_positive(amount, "Amount")),
            due_date=optional_date(due_date, "due_date"),
        )

    def update_structure(self, *, school_id: int, fee_structure_id: int, changes: dict[str, Any]) -> FeeStructure:
        owner_id = self._owner(school_id)
        existing = self._structures.get(fee_structure_id=int(fee_structure_id), school_id=owner_id)
        if not existing:
            raise NotFoundError("Fee structure not found")

        values: dict[str, Any] = {}
        if "academic_year" in changes:
            values["academic_year"] = require_non_empty(changes["academic_year"], "Academic year")
        if "fee_category_id" in changes:
            if not self._categories.get(fee_category_id=int(changes["fee_category_id"]), school_id=owner_id):
                raise NotFoundError("Fee category not found")
            values["fee_category_id"] = int(changes["fee_category_id"])
        if "grade_level_id" in changes:
            values["grade_level_id"] = int(changes["grade_level_id"]) if changes["grade_level_id"] else None
        if "period_type" in changes:
            values["period_type"] = require_choice(changes["period_type"], PeriodType, "period_type").value
        if "period_name" in changes:
            values["period_name"] = optional_text(changes["period_name"])
        if "period_number" in changes:
            values["period_number"] = int(changes["period_number"]) if changes["period_number"] is not None else None
        if "amount" in changes:
            values["amount"] = to_money(require_positive(changes["amount"], "Amount"))
        if "due_date" in changes:
            values["due_date"] = optional_date(changes["due_date"], "due_date")
        if "is_active" in changes:
            values["is_active"] = int(bool(changes["is_active"]))

        if values:
            self._structures.update(fee_structure_id=existing.fee_structure_id, school_id=owner_id, changes=values)
        return self._structures.get(fee_structure_id=existing.fee_structure_id, school_id=owner_id) or existing

    def delete_structure(self, *, school_id: int, fee_structure_id: int) -> None:
        owner_id = self._owner(school_id)
        if not self._structures.get(fee_structure_id=int(fee_structure_id), school_id=owner_id):
            raise NotFoundError("Fee structure not found")
        self._structures.deactivate(fee_structure_id=int(fee_structure_id), school_id=owner_id)
