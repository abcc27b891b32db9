from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Optional, Sequence

from school_admin.academics.model import AcademicYear
from school_admin.core.enums import FeeStatus
from school_admin.fees.model import (
    FeeAdjustment,
    FeeCategory,
    FeePayment,
    FeeSettings,
    FeeStructure,
    NewPayment,
    NewStudentFee,
    SchoolService,
    SiblingDiscountTier,
    StudentFee,
    StudentFeeOverride,
)
from school_admin.schools.model import School
from school_admin.schools.service import SchoolDirectory
from school_admin.students.model import Student


@dataclass
class InMemorySchools:
    schools: dict[int, School]

    def get(self, school_id: int) -> Optional[School]:
        return self.schools.get(school_id)

    def list_active(self) -> Sequence[School]:
        return [s for s in self.schools.values() if s.is_active]

    def list_campus_ids(self, school_id: int) -> Sequence[int]:
        return [school_id] + [s.school_id for s in self.schools.values() if s.parent_school_id == school_id]


def directory(*schools: School) -> SchoolDirectory:
    if not schools:
        schools = (School(school_id=1, name="Main"), School(school_id=2, name="North", parent_school_id=1))
    return SchoolDirectory(InMemorySchools({s.school_id: s for s in schools}))


@dataclass
class InMemoryStudents:
    students: dict[int, Student]
    siblings: dict[int, int] = field(default_factory=dict)

    def get(self, student_id: int) -> Optional[Student]:
        return self.students.get(student_id)

    def list_for_billing(self, *, school_id: int, grade_level_id=None, section_id=None) -> Sequence[Student]:
        return [
            s
            for s in self.students.values()
            if s.school_id == school_id
            and s.is_active
            and (grade_level_id is None or s.grade_level_id == grade_level_id)
            and (section_id is None or s.section_id == section_id)
        ]

    def count_siblings(self, *, student_id: int, school_id: int) -> int:
        return self.siblings.get(student_id, 1)


@dataclass
class InMemoryAcademicYears:
    current: Optional[AcademicYear] = None

    def get_current(self, *, school_id: int) -> Optional[AcademicYear]:
        return self.current


@dataclass
class InMemoryFeeSettings:
    by_school: dict[int, FeeSettings] = field(default_factory=dict)

    def get(self, school_id: int) -> Optional[FeeSettings]:
        return self.by_school.get(school_id)

    def upsert(self, settings: FeeSettings) -> None:
        self.by_school[settings.school_id] = settings

    def list_school_ids_with_late_fees(self) -> Sequence[int]:
        return [k for k, v in self.by_school.items() if v.enable_late_fees]


@dataclass
class InMemoryTiers:
    tiers: list[SiblingDiscountTier] = field(default_factory=list)

    def list_active(self, *, school_id: int) -> Sequence[SiblingDiscountTier]:
        return sorted(
            (t for t in self.tiers if t.school_id == school_id and t.is_active), key=lambda t: t.sibling_count
        )

    def replace_all(self, *, school_id: int, tiers: Sequence[SiblingDiscountTier]) -> None:
        kept = [t for t in self.tiers if t.school_id != school_id]
        self.tiers = kept + [dataclasses.replace(t, tier_id=i + 1) for i, t in enumerate(tiers)]


class InMemoryCategories:
    def __init__(self, categories: Sequence[FeeCategory] = ()):
        self.rows: dict[int, FeeCategory] = {c.fee_category_id: c for c in categories}
        self._id = max(self.rows, default=0)

    def list(self, *, school_id: int, active_only: bool = True) -> Sequence[FeeCategory]:
        return [c for c in self.rows.values() if c.school_id == school_id and (c.is_active or not active_only)]

    def get(self, *, fee_category_id: int, school_id: int) -> Optional[FeeCategory]:
        c = self.rows.get(fee_category_id)
        return c if c and c.school_id == school_id else None

    def get_by_code(self, *, school_id: int, code: str) -> Optional[FeeCategory]:
        return next((c for c in self.rows.values() if c.school_id == school_id and c.code == code), None)

    def create(self, *, school_id: int, name: str, code: str, **kwargs) -> int:
        self._id += 1
        self.rows[self._id] = FeeCategory(fee_category_id=self._id, school_id=school_id, name=name, code=code, **kwargs)
        return self._id

    def update(self, *, fee_category_id: int, school_id: int, changes: dict[str, Any]) -> bool:
        self.rows[fee_category_id] = dataclasses.replace(self.rows[fee_category_id], **changes)
        return True

    def deactivate(self, *, fee_category_id: int, school_id: int) -> bool:
        self.rows[fee_category_id] = dataclasses.replace(self.rows[fee_category_id], is_active=False)
        return True


class InMemoryStructures:
    def __init__(self, structures: Sequence[FeeStructure] = ()):
        self.rows: dict[int, FeeStructure] = {s.fee_structure_id: s for s in structures}
        self._id = max(self.rows, default=0)

    def list(self, *, school_id: int, academic_year: Optional[str] = None) -> Sequence[FeeStructure]:
        return [
            s
            for s in self.rows.values()
            if s.school_id == school_id and (academic_year is None or s.academic_year == academic_year)
        ]

    def get(self, *, fee_structure_id: int, school_id: Optional[int] = None) -> Optional[FeeStructure]:
        s = self.rows.get(fee_structure_id)
        if not s or (school_id is not None and s.school_id != school_id):
            return None
        return s

    def list_active_for(
        self,
        *,
        school_id: int,
        academic_year: str,
        grade_level_id: Optional[int],
        include_school_wide: bool = False,
        category_ids: Sequence[int] = (),
    ) -> Sequence[FeeStructure]:
        out = []
        for s in self.rows.values():
            if s.school_id != school_id or not s.is_active or s.academic_year != academic_year:
                continue
            if s.grade_level_id != grade_level_id and not (include_school_wide and s.grade_level_id is None):
                continue
            if category_ids and s.fee_category_id not in category_ids:
                continue
            out.append(s)
        return out

    def first_for_school(self, *, school_id: int) -> Optional[FeeStructure]:
        return next((s for s in self.rows.values() if s.school_id == school_id), None)

    def create(self, **kwargs) -> int:
        self._id += 1
        self.rows[self._id] = FeeStructure(fee_structure_id=self._id, **kwargs)
        return self._id

    def update(self, *, fee_structure_id: int, school_id: int, changes: dict[str, Any]) -> bool:
        self.rows[fee_structure_id] = dataclasses.replace(self.rows[fee_structure_id], **changes)
        return True

    def deactivate(self, *, fee_structure_id: int, school_id: int) -> bool:
        self.rows[fee_structure_id] = dataclasses.replace(self.rows[fee_structure_id], is_active=False)
        return True


@dataclass
class InMemoryServices:
    services: list[SchoolService] = field(default_factory=list)

    def list_active(self, *, school_id: int, service_ids: Sequence[int]) -> Sequence[SchoolService]:
        return [s for s in self.services if s.school_id == school_id and s.is_active and s.service_id in service_ids]


class InMemoryStudentFees:
    def __init__(self, fees: Sequence[StudentFee] = ()):
        self.rows: dict[int, StudentFee] = {f.student_fee_id: f for f in fees}
        self._id = max(self.rows, default=0)

    def get(self, student_fee_id: int) -> Optional[StudentFee]:
        return self.rows.get(student_fee_id)

    def create(self, fee: NewStudentFee) -> int:
        self._id += 1
        self.rows[self._id] = StudentFee(student_fee_id=self._id, **dataclasses.asdict(fee))
        return self._id

    def exists_for_month(self, *, student_id: int, fee_month: str) -> bool:
        return any(f.student_id == student_id and f.fee_month == fee_month for f in self.rows.values())

    def latest_for_student(self, *, student_id: int, school_id: int) -> Optional[StudentFee]:
        mine = [f for f in self.rows.values() if f.student_id == student_id and f.school_id == school_id]
        return max(mine, key=lambda f: f.student_fee_id, default=None)

    def update_fields(self, *, student_fee_id: int, changes: dict[str, Any]) -> bool:
        self.rows[student_fee_id] = dataclasses.replace(self.rows[student_fee_id], **changes)
        return True

    def list_late_fee_candidates(self, *, school_ids: Sequence[int], due_before: date) -> Sequence[StudentFee]:
        return [
            f
            for f in self.rows.values()
            if f.school_id in school_ids
            and f.status in (FeeStatus.PENDING, FeeStatus.PARTIAL)
            and f.due_date < due_before
            and f.late_fee_applied == 0
        ]

    def _filtered(self, *, school_id: int, student_id=None, academic_year=None, status=None, fee_month=None):
        return [
            f
            for f in self.rows.values()
            if f.school_id == school_id
            and (student_id is None or f.student_id == student_id)
            and (not academic_year or f.academic_year == academic_year)
            and (status is None or f.status == status)
            and (not fee_month or f.fee_month == fee_month)
        ]

    def search(self, *, school_id: int, student_id=None, academic_year=None, status=None, grade_level_id=None,
               section_id=None, fee_month=None, offset: int = 0, limit: int = 20):
        rows = self._filtered(
            school_id=school_id, student_id=student_id, academic_year=academic_year, status=status, fee_month=fee_month
        )
        rows.sort(key=lambda f: (f.due_date, f.student_fee_id), reverse=True)
        return rows[offset:offset + limit], len(rows)

    def list_for_student(self, *, student_id: int, school_id: int) -> Sequence[StudentFee]:
        return self._filtered(school_id=school_id, student_id=student_id)

    def status_totals(self, *, school_id: int, academic_year: Optional[str] = None) -> Sequence[dict]:
        totals: dict[FeeStatus, dict] = {}
        for f in self._filtered(school_id=school_id, academic_year=academic_year):
            row = totals.setdefault(
                f.status, {"status": f.status, "fee_count": 0, "final_total": Decimal(0), "paid_total": Decimal(0)}
            )
            row["fee_count"] += 1
            row["final_total"] += f.final_amount
            row["paid_total"] += f.amount_paid
        return list(totals.values())

    def student_payment_summaries(self, *, school_id: int, search=None, grade_level_id=None, offset=0, limit=50):
        return [], 0


class InMemoryPayments:
    def __init__(self, fees: InMemoryStudentFees):
        self._fees = fees
        self.rows: dict[int, FeePayment] = {}
        self._id = 0

    def create(self, payment: NewPayment) -> int:
        self._id += 1
        self.rows[self._id] = FeePayment(payment_id=self._id, **dataclasses.asdict(payment))
        return self._id

    def get(self, payment_id: int) -> Optional[FeePayment]:
        return self.rows.get(payment_id)

    def list_for_fee(self, *, student_fee_id: int) -> Sequence[FeePayment]:
        return [p for p in self.rows.values() if p.student_fee_id == student_fee_id]

    def list_for_student(self, *, student_id: int, school_id: int) -> Sequence[FeePayment]:
        fee_ids = {f.student_fee_id for f in self._fees.list_for_student(student_id=student_id, school_id=school_id)}
        return [p for p in self.rows.values() if p.student_fee_id in fee_ids]

    def total_for_fee(self, *, student_fee_id: int) -> Decimal:
        return sum((p.amount for p in self.list_for_fee(student_fee_id=student_fee_id)), Decimal(0))

    def update(self, *, payment_id: int, changes: dict[str, Any]) -> bool:
        self.rows[payment_id] = dataclasses.replace(self.rows[payment_id], **changes)
        return True

    def delete(self, *, payment_id: int) -> bool:
        return self.rows.pop(payment_id, None) is not None


class InMemoryAdjustments:
    def __init__(self):
        self.rows: list[FeeAdjustment] = []

    def create(self, *, student_fee_id: int, adjusted_by, adjustment_type, amount_before, amount_after,
               adjustment_amount, reason) -> int:
        self.rows.append(
            FeeAdjustment(
                adjustment_id=len(self.rows) + 1,
                student_fee_id=student_fee_id,
                adjustment_type=adjustment_type,
                amount_before=amount_before,
                amount_after=amount_after,
                adjustment_amount=adjustment_amount,
                reason=reason,
                adjusted_by=adjusted_by,
            )
        )
        return len(self.rows)

    def list_for_fee(self, *, student_fee_id: int) -> Sequence[FeeAdjustment]:
        return [a for a in self.rows if a.student_fee_id == student_fee_id]


class InMemoryOverrides:
    def __init__(self, overrides: Sequence[StudentFeeOverride] = ()):
        self.rows: dict[int, StudentFeeOverride] = {o.override_id: o for o in overrides}
        self._id = max(self.rows, default=0)

    def create(self, **kwargs) -> int:
        self._id += 1
        self.rows[self._id] = StudentFeeOverride(override_id=self._id, **kwargs)
        return self._id

    def get(self, override_id: int) -> Optional[StudentFeeOverride]:
        return self.rows.get(override_id)

    def find_active(self, *, student_id: int, fee_category_id: int, academic_year: str) -> Optional[StudentFeeOverride]:
        return next(
            (
                o
                for o in self.rows.values()
                if o.is_active
                and o.student_id == student_id
                and o.fee_category_id == fee_category_id
                and o.academic_year == academic_year
            ),
            None,
        )

    def list_for_student(self, *, student_id: int, academic_year: Optional[str] = None):
        return [
            o
            for o in self.rows.values()
            if o.student_id == student_id and (academic_year is None or o.academic_year == academic_year)
        ]

    def active_amounts(self, *, student_id: int, academic_year: str) -> dict[int, Decimal]:
        return {
            o.fee_category_id: o.override_amount
            for o in self.list_for_student(student_id=student_id, academic_year=academic_year)
            if o.is_active
        }

    def update(self, *, override_id: int, changes: dict[str, Any]) -> bool:
        values = dict(changes)
        if "is_active" in values:
            values["is_active"] = bool(values["is_active"])
        self.rows[override_id] = dataclasses.replace(self.rows[override_id], **values)
        return True

    def delete(self, *, override_id: int) -> bool:
        return self.rows.pop(override_id, None) is not None

    def list_for_school(self, *, school_id: int, academic_year=None, fee_category_id=None, is_active=True,
                        offset=0, limit=50):
        rows = [o for o in self.rows.values() if o.school_id == school_id]
        return rows[offset:offset + limit], len(rows)


def student(student_id: int, *, school_id: int = 1, grade_level_id: Optional[int] = 10, **kwargs) -> Student:
    return Student(
        student_id=student_id,
        school_id=school_id,
        student_number=f"S{student_id:04d}",
        first_name="Student",
        last_name=str(student_id),
        grade_level_id=grade_level_id,
        **kwargs,
    )


def fee(student_fee_id: int, **kwargs) -> StudentFee:
    values: dict[str, Any] = dict(
        school_id=1,
        student_id=1,
        academic_year="2025-2026",
        due_date=date(2025, 9, 5),
        base_amount=Decimal("100.00"),
        final_amount=Decimal("100.00"),
    )
    values.update(kwargs)
    return StudentFee(student_fee_id=student_fee_id, **values)
