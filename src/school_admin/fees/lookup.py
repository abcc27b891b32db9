from __future__ import annotations

from ..core.exceptions import NotFoundError
from ..schools.service import SchoolDirectory
from .model import StudentFee
from .repository import StudentFeeRepository


def fee_in_school(fees: StudentFeeRepository, schools: SchoolDirectory, *, student_fee_id: int, school_id: int) -> StudentFee:
    fee = fees.get(int(student_fee_id))
    if not fee or not schools.belongs_to(fee.school_id, int(school_id)):
        raise NotFoundError("Fee record not found")
    return fee
