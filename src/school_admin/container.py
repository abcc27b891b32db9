from __future__ import annotations

from dataclasses import dataclass

from .academics.mysql_academic_year_repository import MySQLAcademicYearRepository
from .academics.mysql_grade_level_repository import MySQLGradeLevelRepository
from .academics.mysql_section_repository import MySQLSectionRepository
from .academics.mysql_subject_repository import MySQLSubjectRepository
from .academics.service import AcademicYearService, GradeLevelService, SectionService, SubjectService
from .accounting.mysql_accounting_payment_repository import (
    MySQLAccountingPaymentRepository,
    MySQLStudentPaymentLedger,
)
from .accounting.mysql_category_repository import MySQLAccountingCategoryRepository
from .accounting.mysql_income_repository import MySQLIncomeRepository
from .accounting.mysql_payee_repository import MySQLPayeePaymentRepository, MySQLPayeeRepository
from .accounting.service import AccountingService, PayeeService
from .database.connection import DBConfig, DatabaseConnection
from .fees.adjustment_service import FeeAdjustmentService
from .fees.billing_service import FeeBillingService
from .fees.config_service import FeeConfigService
from .fees.discounts import SiblingDiscountCalculator
from .fees.late_fee_service import LateFeeService
from .fees.mysql_adjustment_repository import MySQLAdjustmentRepository
from .fees.mysql_discount_tier_repository import MySQLDiscountTierRepository
from .fees.mysql_fee_category_repository import MySQLFeeCategoryRepository
from .fees.mysql_fee_settings_repository import MySQLFeeSettingsRepository
from .fees.mysql_fee_structure_repository import MySQLFeeStructureRepository, MySQLSchoolServiceRepository
from .fees.mysql_override_repository import MySQLOverrideRepository
from .fees.mysql_payment_repository import MySQLPaymentRepository
from .fees.mysql_student_fee_repository import MySQLStudentFeeRepository
from .fees.override_service import FeeOverrideService
from .fees.payment_service import FeePaymentService
from .fees.report_service import FeeReportService
from .fees.rules.factory import AmountRuleFactory
from .grading.mysql_grading_repository import MySQLGradingScaleRepository, MySQLScaleGradeRepository
from .grading.service import GradingService
from .lesson_plans.mysql_lesson_repository import MySQLCoursePeriodRepository, MySQLLessonRepository
from .lesson_plans.service import LessonPlanService
from .library.mysql_book_repository import MySQLBookCopyRepository, MySQLBookRepository
from .library.mysql_loan_repository import MySQLFineRepository, MySQLLoanRepository
from .library.service import LibraryCatalogService, LibraryLoanService
from .scheduler.jobs import FeeAutomationJobs
from .schools.mysql_school_repository import MySQLSchoolRepository
from .schools.service import SchoolDirectory
from .students.mysql_student_repository import MySQLStudentRepository


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection

    schools_repo: MySQLSchoolRepository
    students_repo: MySQLStudentRepository
    student_fees_repo: MySQLStudentFeeRepository
    fee_settings_repo: MySQLFeeSettingsRepository

    school_directory: SchoolDirectory

    fee_config_service: FeeConfigService
    fee_billing_service: FeeBillingService
    late_fee_service: LateFeeService
    fee_adjustment_service: FeeAdjustmentService
    fee_payment_service: FeePaymentService
    fee_override_service: FeeOverrideService
    fee_report_service: FeeReportService

    academic_year_service: AcademicYearService
    grade_level_service: GradeLevelService
    section_service: SectionService
    subject_service: SubjectService

    accounting_service: AccountingService
    payee_service: PayeeService
    grading_service: GradingService
    library_catalog_service: LibraryCatalogService
    library_loan_service: LibraryLoanService
    lesson_plan_service: LessonPlanService

    fee_jobs: FeeAutomationJobs


def build_container(*, db_config: dict) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    schools_repo = MySQLSchoolRepository(conn)
    students_repo = MySQLStudentRepository(conn)
    academic_years_repo = MySQLAcademicYearRepository(conn)
    grade_levels_repo = MySQLGradeLevelRepository(conn)
    sections_repo = MySQLSectionRepository(conn)
    subjects_repo = MySQLSubjectRepository(conn)

    fee_settings_repo = MySQLFeeSettingsRepository(conn)
    fee_categories_repo = MySQLFeeCategoryRepository(conn)
    discount_tiers_repo = MySQLDiscountTierRepository(conn)
    fee_structures_repo = MySQLFeeStructureRepository(conn)
    school_services_repo = MySQLSchoolServiceRepository(conn)
    student_fees_repo = MySQLStudentFeeRepository(conn)
    fee_payments_repo = MySQLPaymentRepository(conn)
    adjustments_repo = MySQLAdjustmentRepository(conn)
    overrides_repo = MySQLOverrideRepository(conn)

    school_directory = SchoolDirectory(schools_repo)
    rule_factory = AmountRuleFactory()

    discounts = SiblingDiscountCalculator(
        fee_settings_repo,
        discount_tiers_repo,
        students_repo,
        school_directory,
        rule_factory=rule_factory,
    )
    fee_billing_service = FeeBillingService(
        student_fees_repo,
        fee_structures_repo,
        overrides_repo,
        school_services_repo,
        students_repo,
        academic_years_repo,
        school_directory,
        discounts,
    )
    late_fee_service = LateFeeService(
        student_fees_repo,
        fee_settings_repo,
        school_directory,
        rule_factory=rule_factory,
    )

    library_books_repo = MySQLBookRepository(conn)
    library_copies_repo = MySQLBookCopyRepository(conn)
    grading_scales_repo = MySQLGradingScaleRepository(conn)

    return Container(
        conn=conn,
        schools_repo=schools_repo,
        students_repo=students_repo,
        student_fees_repo=student_fees_repo,
        fee_settings_repo=fee_settings_repo,
        school_directory=school_directory,
        fee_config_service=FeeConfigService(
            fee_settings_repo,
            fee_categories_repo,
            discount_tiers_repo,
            fee_structures_repo,
            school_directory,
        ),
        fee_billing_service=fee_billing_service,
        late_fee_service=late_fee_service,
        fee_adjustment_service=FeeAdjustmentService(
            student_fees_repo,
            adjustments_repo,
            fee_settings_repo,
            school_directory,
        ),
        fee_payment_service=FeePaymentService(
            student_fees_repo,
            fee_payments_repo,
            fee_structures_repo,
            fee_settings_repo,
            students_repo,
            school_directory,
        ),
        fee_override_service=FeeOverrideService(overrides_repo, fee_categories_repo, students_repo, school_directory),
        fee_report_service=FeeReportService(student_fees_repo, students_repo, school_directory),
        academic_year_service=AcademicYearService(academic_years_repo, school_directory),
        grade_level_service=GradeLevelService(grade_levels_repo, sections_repo, subjects_repo),
        section_service=SectionService(sections_repo, grade_levels_repo),
        subject_service=SubjectService(subjects_repo, grade_levels_repo),
        accounting_service=AccountingService(
            MySQLAccountingCategoryRepository(conn),
            MySQLIncomeRepository(conn),
            MySQLAccountingPaymentRepository(conn),
            MySQLStudentPaymentLedger(conn),
            school_directory,
        ),
        payee_service=PayeeService(MySQLPayeeRepository(conn), MySQLPayeePaymentRepository(conn)),
        grading_service=GradingService(grading_scales_repo, MySQLScaleGradeRepository(conn), school_directory),
        library_catalog_service=LibraryCatalogService(library_books_repo, library_copies_repo),
        library_loan_service=LibraryLoanService(
            MySQLLoanRepository(conn),
            MySQLFineRepository(conn),
            library_copies_repo,
            library_books_repo,
            students_repo,
            school_directory,
        ),
        lesson_plan_service=LessonPlanService(MySQLLessonRepository(conn), MySQLCoursePeriodRepository(conn)),
        fee_jobs=FeeAutomationJobs(fee_billing_service, late_fee_service),
    )
