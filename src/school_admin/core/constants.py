"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

from decimal import Decimal

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

# Monthly fees fall due on this day of the billed month.
MONTHLY_DUE_DAY = 5
# Academic years start in this month (July): 2025-07 belongs to "2025-2026".
ACADEMIC_YEAR_START_MONTH = 7

DEFAULT_FEE_PAGE_SIZE = 20
DEFAULT_GRADE_PAGE_SIZE = 30
DEFAULT_HISTORY_PAGE_SIZE = 50
DEFAULT_OVERRIDE_PAGE_SIZE = 50
DEFAULT_STUDENT_PAGE_SIZE = 50
DEFAULT_LESSON_PAGE_SIZE = 50
MAX_PAGE_SIZE = 500

DEFAULT_WAIVE_NOTE = "Fee waived by admin"
RECEIPT_PREFIX = "RP-"

DEFAULT_MAX_BOOKS_PER_STUDENT = 3
DEFAULT_LOAN_DURATION_DAYS = 14
DEFAULT_FINE_PER_DAY = Decimal("0.50")
DEFAULT_LOST_BOOK_PROCESSING_FEE = Decimal("5.00")
MAX_COPIES_PER_BATCH = 500
ACCESSION_PREFIX = "LIB-"
