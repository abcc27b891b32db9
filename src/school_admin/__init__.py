"""School administration backend: fees, academics, accounting, grading, library and lesson plans."""

__version__ = "0.1.0"
