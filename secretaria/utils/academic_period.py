# secretaria/utils/academic_period.py
"""Academic period (semester/year) helpers."""
from datetime import date
from typing import Optional, Tuple

from ..core.exceptions import ValidationError

MIN_YEAR = 1000
MAX_YEAR = 9999


def current_period(today: Optional[date] = None) -> Tuple[int, int]:
    """Return (semester, year) for a date: semester 1 is January-June, 2 is July-December."""
    today = today or date.today()
    return (1 if today.month <= 6 else 2), today.year


def validate_period(semester: int, year: int):
    if semester not in (1, 2):
        raise ValidationError("semester must be 1 or 2", field="semester")
    if not isinstance(year, int) or not MIN_YEAR <= year <= MAX_YEAR:
        raise ValidationError("year must be a 4-digit year", field="year")
