"""
Canonical course fee table.
Used by the CSV parser (fee lookup), student creation (default fee) and the
fee standardization run. Keep this the only copy of the mapping.
"""
from typing import Optional

COURSE_FEES = {
    "MDCA": 9600,
    "C": 6000,
    "ADCA": 6000,
    "ADCA+": 12000,
    "DCA": 3600,
    "Typing": 2100,
    "Accounting": 3600,
    "CSC": 3500,
}

# Case-insensitive lookup ("typing" == "Typing")
_FEES_BY_KEY = {name.upper(): fee for name, fee in COURSE_FEES.items()}


def canonical_fee(course: Optional[str]) -> Optional[int]:
    """Return the canonical fee for a course name, or None when the course is unknown"""
    if not course:
        return None
    return _FEES_BY_KEY.get(course.strip().upper())
