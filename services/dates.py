"""Date helpers for the mixed formats found in spreadsheet exports and ledger entries"""
import datetime
import re
from typing import Optional, Tuple, Union

DATE_FORMATS = [
    "%Y-%m-%d", "%d/%m/%Y", "%d-%m-%Y", "%d.%m.%Y",
    "%d/%m/%y", "%d-%m-%y", "%Y/%m/%d",
]

# "24-05", "5/2" - day & month without a year
_DAY_MONTH = re.compile(r"^(\d{1,2})[-/.](\d{1,2})$")


def parse_date(value) -> Optional[datetime.date]:
    """Parse date from various formats"""
    if value is None:
        return None
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value

    value_str = str(value).strip()
    if not value_str or value_str.upper() == "N/A":
        return None
    for fmt in DATE_FORMATS:
        try:
            return datetime.datetime.strptime(value_str, fmt).date()
        except ValueError:
            continue
    return None


def date_sort_key(value) -> Tuple[int, int, int, int]:
    """
    Ordering key for installment dates.
    Full dates sort chronologically, year-less "DD-MM" tokens sort by month/day
    ahead of them, and anything unparseable keeps its place at the end.
    """
    parsed = parse_date(value)
    if parsed:
        return (0, parsed.year, parsed.month, parsed.day)

    match = _DAY_MONTH.match(str(value or "").strip())
    if match:
        day, month = int(match.group(1)), int(match.group(2))
        if 1 <= month <= 12 and 1 <= day <= 31:
            return (0, 0, month, day)
    return (1, 0, 0, 0)


def format_ledger_date(value: Union[str, datetime.date]) -> str:
    """YYYY-MM-DD (form input) -> DD/MM/YYYY (ledger display format)"""
    parsed = parse_date(value)
    if not parsed:
        raise ValueError(f"Invalid payment date: {value!r}")
    return parsed.strftime("%d/%m/%Y")
