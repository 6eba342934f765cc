"""
CSV Row Parser
Turns coaching-centre spreadsheet exports into candidate student records.

Two incompatible layouts exist and the operator picks one explicitly:
  - nariyawal : one student per logical row, installments as "700 (05-02)" cells
  - thiriya   : 3 header rows, installments in (reg, date, amount) column groups

Rows that are too short or lack a registration/name are skipped silently,
and so are installment cells whose amount does not parse.
"""
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional

from services.fee_table import canonical_fee

logger = logging.getLogger(__name__)

PLACEHOLDER = "N/A"


class ImportFormat(str, Enum):
    NARIYAWAL = "nariyawal"
    THIRIYA = "thiriya"

    @property
    def center(self) -> str:
        return CENTERS[self]

    @property
    def sorts_by_date(self) -> bool:
        # Thiriya merge re-sorts installments by date, Nariyawal keeps insertion order
        return self is ImportFormat.THIRIYA


CENTERS = {
    ImportFormat.NARIYAWAL: "Nariyawal",
    ImportFormat.THIRIYA: "Thiriya",
}

# ==========================================
#   LAYOUT CONSTANTS
# ==========================================

NARIYAWAL_MIN_COLUMNS = 10
NARIYAWAL_FEE_FALLBACK_COL = 7   # only used when the course is not in the fee table
NARIYAWAL_FIRST_INSTALLMENT_COL = 11
NARIYAWAL_NOTE = "Migrated from Nariyawal CSV"

THIRIYA_MIN_COLUMNS = 8
THIRIYA_HEADER_ROWS = 3
THIRIYA_FIRST_INSTALLMENT_COL = 8
THIRIYA_GROUP_WIDTH = 3          # reg no (skip), date, amount
THIRIYA_NOTE = "Migrated from Thiriya CSV"

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
# A cell that opens with a date ("12-01-2024", "05/02") has no amount
_DATE_START = re.compile(r"^\s*(?:\d{1,2}[-/]\d{1,2}(?!\d)|\d{1,2}\.\d{1,2}\.\d{2,4}|\d{4}[-/.]\d{1,2}[-/.]\d{1,2})")
# "700 (05-02)", "700.50 (05-02)" -> 700 (paise dropped, integer amounts only)
_INSTALLMENT_AMOUNT = re.compile(r"^\s*(\d+)(?:\.\d+)?\s*(.*)$")
_DATE_TOKEN = re.compile(r"\d{1,4}[-/.]\d{1,2}(?:[-/.]\d{1,4})?")
_PARENS = re.compile(r"\(([^)]*)\)")
_TRAILING_ANNOTATION = re.compile(r"\s*\([^)]*\)\s*$")
_SKIP_WORDS = ("unpaid", "free")


@dataclass
class ParsedStudent:
    registration: str
    full_name: str
    course: str = PLACEHOLDER
    father_name: str = PLACEHOLDER
    mobile: str = PLACEHOLDER
    address: str = PLACEHOLDER
    admission_date: str = PLACEHOLDER
    status: str = "active"
    center: str = PLACEHOLDER
    total_fees: int = 0
    old_paid_fees: int = 0
    installments: List[dict] = field(default_factory=list)

    @property
    def paid_fees(self) -> int:
        return sum(inst["amount"] for inst in self.installments)

    def profile_fields(self) -> dict:
        """Scalar columns written on import (ledger columns are handled by the merger)"""
        return {
            "full_name": self.full_name,
            "father_name": self.father_name,
            "mobile": self.mobile,
            "address": self.address,
            "admission_date": self.admission_date,
            "course": self.course,
            "total_fees": self.total_fees,
            "status": self.status,
            "center": self.center,
        }


# ==========================================
#   CELL HELPERS
# ==========================================

def parse_amount(value) -> Optional[int]:
    """Base-10 integer from the start of a cell ("500", " 700 (05-02)"); None when absent"""
    if value is None:
        return None
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else None


def is_blank(value: Optional[str]) -> bool:
    return value is None or value.strip() in ("", "-")


def text_or_placeholder(value: Optional[str]) -> str:
    return PLACEHOLDER if is_blank(value) else value.strip()


def strip_annotation(name: str) -> str:
    """'Ravi Kumar (Change)' -> 'Ravi Kumar'"""
    return _TRAILING_ANNOTATION.sub("", name or "").strip()


def before_paren(value: Optional[str]) -> str:
    """'DCA(basic)' -> 'DCA'"""
    return (value or "").split("(")[0].strip()


def is_skipped_cell(cell: Optional[str]) -> bool:
    if is_blank(cell):
        return True
    lowered = cell.lower()
    return any(word in lowered for word in _SKIP_WORDS)


def _column(cols: List[str], index: int) -> str:
    return cols[index] if index < len(cols) else ""


def _split(line: str, delimiter: str) -> List[str]:
    return [c.strip() for c in line.split(delimiter)]


# ==========================================
#   NARIYAWAL LAYOUT (Format A)
# ==========================================

def join_logical_rows(csv_text: str, delimiter: str = ",") -> List[str]:
    """
    Re-join records that spill over several physical lines.
    A record starts with two numeric fields ("5,1001,..."); any other
    non-header line continues the previous record.
    """
    d = re.escape(delimiter)
    record_start = re.compile(rf"^\s*\d+\s*{d}\s*\d+\s*{d}")

    rows: List[str] = []
    for line_no, raw in enumerate(re.split(r"\r?\n", csv_text)):
        if line_no == 0:
            continue  # header
        line = raw.strip()
        if not line:
            continue
        if record_start.match(line):
            rows.append(line)
        elif rows:
            rows[-1] = f"{rows[-1]} {line}"
        else:
            logger.debug("Dropping continuation line %d with no record before it", line_no + 1)
    return rows


def parse_nariyawal_installment(cell: str) -> Optional[dict]:
    """'700 (05-02)' -> {'amount': 700, 'date': '05-02', ...}; None for skipped/unparsable cells"""
    if is_skipped_cell(cell):
        return None

    match = None if _DATE_START.match(cell) else _INSTALLMENT_AMOUNT.match(cell)
    if not match:
        logger.debug("Unparsable installment cell %r", cell)
        return None

    amount = int(match.group(1))
    rest = match.group(2).strip()

    paren = _PARENS.search(rest)
    source = paren.group(1) if paren else rest
    date_match = _DATE_TOKEN.search(source)
    if date_match:
        date = date_match.group(0)
        leftover = rest.replace(date, "", 1)
    elif paren and paren.group(1).strip():
        date = paren.group(1).strip()
        leftover = rest.replace(paren.group(0), "", 1)
    else:
        date = PLACEHOLDER
        leftover = rest

    leftover = leftover.replace("(", " ").replace(")", " ").strip()
    return {
        "amount": amount,
        "date": date,
        "installment_no": 0,
        "note": leftover or NARIYAWAL_NOTE,
    }


def parse_nariyawal_row(line: str, delimiter: str = ",") -> Optional[ParsedStudent]:
    cols = _split(line, delimiter)
    if len(cols) < NARIYAWAL_MIN_COLUMNS:
        return None

    registration = cols[1]
    full_name = strip_annotation(cols[2])
    if is_blank(registration) or is_blank(full_name):
        return None

    course = before_paren(cols[4]) or PLACEHOLDER
    fee = canonical_fee(course)
    if fee is None:
        fee = parse_amount(_column(cols, NARIYAWAL_FEE_FALLBACK_COL)) or 0

    installments = []
    for cell in cols[NARIYAWAL_FIRST_INSTALLMENT_COL:]:
        inst = parse_nariyawal_installment(cell)
        if inst:
            installments.append(inst)

    return ParsedStudent(
        registration=registration,
        full_name=full_name,
        status=before_paren(cols[3]).lower() or "unpaid",
        course=course,
        father_name=text_or_placeholder(cols[5]),
        mobile=text_or_placeholder(cols[6]),
        address=text_or_placeholder(cols[8]),
        admission_date=text_or_placeholder(cols[9]),
        old_paid_fees=parse_amount(_column(cols, 10)) or 0,
        total_fees=fee,
        center=CENTERS[ImportFormat.NARIYAWAL],
        installments=installments,
    )


def parse_nariyawal(csv_text: str, delimiter: str = ",") -> List[ParsedStudent]:
    students = []
    for row in join_logical_rows(csv_text, delimiter):
        student = parse_nariyawal_row(row, delimiter)
        if student:
            students.append(student)
        else:
            logger.debug("Skipping malformed row: %.60s", row)
    return students


# ==========================================
#   THIRIYA LAYOUT (Format B)
# ==========================================

def split_multi_payment(date_cell: Optional[str], amount_cell: str) -> List[dict]:
    """
    '500+500' paid on '24-05+25-05' -> two installments.
    Amount i takes date i, falling back to the first date when the lists differ in length.
    """
    dates = [d.strip() for d in date_cell.split("+")] if date_cell else [""]
    installments = []
    for idx, raw_amount in enumerate(amount_cell.split("+")):
        amount = parse_amount(raw_amount)
        if amount is None:
            logger.debug("Unparsable amount %r", raw_amount)
            continue
        date = (dates[idx] if idx < len(dates) else "") or dates[0] or PLACEHOLDER
        installments.append({
            "amount": amount,
            "date": date,
            "installment_no": 0,
            "note": THIRIYA_NOTE,
        })
    return installments


def parse_thiriya_row(line: str, delimiter: str = ",") -> Optional[ParsedStudent]:
    cols = _split(line, delimiter)
    if len(cols) < THIRIYA_MIN_COLUMNS:
        return None

    registration = cols[3]   # Roll No.
    full_name = cols[1]      # S - Name
    if is_blank(registration) or is_blank(full_name):
        return None

    total_fees = parse_amount(cols[5]) or 0

    installments = []
    for j in range(THIRIYA_FIRST_INSTALLMENT_COL, len(cols), THIRIYA_GROUP_WIDTH):
        date_cell = _column(cols, j + 1)
        amount_cell = _column(cols, j + 2)
        if is_skipped_cell(amount_cell):
            continue
        installments.extend(split_multi_payment(date_cell, amount_cell))

    paid = sum(inst["amount"] for inst in installments)
    return ParsedStudent(
        registration=registration,
        full_name=full_name,
        father_name=text_or_placeholder(cols[2]),
        course=cols[4] or PLACEHOLDER,
        total_fees=total_fees,
        admission_date=cols[6] or PLACEHOLDER,
        address=cols[7] or PLACEHOLDER,
        status="pass" if total_fees > 0 and paid >= total_fees else "active",
        old_paid_fees=0,
        center=CENTERS[ImportFormat.THIRIYA],
        installments=installments,
    )


def parse_thiriya(csv_text: str, delimiter: str = ",") -> List[ParsedStudent]:
    students = []
    lines = re.split(r"\r?\n", csv_text)
    for line in lines[THIRIYA_HEADER_ROWS:]:
        line = line.strip()
        if not line:
            continue
        student = parse_thiriya_row(line, delimiter)
        if student:
            students.append(student)
        else:
            logger.debug("Skipping malformed row: %.60s", line)
    return students


# ==========================================
#   ENTRY POINT
# ==========================================

PARSERS: Dict[ImportFormat, Callable[..., List[ParsedStudent]]] = {
    ImportFormat.NARIYAWAL: parse_nariyawal,
    ImportFormat.THIRIYA: parse_thiriya,
}


def parse_csv(csv_text: str, fmt: ImportFormat, delimiter: str = ",") -> List[ParsedStudent]:
    return PARSERS[ImportFormat(fmt)](csv_text, delimiter)
