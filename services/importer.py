"""
Bulk CSV import.
Students are written one at a time; a failed write is rolled back, logged and
skipped so the rest of the file still goes in. Stats are re-synced at the end.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models.students import Student
from services.csv_parser import ImportFormat, ParsedStudent, parse_csv
from services.merger import build_import_record
from services.stats import sync_aggregate_stats
from services.store import StudentStore

logger = logging.getLogger(__name__)


@dataclass
class ImportResult:
    format: str
    parsed_count: int = 0
    processed_count: int = 0
    created_count: int = 0
    merged_count: int = 0
    failed: List[dict] = field(default_factory=list)
    stats: Optional[dict] = None


def stored_snapshot(student: Optional[Student]) -> Optional[dict]:
    """Plain-dict view of the stored record that the merger works on"""
    if student is None:
        return None
    return {
        "registration": student.registration,
        "mobile": student.mobile,
        "photo_url": student.photo_url,
        "old_paid_fees": student.old_paid_fees,
        "installments": [inst.to_dict() for inst in student.installments],
    }


def import_student(db: Session, parsed: ParsedStudent, fmt: ImportFormat) -> bool:
    """Merge-write one student. Returns True when the record already existed."""
    store = StudentStore(db)
    existing = stored_snapshot(store.get(parsed.registration))
    record = build_import_record(parsed, existing, sort_by_date=fmt.sorts_by_date)
    store.put(parsed.registration, record)
    db.commit()
    return existing is not None


def run_import(db: Session, csv_text: str, fmt: ImportFormat, delimiter: str = ",") -> ImportResult:
    fmt = ImportFormat(fmt)
    students = parse_csv(csv_text, fmt, delimiter)
    result = ImportResult(format=fmt.value, parsed_count=len(students))
    logger.info("Starting %s import: %d candidate rows", fmt.value, len(students))

    for parsed in students:
        try:
            merged = import_student(db, parsed, fmt)
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception("Failed to import student %s", parsed.registration)
            result.failed.append({"registration": parsed.registration, "error": str(e)})
            continue

        result.processed_count += 1
        if merged:
            result.merged_count += 1
        else:
            result.created_count += 1

    result.stats = sync_aggregate_stats(db)
    logger.info(
        "%s import complete: %d processed, %d failed",
        fmt.value, result.processed_count, len(result.failed),
    )
    return result
