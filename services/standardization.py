"""
Fee Standardization
Pushes the canonical fee table into course_configs and corrects every student
whose stored total disagrees with their course's canonical fee.
"""
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from errors import BatchCommitError
from models.courses import CourseConfig
from services.fee_table import COURSE_FEES, canonical_fee
from services.stats import sync_aggregate_stats
from services.store import StudentStore, now_ms

logger = logging.getLogger(__name__)


def upsert_course_fees(db: Session, fees: dict = COURSE_FEES) -> int:
    stamp = now_ms()
    for name, fee in fees.items():
        course = db.get(CourseConfig, name)
        if course is None:
            db.add(CourseConfig(name=name, fee=fee, updated_at=stamp))
        else:
            course.fee = fee
            course.updated_at = stamp
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise BatchCommitError(f"Course fee table update failed: {e}") from e
    return len(fees)


def standardize_fees(db: Session) -> int:
    """
    Returns the number of students corrected. All corrections commit together;
    if the batch fails nothing is updated and BatchCommitError is raised.
    Students on courses outside the table are left alone.
    """
    upsert_course_fees(db)

    store = StudentStore(db)
    corrections = []
    for student in store.scan():
        fee = canonical_fee(student.course)
        if fee is not None and student.total_fees != fee:
            corrections.append((student.registration, fee))

    if corrections:
        with store.batch() as batch:
            for registration, fee in corrections:
                batch.update(registration, total_fees=fee)
        logger.info("Standardized fees for %d students", len(corrections))

    sync_aggregate_stats(db)
    return len(corrections)
