"""
Aggregate Stats Synchronizer
Recomputes the global counters from scratch by scanning every student.
Never maintained incrementally.
"""
import logging
from typing import Iterable

from sqlalchemy.orm import Session

from models.stats import AggregateStats, STATS_ROW_ID
from services.store import StudentStore, now_ms

logger = logging.getLogger(__name__)

THIRIYA_CENTER = "Thiriya"


def compute_arrears(total_fees, paid_fees, old_paid_fees) -> int:
    """Unpaid remainder, floored at zero (overpayment is allowed)"""
    paid = (paid_fees or 0) + (old_paid_fees or 0)
    return max(0, (total_fees or 0) - paid)


def compute_aggregate(students: Iterable) -> dict:
    """
    One pass over student records (ORM objects or anything with the same attributes).
    Centres are split Thiriya vs everything else.
    """
    stats = {
        "total_enrollments": 0,
        "thiriya_count": 0,
        "nariyawal_count": 0,
        "total_revenue": 0,
        "total_arrears": 0,
    }
    for s in students:
        stats["total_enrollments"] += 1
        if s.center == THIRIYA_CENTER:
            stats["thiriya_count"] += 1
        else:
            stats["nariyawal_count"] += 1

        stats["total_revenue"] += (s.paid_fees or 0) + (s.old_paid_fees or 0)
        stats["total_arrears"] += compute_arrears(s.total_fees, s.paid_fees, s.old_paid_fees)
    return stats


def sync_aggregate_stats(db: Session) -> dict:
    stats = compute_aggregate(StudentStore(db).scan())
    stats["updated_at"] = now_ms()

    row = db.get(AggregateStats, STATS_ROW_ID)
    if row is None:
        row = AggregateStats(id=STATS_ROW_ID)
        db.add(row)
    for key, value in stats.items():
        setattr(row, key, value)
    db.commit()

    logger.info(
        "Stats synced: %d students, revenue %d, arrears %d",
        stats["total_enrollments"], stats["total_revenue"], stats["total_arrears"],
    )
    return stats


def get_aggregate_stats(db: Session) -> dict:
    row = db.get(AggregateStats, STATS_ROW_ID)
    if row is None:
        return sync_aggregate_stats(db)
    return {
        "total_enrollments": row.total_enrollments,
        "thiriya_count": row.thiriya_count,
        "nariyawal_count": row.nariyawal_count,
        "total_revenue": row.total_revenue,
        "total_arrears": row.total_arrears,
        "updated_at": row.updated_at,
    }
