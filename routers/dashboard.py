from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from database import get_db
from schemas.coaching import StatsSchema, ReminderSchema
from services.stats import get_aggregate_stats, sync_aggregate_stats
from services.reminders import run_fee_audit
from typing import List

router = APIRouter(prefix="/api/v1/dashboard", tags=["Dashboard"])


@router.get("/stats", response_model=StatsSchema)
def dashboard_stats(db: Session = Depends(get_db)):
    """Last synced totals (computed on first call if never synced)"""
    return get_aggregate_stats(db)


@router.post("/stats/sync", response_model=StatsSchema)
def sync_stats(db: Session = Depends(get_db)):
    """Full recompute: enrollments, centre split, revenue, arrears"""
    return sync_aggregate_stats(db)


@router.get("/reminders", response_model=List[ReminderSchema])
def fee_reminders(db: Session = Depends(get_db)):
    """Students whose monthly fee falls due today"""
    return run_fee_audit(db)
