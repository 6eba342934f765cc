"""
Monthly fee reminder audit.

A student with an outstanding balance is due on the same day of the month as
their last interaction (admission or latest payment), once at least one
calendar month has passed. Month-end days are clamped (31 Jan -> 28/29 Feb).
"""
import calendar
import datetime
import logging
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from services.dates import parse_date
from services.stats import compute_arrears
from services.store import StudentStore

logger = logging.getLogger(__name__)


def last_interaction(student) -> tuple:
    """(date, "Admission" | "Last Payment") - date is None when nothing parses"""
    latest = parse_date(student.admission_date)
    kind = "Admission"
    for inst in student.installments:
        inst_date = parse_date(inst.date)
        if inst_date and (latest is None or inst_date > latest):
            latest = inst_date
            kind = "Last Payment"
    return latest, kind


def reminder_for(student, today: datetime.date) -> Optional[dict]:
    if student.status == "pass":
        return None
    balance = compute_arrears(student.total_fees, student.paid_fees, student.old_paid_fees)
    if balance <= 0:
        return None

    last, kind = last_interaction(student)
    if last is None:
        return None

    month_diff = (today.year - last.year) * 12 + (today.month - last.month)
    if month_diff < 1:
        return None

    days_in_month = calendar.monthrange(today.year, today.month)[1]
    target_day = min(last.day, days_in_month)
    if today.day != target_day:
        return None

    if any(parse_date(inst.date) == today for inst in student.installments):
        return None

    return {
        "registration": student.registration,
        "full_name": student.full_name,
        "mobile": student.mobile,
        "course": student.course,
        "balance": balance,
        "due_date": today.strftime("%d/%m/%Y"),
        "last_interaction_type": kind,
        "last_interaction_date": last.strftime("%d/%m/%Y"),
    }


def find_due_students(students: Iterable, today: Optional[datetime.date] = None) -> List[dict]:
    today = today or datetime.date.today()
    due = []
    for student in students:
        reminder = reminder_for(student, today)
        if reminder:
            due.append(reminder)
    return due


def run_fee_audit(db: Session, today: Optional[datetime.date] = None) -> List[dict]:
    due = find_due_students(StudentStore(db).scan(), today)
    logger.info("Fee audit: %d students due today", len(due))
    return due
