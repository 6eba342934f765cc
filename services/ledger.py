"""
Ledger Mutation API - interactive fee collection and student record changes.

paid_fees is always moved with a database-side increment so two admins
recording payments for the same student cannot lose each other's update.
"""
import datetime
import logging
import uuid
from typing import Optional, Union

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from errors import DuplicateKeyError, InstallmentNotFoundError, StudentNotFoundError
from models.courses import CourseConfig
from models.students import Student, StudentInstallment
from services.dates import format_ledger_date
from services.fee_table import canonical_fee
from services.store import StudentStore, now_ms

logger = logging.getLogger(__name__)

DEFAULT_FIRST_REGISTRATION = "1001"


def new_entry_id() -> int:
    # 53-bit so the id survives a round trip through JSON numbers
    return uuid.uuid4().int & ((1 << 53) - 1)


def _require(store: StudentStore, registration: str) -> Student:
    student = store.get(registration)
    if student is None:
        raise StudentNotFoundError(registration)
    return student


def _commit(db: Session) -> None:
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise


# =====================
# STUDENT RECORDS
# =====================

def next_registration(db: Session) -> str:
    """Highest numeric registration + 1, or 1001 for an empty directory"""
    highest = None
    for (reg,) in db.query(Student.registration).all():
        try:
            value = int(reg)
        except (TypeError, ValueError):
            continue
        highest = value if highest is None else max(highest, value)
    return str(highest + 1) if highest is not None else DEFAULT_FIRST_REGISTRATION


def default_fee(db: Session, course: Optional[str]) -> int:
    if course:
        config = db.query(CourseConfig).filter(
            func.lower(CourseConfig.name) == course.strip().lower()
        ).first()
        if config:
            return config.fee or 0
    return canonical_fee(course) or 0


def create_student(db: Session, data: dict) -> Student:
    store = StudentStore(db)
    registration = str(data["registration"]).strip()
    if store.exists(registration):
        raise DuplicateKeyError(registration)

    fields = {k: v for k, v in data.items() if v is not None}
    if fields.get("total_fees") is None:
        fields["total_fees"] = default_fee(db, fields.get("course"))
    fields.setdefault("status", "unpaid")
    fields["paid_fees"] = 0
    fields["installments"] = []

    student = store.put(registration, fields)
    _commit(db)
    logger.info("Student %s created", registration)
    return student


def update_student(db: Session, registration: str, data: dict) -> Student:
    """
    Profile edit. A changed registration moves the record (see rekey_student);
    ledger columns are not editable here.
    """
    store = StudentStore(db)
    student = _require(store, registration)

    new_registration = (data.get("registration") or "").strip()
    if new_registration and new_registration != registration:
        return rekey_student(db, registration, new_registration, data)

    for key, value in data.items():
        if key in ("registration", "paid_fees", "installments") or value is None:
            continue
        setattr(student, key, value)
    student.updated_at = now_ms()
    _commit(db)
    return student


def delete_student(db: Session, registration: str) -> None:
    """Hard delete, installments included. There is no archive copy."""
    store = StudentStore(db)
    if not store.delete(registration):
        raise StudentNotFoundError(registration)
    _commit(db)
    logger.warning("Student %s permanently deleted", registration)


def rekey_student(db: Session, old_registration: str, new_registration: str, data: Optional[dict] = None) -> Student:
    """
    Move a record to a new registration: copy under the new key, then delete the old.

    The two steps commit separately. A crash in between leaves both keys
    present; resolve_rekey() cleans that up.
    """
    store = StudentStore(db)
    old = _require(store, old_registration)
    if store.exists(new_registration):
        raise DuplicateKeyError(new_registration)

    fields = {
        "full_name": old.full_name,
        "father_name": old.father_name,
        "mobile": old.mobile,
        "address": old.address,
        "admission_date": old.admission_date,
        "photo_url": old.photo_url,
        "course": old.course,
        "total_fees": old.total_fees,
        "old_paid_fees": old.old_paid_fees,
        "paid_fees": old.paid_fees,
        "status": old.status,
        "center": old.center,
        "installments": [inst.to_dict() for inst in old.installments],
    }
    for key, value in (data or {}).items():
        if key in ("registration", "paid_fees", "installments") or value is None:
            continue
        fields[key] = value

    # Step 1: create under new key
    student = store.put(new_registration, fields)
    _commit(db)

    # Step 2: drop old key
    store.delete(old_registration)
    _commit(db)
    logger.info("Student %s re-keyed to %s", old_registration, new_registration)
    return student


def resolve_rekey(db: Session, old_registration: str, new_registration: str) -> bool:
    """Recovery for an interrupted rekey: if both keys exist, the new one wins."""
    store = StudentStore(db)
    if store.exists(new_registration) and store.exists(old_registration):
        store.delete(old_registration)
        _commit(db)
        logger.warning("Removed stale record %s left by rekey to %s", old_registration, new_registration)
        return True
    return False


# =====================
# FEE COLLECTION
# =====================

def collect_fee(
    db: Session,
    registration: str,
    amount: int,
    date: Union[str, datetime.date],
    installment_no: int,
    note: str = "",
) -> dict:
    store = StudentStore(db)
    _require(store, registration)

    entry = {
        "id": new_entry_id(),
        "amount": int(amount),
        "date": format_ledger_date(date),
        "installment_no": installment_no,
        "note": note or "",
    }
    next_position = (
        db.query(func.coalesce(func.max(StudentInstallment.position), -1))
        .filter(StudentInstallment.registration == registration)
        .scalar()
    ) + 1

    db.add(StudentInstallment(
        registration=registration,
        position=next_position,
        entry_id=entry["id"],
        installment_no=installment_no,
        amount=entry["amount"],
        date=entry["date"],
        note=entry["note"],
    ))
    store.increment(registration, "paid_fees", entry["amount"])
    _commit(db)

    logger.info("Collected %d from %s", entry["amount"], registration)
    return entry


def delete_installment(
    db: Session,
    registration: str,
    entry_id: Optional[int] = None,
    index: Optional[int] = None,
) -> dict:
    """
    Remove one installment and decrement paid_fees by its amount.
    Entries carrying an id are matched by id; legacy entries without one are
    matched by their position in the list (`index`). No floor at zero.
    """
    store = StudentStore(db)
    student = _require(store, registration)
    installments = list(student.installments)

    target = None
    if entry_id is not None:
        target = next((inst for inst in installments if inst.entry_id == entry_id), None)
    elif index is not None and 0 <= index < len(installments):
        target = installments[index]

    if target is None:
        raise InstallmentNotFoundError(
            f"No installment {'id ' + str(entry_id) if entry_id is not None else 'at index ' + str(index)} "
            f"for student {registration}"
        )

    removed = target.to_dict()
    student.installments.remove(target)
    db.flush()
    store.increment(registration, "paid_fees", -abs(target.amount))
    _commit(db)

    logger.info("Deleted installment of %d from %s", removed["amount"], registration)
    return removed
