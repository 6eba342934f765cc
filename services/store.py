"""
Student document store.
The only storage primitives the ledger core relies on: get / put / update /
delete by key, a full scan, an atomic increment and a batched commit.
"""
import logging
import time
from contextlib import contextmanager
from typing import Iterator, List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from config import settings
from errors import BatchCommitError
from models.students import Student, StudentInstallment

logger = logging.getLogger(__name__)

SCAN_CHUNK = 500


def now_ms() -> int:
    return int(time.time() * 1000)


class StudentStore:
    def __init__(self, db: Session) -> None:
        self.db = db

    # ---------- reads ----------

    def get(self, registration: str) -> Optional[Student]:
        return self.db.get(Student, registration)

    def exists(self, registration: str) -> bool:
        return self.db.query(Student.registration).filter(
            Student.registration == registration
        ).first() is not None

    def scan(self) -> Iterator[Student]:
        """Every student exactly once, fetched in keyset-paginated chunks"""
        last_key = None
        while True:
            stmt = (
                select(Student)
                .options(selectinload(Student.installments))
                .order_by(Student.registration)
                .limit(SCAN_CHUNK)
            )
            if last_key is not None:
                stmt = stmt.where(Student.registration > last_key)
            chunk = self.db.scalars(stmt).all()
            if not chunk:
                return
            yield from chunk
            last_key = chunk[-1].registration

    # ---------- writes (caller commits) ----------

    def put(self, registration: str, fields: dict) -> Student:
        """
        Create or merge-write a record. Keys missing from `fields` keep their
        stored value; an `installments` list replaces the stored one.
        """
        installments = fields.get("installments")
        student = self.get(registration)
        if student is None:
            student = Student(registration=registration)
            self.db.add(student)

        for key, value in fields.items():
            if key in ("installments", "registration"):
                continue
            setattr(student, key, value)

        if installments is not None:
            student.installments = [
                StudentInstallment(
                    position=idx,
                    entry_id=inst.get("id"),
                    installment_no=inst.get("installment_no", idx + 1),
                    amount=inst["amount"],
                    date=inst.get("date", "N/A"),
                    note=inst.get("note", ""),
                )
                for idx, inst in enumerate(installments)
            ]
        student.updated_at = now_ms()
        return student

    def update(self, registration: str, **fields) -> int:
        fields.setdefault("updated_at", now_ms())
        result = self.db.execute(
            update(Student).where(Student.registration == registration).values(**fields)
        )
        return result.rowcount

    def increment(self, registration: str, column: str, delta: int) -> int:
        """col = col + delta, evaluated by the database (no read-modify-write)"""
        col = getattr(Student, column)
        result = self.db.execute(
            update(Student)
            .where(Student.registration == registration)
            .values(**{column: col + delta, "updated_at": now_ms()})
        )
        return result.rowcount

    def delete(self, registration: str) -> bool:
        student = self.get(registration)
        if student is None:
            return False
        self.db.delete(student)
        return True

    # ---------- batch ----------

    @contextmanager
    def batch(self, limit: Optional[int] = None):
        """
        Queue writes and commit them as one unit.
        Writes are flushed every `limit` operations but only committed at the
        end; any failure rolls the whole batch back.
        """
        writer = BatchWriter(self, limit or settings.BATCH_WRITE_LIMIT)
        try:
            yield writer
            writer.flush()
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Batch of %d writes failed: %s", writer.total, e)
            raise BatchCommitError(f"Batch commit failed, no records were updated: {e}") from e


class BatchWriter:
    def __init__(self, store: StudentStore, limit: int) -> None:
        self.store = store
        self.limit = limit
        self.pending: List[tuple] = []
        self.total = 0

    def update(self, registration: str, **fields) -> None:
        self.pending.append((registration, fields))
        self.total += 1
        if len(self.pending) >= self.limit:
            self.flush()

    def flush(self) -> None:
        for registration, fields in self.pending:
            self.store.update(registration, **fields)
        if self.pending:
            self.store.db.flush()
        self.pending = []
