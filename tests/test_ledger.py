import datetime

import pytest

from database import SessionLocal
from errors import DuplicateKeyError, InstallmentNotFoundError, StudentNotFoundError
from models.courses import CourseConfig
from models.students import Student
from services import ledger
from services.store import StudentStore


def reload(db, registration):
    db.expire_all()
    return db.get(Student, registration)


def assert_sum_invariant(student):
    assert student.paid_fees == sum(i.amount for i in student.installments)


def seeded(make_student):
    return make_student(
        "1001",
        installments=[
            {"date": "01-01", "amount": 500, "installment_no": 1, "note": ""},
            {"date": "02-01", "amount": 300, "installment_no": 2, "note": ""},
        ],
    )


def test_collect_fee_increments_and_appends(db, make_student):
    seeded(make_student)

    entry = ledger.collect_fee(db, "1001", 200, "2024-03-10", 2, "cash")

    student = reload(db, "1001")
    assert student.paid_fees == 1000
    assert len(student.installments) == 3
    last = student.installments[-1]
    assert last.date == "10/03/2024"
    assert last.amount == 200
    assert last.note == "cash"
    assert last.entry_id == entry["id"]
    assert_sum_invariant(student)


def test_collect_fee_accepts_date_objects(db, make_student):
    make_student("1001")
    entry = ledger.collect_fee(db, "1001", 100, datetime.date(2025, 1, 5), 1)
    assert entry["date"] == "05/01/2025"


def test_collect_fee_unknown_student(db):
    with pytest.raises(StudentNotFoundError):
        ledger.collect_fee(db, "404", 100, "2024-03-10", 1)


def test_collect_fee_entry_ids_are_unique(db, make_student):
    make_student("1001")
    ids = {ledger.collect_fee(db, "1001", 100, "2024-03-10", n)["id"] for n in range(1, 6)}
    assert len(ids) == 5
    assert reload(db, "1001").paid_fees == 500


def test_delete_installment_by_id_restores_total(db, make_student):
    seeded(make_student)
    entry = ledger.collect_fee(db, "1001", 200, "2024-03-10", 2, "cash")

    removed = ledger.delete_installment(db, "1001", entry_id=entry["id"])

    student = reload(db, "1001")
    assert removed["amount"] == 200
    assert student.paid_fees == 800
    assert [i.amount for i in student.installments] == [500, 300]
    assert_sum_invariant(student)


def test_delete_legacy_installment_by_index(db, make_student):
    seeded(make_student)

    ledger.delete_installment(db, "1001", index=0)

    student = reload(db, "1001")
    assert [i.amount for i in student.installments] == [300]
    assert student.paid_fees == 300


def test_delete_missing_installment_changes_nothing(db, make_student):
    seeded(make_student)
    with pytest.raises(InstallmentNotFoundError):
        ledger.delete_installment(db, "1001", entry_id=999)
    with pytest.raises(InstallmentNotFoundError):
        ledger.delete_installment(db, "1001", index=5)
    assert reload(db, "1001").paid_fees == 800


def test_decrement_has_no_floor(db, make_student):
    # Out-of-sync legacy record: stored total lower than its entries
    make_student("1001", paid_fees=100, installments=[{"date": "01-01", "amount": 500, "installment_no": 1}])
    ledger.delete_installment(db, "1001", index=0)
    assert reload(db, "1001").paid_fees == -400


def test_increment_is_a_database_side_delta(db, make_student):
    make_student("1001", paid_fees=800)

    # Another admin loaded the record before our payment landed
    other = SessionLocal()
    try:
        stale = other.get(Student, "1001")
        assert stale.paid_fees == 800

        StudentStore(db).increment("1001", "paid_fees", 200)
        db.commit()

        StudentStore(other).increment("1001", "paid_fees", 50)
        other.commit()
    finally:
        other.close()

    assert reload(db, "1001").paid_fees == 1050


def test_create_student_defaults(db):
    student = ledger.create_student(db, {"registration": " 2001 ", "full_name": "Neha", "course": "Typing"})
    assert student.registration == "2001"
    assert student.paid_fees == 0
    assert student.installments == []
    assert student.status == "unpaid"
    assert student.total_fees == 2100


def test_create_student_prefers_course_config_fee(db):
    db.add(CourseConfig(name="Typing", fee=2500))
    db.commit()
    student = ledger.create_student(db, {"registration": "2002", "full_name": "Neha", "course": "typing"})
    assert student.total_fees == 2500


def test_create_student_duplicate_key(db, make_student):
    make_student("1001", full_name="Original")
    with pytest.raises(DuplicateKeyError):
        ledger.create_student(db, {"registration": "1001", "full_name": "Copy"})
    assert reload(db, "1001").full_name == "Original"


def test_next_registration(db, make_student):
    assert ledger.next_registration(db) == "1001"
    make_student("1005")
    make_student("T-01")
    make_student("998")
    assert ledger.next_registration(db) == "1006"


def test_delete_student_is_hard_delete(db, make_student):
    seeded(make_student)
    ledger.delete_student(db, "1001")
    assert reload(db, "1001") is None
    with pytest.raises(StudentNotFoundError):
        ledger.delete_student(db, "1001")


def test_rekey_moves_full_record(db, make_student):
    seeded(make_student)
    ledger.collect_fee(db, "1001", 200, "2024-03-10", 3)

    ledger.rekey_student(db, "1001", "2001", {"full_name": "Renamed"})

    assert reload(db, "1001") is None
    moved = reload(db, "2001")
    assert moved.full_name == "Renamed"
    assert moved.paid_fees == 1000
    assert [i.amount for i in moved.installments] == [500, 300, 200]
    assert moved.installments[-1].entry_id is not None
    assert_sum_invariant(moved)


def test_rekey_to_existing_key_fails_without_writes(db, make_student):
    seeded(make_student)
    make_student("2001", full_name="Someone Else")

    with pytest.raises(DuplicateKeyError):
        ledger.rekey_student(db, "1001", "2001")

    assert reload(db, "1001") is not None
    assert reload(db, "2001").full_name == "Someone Else"


def test_update_student_with_new_registration_rekeys(db, make_student):
    seeded(make_student)
    ledger.update_student(db, "1001", {"registration": "3001", "mobile": "9999"})
    assert reload(db, "1001") is None
    assert reload(db, "3001").mobile == "9999"


def test_update_student_ignores_ledger_columns(db, make_student):
    seeded(make_student)
    ledger.update_student(db, "1001", {"paid_fees": 5, "address": "New Address"})
    student = reload(db, "1001")
    assert student.paid_fees == 800
    assert student.address == "New Address"


def test_resolve_rekey_after_interrupted_move(db, make_student):
    # Crash between create and delete leaves both keys
    seeded(make_student)
    make_student("2001", full_name="Test Student")

    assert ledger.resolve_rekey(db, "1001", "2001") is True
    assert reload(db, "1001") is None
    assert reload(db, "2001") is not None
    assert ledger.resolve_rekey(db, "1001", "2001") is False
