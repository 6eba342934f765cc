import os
import tempfile

import pytest

# Must be set before database.py builds the engine
_TMP_DIR = tempfile.mkdtemp(prefix="coaching-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ["ADMIN_TOKEN"] = ""

from database import Base, SessionLocal, engine  # noqa: E402
from models import courses, stats, students  # noqa: E402,F401


@pytest.fixture(autouse=True)
def fresh_tables():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture()
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client():
    from fastapi.testclient import TestClient
    from main import app

    with TestClient(app) as c:
        yield c


@pytest.fixture()
def make_student(db):
    """Insert a student directly through the store"""
    from services.store import StudentStore

    def _make(registration="1001", **fields):
        data = {
            "full_name": "Test Student",
            "course": "DCA",
            "total_fees": 3600,
            "old_paid_fees": 0,
            "paid_fees": 0,
            "status": "active",
            "center": "Nariyawal",
            "installments": [],
        }
        data.update(fields)
        if "paid_fees" not in fields:
            data["paid_fees"] = sum(inst["amount"] for inst in data["installments"])
        student = StudentStore(db).put(registration, data)
        db.commit()
        return student

    return _make
