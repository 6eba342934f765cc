"""
Fee Ledger Router
Fee collection / installment deletion, course fee table and fee standardization
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from database import get_db
from models.courses import CourseConfig
from errors import BatchCommitError, InstallmentNotFoundError, StudentNotFoundError
from schemas.coaching import (
    CourseFeeSchema, CourseFeeUpdate, FeeCollectRequest, InstallmentDeleteRequest,
)
from services import ledger
from services.standardization import standardize_fees
from services.store import now_ms
from typing import List
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/fee-ledger", tags=["Fee Ledger System"])


# =====================
# COURSE FEE TABLE APIs
# =====================

@router.get("/courses", response_model=List[CourseFeeSchema])
def get_courses(db: Session = Depends(get_db)):
    return db.query(CourseConfig).order_by(CourseConfig.name).all()


@router.post("/courses", response_model=CourseFeeSchema)
def save_course(data: CourseFeeSchema, db: Session = Depends(get_db)):
    """Create or update a course fee"""
    course = db.get(CourseConfig, data.name.strip())
    if course:
        course.fee = data.fee
    else:
        course = CourseConfig(name=data.name.strip(), fee=data.fee)
        db.add(course)
    course.updated_at = now_ms()
    db.commit()
    return course


@router.put("/courses/{name}", response_model=CourseFeeSchema)
def update_course(name: str, data: CourseFeeUpdate, db: Session = Depends(get_db)):
    course = db.get(CourseConfig, name)
    if not course:
        raise HTTPException(status_code=404, detail="Course not found")
    course.fee = data.fee
    course.updated_at = now_ms()
    db.commit()
    return course


@router.post("/standardize")
def run_standardization(db: Session = Depends(get_db)):
    """Apply the canonical fee table to every student (one atomic batch)"""
    try:
        updated = standardize_fees(db)
    except BatchCommitError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return {"message": "Fees standardized", "updated_count": updated}


# =====================
# PAYMENT COLLECTION API
# =====================

@router.post("/{registration}/collect")
def collect_fee(registration: str, pay: FeeCollectRequest, db: Session = Depends(get_db)):
    try:
        entry = ledger.collect_fee(
            db, registration, pay.amount, pay.date, pay.installment_no, pay.note
        )
    except StudentNotFoundError:
        raise HTTPException(status_code=404, detail="Student not found")
    except SQLAlchemyError:
        raise HTTPException(status_code=500, detail="Fee update failed.")
    return {"message": "Fee collected successfully.", "installment": entry}


@router.post("/{registration}/installments/delete")
def delete_installment(registration: str, req: InstallmentDeleteRequest, db: Session = Depends(get_db)):
    try:
        removed = ledger.delete_installment(db, registration, entry_id=req.id, index=req.index)
    except StudentNotFoundError:
        raise HTTPException(status_code=404, detail="Student not found")
    except InstallmentNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except SQLAlchemyError:
        raise HTTPException(status_code=500, detail="Failed to delete installment.")
    return {"message": "Installment deleted", "installment": removed}
