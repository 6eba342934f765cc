from fastapi import APIRouter, Depends, HTTPException, File, UploadFile
from fastapi.responses import Response
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload
from database import get_db
from models.students import Student
from errors import DuplicateKeyError, StudentNotFoundError, PhotoUploadError
from schemas.coaching import StudentCreate, StudentUpdate, StudentSchema
from services import ledger
from services.export import students_frame, export_bytes
from services.store import StudentStore, now_ms
from typing import Optional
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/students", tags=["Students"])

EXPORT_MEDIA_TYPES = {
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "csv": "text/csv",
}

# ===============================
#   1. SPECIFIC ROUTES (UPAR RAKHEIN - /{registration} se pehle)
# ===============================

@router.get("/next-registration")
def get_next_registration(db: Session = Depends(get_db)):
    """Suggested registration number for the New Admission form"""
    return {"registration": ledger.next_registration(db)}


@router.get("/export")
def export_students(file_format: str = "xlsx", db: Session = Depends(get_db)):
    if file_format not in EXPORT_MEDIA_TYPES:
        raise HTTPException(status_code=400, detail="file_format must be xlsx or csv")

    df = students_frame(StudentStore(db).scan())
    content = export_bytes(df, file_format)
    return Response(
        content=content,
        media_type=EXPORT_MEDIA_TYPES[file_format],
        headers={"Content-Disposition": f'attachment; filename="students.{file_format}"'},
    )


@router.get("")
def list_students(
    search: str = "",
    status_filter: str = "all",  # all, unpaid, active, pass
    center: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """Directory list - latest updated first"""
    query = db.query(Student).options(selectinload(Student.installments))

    if status_filter != "all":
        query = query.filter(Student.status == status_filter)
    if center:
        query = query.filter(Student.center == center)
    if search:
        search_fmt = f"%{search}%"
        query = query.filter(
            or_(
                Student.full_name.ilike(search_fmt),
                Student.registration.ilike(search_fmt)
            )
        )

    students = query.order_by(Student.updated_at.desc()).all()
    return [StudentSchema.from_student(s) for s in students]


# ===============================
#   2. STUDENT CRUD OPERATIONS
# ===============================

@router.post("", status_code=201)
def add_student(data: StudentCreate, db: Session = Depends(get_db)):
    try:
        student = ledger.create_student(db, data.model_dump())
    except DuplicateKeyError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except SQLAlchemyError:
        raise HTTPException(status_code=500, detail="Failed to save student data!")
    return StudentSchema.from_student(student)


@router.get("/{registration}")
def get_student(registration: str, db: Session = Depends(get_db)):
    student = StudentStore(db).get(registration)
    if not student:
        raise HTTPException(status_code=404, detail="Student not found")
    return StudentSchema.from_student(student)


@router.put("/{registration}")
def update_student(registration: str, data: StudentUpdate, db: Session = Depends(get_db)):
    """Profile update. Registration change = record move (old key deleted)"""
    try:
        student = ledger.update_student(db, registration, data.model_dump(exclude_unset=True))
    except StudentNotFoundError:
        raise HTTPException(status_code=404, detail="Student not found")
    except DuplicateKeyError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except SQLAlchemyError:
        raise HTTPException(status_code=500, detail="Failed to update profile")
    return StudentSchema.from_student(student)


@router.delete("/{registration}")
def delete_student(registration: str, db: Session = Depends(get_db)):
    """PERMANENT delete - cannot be undone"""
    try:
        ledger.delete_student(db, registration)
    except StudentNotFoundError:
        raise HTTPException(status_code=404, detail="Student not found")
    except SQLAlchemyError:
        raise HTTPException(status_code=500, detail="Failed to delete student.")
    return {"message": "Student Deleted", "registration": registration}


# ===============================
#   3. PHOTO UPLOAD ☁️
# ===============================

@router.post("/{registration}/photo")
async def upload_photo(registration: str, file: UploadFile = File(...), db: Session = Depends(get_db)):
    from services.photos import upload_student_photo

    store = StudentStore(db)
    if not store.exists(registration):
        raise HTTPException(status_code=404, detail="Student not found")

    content = await file.read()
    try:
        url = upload_student_photo(content, file.content_type, registration)
    except PhotoUploadError as e:
        raise HTTPException(status_code=502 if e.upstream else 400, detail=str(e))

    store.update(registration, photo_url=url, updated_at=now_ms())
    db.commit()
    return {"message": "Photo Updated", "photo_url": url}
