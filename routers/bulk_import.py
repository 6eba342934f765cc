"""
Student Bulk Import Router
Administrators upload a coaching-centre CSV export and pick its layout;
students are merged into the directory one by one.
"""

from fastapi import APIRouter, Depends, HTTPException, File, UploadFile
from sqlalchemy.orm import Session
from database import get_db
from schemas.coaching import ImportResultSchema
from services.csv_parser import ImportFormat
from services.importer import run_import
from dataclasses import asdict
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/bulk-import", tags=["Bulk Import"])


def decode_csv(contents: bytes) -> str:
    # Excel ka "CSV UTF-8" BOM ke saath aata hai
    for encoding in ("utf-8-sig", "cp1252"):
        try:
            return contents.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise HTTPException(status_code=400, detail="Could not decode file. Save it as CSV (UTF-8).")


# ==========================================
#   MAIN BULK IMPORT ENDPOINT
# ==========================================

@router.post("/{fmt}", response_model=ImportResultSchema)
async def bulk_import_students(
    fmt: ImportFormat,
    file: UploadFile = File(...),
    delimiter: str = ",",
    db: Session = Depends(get_db)
):
    """
    Import students from a CSV export.

    fmt = nariyawal : "S.No, Reg, Name, Status, Course, Father, Mobile, -, Address, Admission, Old Paid, installments..."
    fmt = thiriya   : 3 header rows, then "S.No, Name, Father, Roll No, Course, Fee, Admission, Address, (Reg, Date, Amount)..."

    Malformed rows are skipped; a failed student write does not stop the import.
    """
    if not file.filename or not file.filename.lower().endswith(".csv"):
        raise HTTPException(
            status_code=400,
            detail="Invalid file format. Please upload a CSV file (.csv)"
        )
    if len(delimiter) != 1:
        raise HTTPException(status_code=400, detail="Delimiter must be a single character")

    csv_text = decode_csv(await file.read())
    result = run_import(db, csv_text, fmt, delimiter)
    return asdict(result)


# ==========================================
#   SAMPLE LAYOUTS
# ==========================================

@router.get("/formats")
async def get_formats():
    return {
        "formats": [f.value for f in ImportFormat],
        "notes": [
            "nariyawal: first line is the header, a record starts with two numeric fields (S.No, Reg)",
            "nariyawal: lines not starting that way are joined to the previous record",
            "nariyawal: installment cells look like '700 (05-02)'; '-', 'unpaid', 'free' are ignored",
            "thiriya: first 3 lines are headers; amounts like '500+500' pair with dates '24-05+25-05'",
            "Re-importing the same file does not duplicate installments (same date + amount = same payment)",
        ]
    }
