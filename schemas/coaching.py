from pydantic import BaseModel, Field, model_validator
import datetime as dt
from typing import List, Optional


def today_en_gb() -> str:
    return dt.date.today().strftime("%d/%m/%Y")


# 1. Installment (ledger entry) - id sirf interactive collections par hota hai
class InstallmentSchema(BaseModel):
    id: Optional[int] = None
    amount: int
    date: str
    installment_no: int
    note: str = ""


# 2. Admin form se naya student
class StudentCreate(BaseModel):
    registration: str = Field(..., min_length=1)
    full_name: str = Field(..., min_length=1)
    father_name: str = "N/A"
    mobile: str = "N/A"
    address: str = "N/A"
    admission_date: str = Field(default_factory=today_en_gb)
    course: str = "N/A"
    total_fees: Optional[int] = None  # None = course fee table se lo
    status: str = "unpaid"
    center: str = "Nariyawal"


# 3. Profile edit - registration badla to record move hoga
class StudentUpdate(BaseModel):
    registration: Optional[str] = None
    full_name: Optional[str] = None
    father_name: Optional[str] = None
    mobile: Optional[str] = None
    address: Optional[str] = None
    admission_date: Optional[str] = None
    course: Optional[str] = None
    total_fees: Optional[int] = None
    old_paid_fees: Optional[int] = None
    status: Optional[str] = None
    center: Optional[str] = None


class StudentSchema(BaseModel):
    registration: str
    full_name: Optional[str] = None
    father_name: Optional[str] = None
    mobile: Optional[str] = None
    address: Optional[str] = None
    admission_date: Optional[str] = None
    photo_url: Optional[str] = None
    course: Optional[str] = None
    total_fees: int = 0
    old_paid_fees: int = 0
    paid_fees: int = 0
    total_received: int = 0
    arrears: int = 0
    status: Optional[str] = None
    center: Optional[str] = None
    updated_at: Optional[int] = None
    installments: List[InstallmentSchema] = []

    @classmethod
    def from_student(cls, student) -> "StudentSchema":
        return cls(
            registration=student.registration,
            full_name=student.full_name,
            father_name=student.father_name,
            mobile=student.mobile,
            address=student.address,
            admission_date=student.admission_date,
            photo_url=student.photo_url,
            course=student.course,
            total_fees=student.total_fees or 0,
            old_paid_fees=student.old_paid_fees or 0,
            paid_fees=student.paid_fees or 0,
            total_received=student.total_received,
            arrears=student.arrears,
            status=student.status,
            center=student.center,
            updated_at=student.updated_at,
            installments=[InstallmentSchema(**inst.to_dict()) for inst in student.installments],
        )


# 4. Fee collection
class FeeCollectRequest(BaseModel):
    amount: int = Field(..., gt=0)
    date: dt.date = Field(default_factory=dt.date.today)
    installment_no: int = 1
    note: str = ""


class InstallmentDeleteRequest(BaseModel):
    id: Optional[int] = None
    index: Optional[int] = None  # legacy entries without id: position in the list

    @model_validator(mode="after")
    def check_target(self):
        if self.id is None and self.index is None:
            raise ValueError("Either id or index is required")
        return self


# 5. Course fee table
class CourseFeeSchema(BaseModel):
    name: str = Field(..., min_length=1)
    fee: int = Field(..., ge=0)
    updated_at: Optional[int] = None

    class Config:
        from_attributes = True


class CourseFeeUpdate(BaseModel):
    fee: int = Field(..., ge=0)


# 6. Aggregate stats
class StatsSchema(BaseModel):
    total_enrollments: int
    thiriya_count: int
    nariyawal_count: int
    total_revenue: int
    total_arrears: int
    updated_at: Optional[int] = None


class ImportResultSchema(BaseModel):
    format: str
    parsed_count: int
    processed_count: int
    created_count: int
    merged_count: int
    failed: List[dict] = []
    stats: Optional[StatsSchema] = None


class ReminderSchema(BaseModel):
    registration: str
    full_name: Optional[str] = None
    mobile: Optional[str] = None
    course: Optional[str] = None
    balance: int
    due_date: str
    last_interaction_type: str
    last_interaction_date: str
