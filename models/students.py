from sqlalchemy import Column, Integer, BigInteger, String, ForeignKey
from sqlalchemy.orm import relationship
from database import Base


class Student(Base):
    __tablename__ = "students"

    # Registration No. hi document key hai (numeric hota hai, par guarantee nahi)
    registration = Column(String(50), primary_key=True, index=True)

    # --- BIO DATA ---
    full_name = Column(String(150), default="N/A")
    father_name = Column(String(150), default="N/A")
    mobile = Column(String(20), default="N/A")
    address = Column(String(255), default="N/A")
    admission_date = Column(String(30), default="N/A")
    photo_url = Column(String(500), nullable=True)

    # --- COURSE & FEES ---
    course = Column(String(100), default="N/A")
    total_fees = Column(Integer, default=0)
    old_paid_fees = Column(Integer, default=0)  # Legacy amount, import ke baad kabhi nahi badalta
    paid_fees = Column(Integer, default=0)      # == sum(installments.amount)

    status = Column(String(20), default="unpaid")  # unpaid / active / pass
    center = Column(String(50), default="Nariyawal")
    updated_at = Column(BigInteger)  # epoch millis

    installments = relationship(
        "StudentInstallment",
        back_populates="student",
        cascade="all, delete-orphan",
        order_by="[StudentInstallment.position, StudentInstallment.id]",
    )

    @property
    def total_received(self) -> int:
        return (self.paid_fees or 0) + (self.old_paid_fees or 0)

    @property
    def arrears(self) -> int:
        return max(0, (self.total_fees or 0) - self.total_received)


class StudentInstallment(Base):
    __tablename__ = "student_installments"

    id = Column(Integer, primary_key=True, index=True)
    registration = Column(
        String(50), ForeignKey("students.registration", ondelete="CASCADE"), nullable=False, index=True
    )
    position = Column(Integer, default=0)

    # Unique payment id (interactive collections only). Legacy/imported rows: NULL
    entry_id = Column(BigInteger, nullable=True, index=True)
    installment_no = Column(Integer, default=0)
    amount = Column(Integer, nullable=False)
    date = Column(String(30), default="N/A")
    note = Column(String(255), default="")

    student = relationship("Student", back_populates="installments")

    def to_dict(self) -> dict:
        data = {
            "amount": self.amount,
            "date": self.date,
            "installment_no": self.installment_no,
            "note": self.note or "",
        }
        if self.entry_id is not None:
            data["id"] = self.entry_id
        return data
