"""Student directory export (Excel / CSV) with paid and arrears columns"""
import io

import pandas as pd

from services.stats import compute_arrears

EXPORT_COLUMNS = [
    "registration", "full_name", "father_name", "mobile", "course", "center",
    "status", "admission_date", "total_fees", "old_paid_fees", "paid_fees",
    "total_paid", "arrears", "installment_count",
]


def students_frame(students) -> pd.DataFrame:
    rows = []
    for s in students:
        rows.append({
            "registration": s.registration,
            "full_name": s.full_name,
            "father_name": s.father_name,
            "mobile": s.mobile,
            "course": s.course,
            "center": s.center,
            "status": s.status,
            "admission_date": s.admission_date,
            "total_fees": s.total_fees or 0,
            "old_paid_fees": s.old_paid_fees or 0,
            "paid_fees": s.paid_fees or 0,
            "total_paid": (s.paid_fees or 0) + (s.old_paid_fees or 0),
            "arrears": compute_arrears(s.total_fees, s.paid_fees, s.old_paid_fees),
            "installment_count": len(s.installments),
        })
    return pd.DataFrame(rows, columns=EXPORT_COLUMNS)


def export_bytes(df: pd.DataFrame, file_format: str = "xlsx") -> bytes:
    if file_format == "csv":
        return df.to_csv(index=False).encode("utf-8")

    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name="Students")
    return buffer.getvalue()
