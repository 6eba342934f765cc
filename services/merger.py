"""
Installment Merger
Reconciles installments parsed from a CSV with the ones already stored for the
same registration.

Dedup key is "<date>_<amount>": two genuinely separate payments of the same
amount on the same day collapse into one. This is kept as-is for
compatibility with existing ledgers (fixing it needs payment ids from the start).
"""
from typing import Iterable, List, Optional

from services.csv_parser import PLACEHOLDER, ParsedStudent
from services.dates import date_sort_key


def installment_key(inst: dict) -> str:
    return f"{inst.get('date')}_{inst.get('amount')}"


def merge_installments(
    existing: Iterable[dict],
    fresh: Iterable[dict],
    sort_by_date: bool = False,
) -> List[dict]:
    """
    Existing entries win on key collision and keep their order; unseen fresh
    entries are appended. installment_no is renumbered 1..N afterwards.
    """
    merged = {}
    for inst in existing:
        merged.setdefault(installment_key(inst), dict(inst))
    for inst in fresh:
        merged.setdefault(installment_key(inst), dict(inst))

    final = list(merged.values())
    if sort_by_date:
        # sorted() is stable - same-date entries keep merge order
        final = sorted(final, key=lambda inst: date_sort_key(inst.get("date")))

    for idx, inst in enumerate(final):
        inst["installment_no"] = idx + 1
    return final


def build_import_record(
    parsed: ParsedStudent,
    existing: Optional[dict] = None,
    sort_by_date: bool = False,
) -> dict:
    """
    Final field values for one imported student.

    `existing` is the stored record as a plain dict (None for a new student).
    On merge the stored legacy amount stays authoritative and a real stored
    mobile / photo is not replaced by the CSV's placeholder.
    """
    record = parsed.profile_fields()
    record["registration"] = parsed.registration

    stored_installments = existing.get("installments", []) if existing else []
    installments = merge_installments(stored_installments, parsed.installments, sort_by_date)
    record["installments"] = installments
    record["paid_fees"] = sum(inst["amount"] for inst in installments)

    if existing is None:
        record["old_paid_fees"] = parsed.old_paid_fees
        return record

    mobile = existing.get("mobile")
    if mobile and mobile != PLACEHOLDER:
        record["mobile"] = mobile
    if existing.get("photo_url"):
        record["photo_url"] = existing["photo_url"]
    return record
