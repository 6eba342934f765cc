from services.csv_parser import (
    ImportFormat,
    join_logical_rows,
    parse_csv,
    parse_nariyawal_installment,
    parse_nariyawal_row,
    parse_thiriya_row,
    parse_thiriya,
    split_multi_payment,
)

NARIYAWAL_HEADER = "S.No,Reg,Name,Status,Course,Father,Mobile,-,Address,Admission,Old Paid,Installments"
JOHN_ROW = "5,1001,John Doe,unpaid,DCA(basic),900,9999999999,-,Some Address,01-01-2023,500,700 (05-02)"

THIRIYA_HEADERS = "\n".join([
    "BYTECORE THIRIYA,,,,,,,,,,",
    "S.No,S - Name,F - Name,Roll No.,Course,Fee,Admission,Address,Sep/25,,",
    ",,,,,,,,Reg,Date,Amount",
])


# --- Nariyawal layout ---

def test_nariyawal_row_maps_fixed_columns():
    student = parse_nariyawal_row(JOHN_ROW)

    assert student.registration == "1001"
    assert student.full_name == "John Doe"
    assert student.status == "unpaid"
    assert student.course == "DCA"
    assert student.mobile == "9999999999"
    assert student.address == "Some Address"
    assert student.admission_date == "01-01-2023"
    assert student.old_paid_fees == 500
    assert student.total_fees == 3600
    assert student.center == "Nariyawal"
    assert [(i["amount"], i["date"]) for i in student.installments] == [(700, "05-02")]


def test_nariyawal_strips_name_annotation_and_status_suffix():
    row = "1,1002,Ravi Kumar (Change),Active(old),ADCA+(new),Ram,8888,-,Town,02-02-2023,0"
    student = parse_nariyawal_row(row)

    assert student.full_name == "Ravi Kumar"
    assert student.status == "active"
    assert student.course == "ADCA+"
    assert student.total_fees == 12000


def test_nariyawal_unknown_course_falls_back_to_numeric_column():
    row = "1,1003,Sita,active,Tally,Ram,8888,4500,Town,02-02-2023,0"
    assert parse_nariyawal_row(row).total_fees == 4500

    row = "1,1003,Sita,active,Tally,Ram,8888,-,Town,02-02-2023,0"
    assert parse_nariyawal_row(row).total_fees == 0


def test_nariyawal_short_row_is_skipped():
    assert parse_nariyawal_row("5,1001,John Doe,unpaid,DCA,900,999,-,Addr") is None


def test_nariyawal_blank_or_dash_identity_is_skipped():
    assert parse_nariyawal_row("5,,John,unpaid,DCA,F,9,-,A,01-01-2023,0") is None
    assert parse_nariyawal_row("5,-,John,unpaid,DCA,F,9,-,A,01-01-2023,0") is None
    assert parse_nariyawal_row("5,1001,-,unpaid,DCA,F,9,-,A,01-01-2023,0") is None


def test_installment_cell_variants():
    assert parse_nariyawal_installment("800 (11-11-2025)")["date"] == "11-11-2025"
    assert parse_nariyawal_installment("600 12/01/2024")["date"] == "12/01/2024"

    no_date = parse_nariyawal_installment("450")
    assert no_date["amount"] == 450
    assert no_date["date"] == "N/A"

    noted = parse_nariyawal_installment("300 (10-03 cash)")
    assert noted["date"] == "10-03"
    assert noted["note"] == "cash"


def test_installment_skip_words_and_placeholders():
    assert parse_nariyawal_installment("-") is None
    assert parse_nariyawal_installment("") is None
    assert parse_nariyawal_installment("Unpaid") is None
    assert parse_nariyawal_installment("FREE (scholarship)") is None


def test_unparsable_installment_amount_is_dropped_silently():
    row = JOHN_ROW + ",abc (06-02),12-03-2024,400 (07-02)"
    student = parse_nariyawal_row(row)

    # "abc" and a bare date are not amounts; the rest of the row still parses
    assert [(i["amount"], i["date"]) for i in student.installments] == [
        (700, "05-02"),
        (400, "07-02"),
    ]


def test_multi_line_records_are_rejoined():
    text = "\n".join([
        NARIYAWAL_HEADER,
        "5,1001,John Doe,unpaid,DCA,900,9999999999,-,Near Temple",
        "Main Road,01-01-2023,500,700 (05-02)",
        "6,1002,Asha,active,CSC,Mohan,7777,-,Town,03-01-2023,0",
    ])
    rows = join_logical_rows(text)

    assert len(rows) == 2
    assert rows[0].startswith("5,1001")
    assert "Near Temple Main Road" in rows[0]

    students = parse_csv(text, ImportFormat.NARIYAWAL)
    assert [s.registration for s in students] == ["1001", "1002"]
    assert students[0].address == "Near Temple Main Road"


def test_nariyawal_text_skips_malformed_rows_without_raising():
    text = "\n".join([NARIYAWAL_HEADER, "1,2,too,short", JOHN_ROW, ""])
    students = parse_csv(text, ImportFormat.NARIYAWAL)
    assert [s.registration for s in students] == ["1001"]


def test_semicolon_delimiter():
    row = JOHN_ROW.replace(",", ";")
    text = NARIYAWAL_HEADER + "\n" + row
    students = parse_csv(text, ImportFormat.NARIYAWAL, delimiter=";")
    assert students[0].registration == "1001"
    assert students[0].installments[0]["amount"] == 700


# --- Thiriya layout ---

def test_thiriya_split_multi_payment_pairs_dates():
    installments = split_multi_payment("24-05+25-05", "500+500")
    assert [(i["amount"], i["date"]) for i in installments] == [(500, "24-05"), (500, "25-05")]


def test_thiriya_uneven_dates_fall_back_to_first():
    installments = split_multi_payment("24-05", "500+300")
    assert [(i["amount"], i["date"]) for i in installments] == [(500, "24-05"), (300, "24-05")]


def test_thiriya_row_columns_and_groups():
    row = "1,Anil,Suresh,T-01,DCA,3600,01/09/2025,Thiriya Village,T-01,05-09,1000,T-01,24-05+25-05,500+500,T-01,-,unpaid"
    student = parse_thiriya_row(row)

    assert student.registration == "T-01"
    assert student.full_name == "Anil"
    assert student.father_name == "Suresh"
    assert student.course == "DCA"
    assert student.total_fees == 3600
    assert student.admission_date == "01/09/2025"
    assert student.address == "Thiriya Village"
    assert student.center == "Thiriya"
    assert student.old_paid_fees == 0
    assert student.mobile == "N/A"
    assert [(i["amount"], i["date"]) for i in student.installments] == [
        (1000, "05-09"), (500, "24-05"), (500, "25-05"),
    ]
    assert student.paid_fees == 2000
    assert student.status == "active"


def test_thiriya_fully_paid_is_pass():
    row = "1,Anil,Suresh,T-02,Typing,2100,01/09/2025,Village,T-02,05-09,2100"
    assert parse_thiriya_row(row).status == "pass"


def test_thiriya_short_row_skipped():
    assert parse_thiriya_row("1,Anil,Suresh,T-02,Typing,2100,01/09/2025") is None


def test_thiriya_unparsable_amount_dropped():
    installments = split_multi_payment("24-05+25-05", "500+abc")
    assert [i["amount"] for i in installments] == [500]


def test_thiriya_text_skips_three_header_rows():
    text = THIRIYA_HEADERS + "\n1,Anil,Suresh,T-01,DCA,3600,01/09/2025,Village,T-01,05-09,1000\n"
    students = parse_thiriya(text)
    assert [s.registration for s in students] == ["T-01"]


def test_decimal_amount_keeps_rupee_part():
    row = JOHN_ROW.replace("700 (05-02)", "700.50 (05-02),1200 (06-02)")
    student = parse_nariyawal_row(row)

    assert [(i["amount"], i["date"]) for i in student.installments] == [
        (700, "05-02"),
        (1200, "06-02"),
    ]


def test_cell_starting_with_a_date_has_no_amount():
    assert parse_nariyawal_installment("05/02 (cash)") is None
    assert parse_nariyawal_installment("2024-03-10") is None
    assert parse_nariyawal_installment("11.11.2025") is None
