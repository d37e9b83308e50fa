import pytest

from census_quality.normalize import (
    CensusReadError,
    canonical_field,
    decode_census_bytes,
    normalize_header_key,
    parse_census_text,
)


@pytest.mark.parametrize(
    "header,expected",
    [
        ("Employee ID", "employee_id"),
        ("emp_id", "employee_id"),
        ("Annual Salary ($)", "annual_salary"),
        ("Salary", "annual_salary"),
        ("Base Salary", "basesalary"),
        ("DOB", "dob"),
        ("Date of Birth", "dob"),
        ("Birthdate", "dob"),
        ("Employment Status", "employment_status"),
        ("Hire Date", "hire_date"),
        ("Basic Life Coverage", "basic_life_coverage"),
        ("Voluntary Life Multiple", "voluntary_life_multiple"),
        ("Supp Life (x salary)", "voluntary_life_multiple"),
        ("Dependent Elections", "dependent_elections"),
        ("Name", "name"),
        ("Department", "department"),
        # first matching rule wins
        ("Status ID", "employee_id"),
        ("Dividend Status", "employee_id"),
    ],
)
def test_canonical_field(header, expected):
    assert canonical_field(header) == expected


def test_normalize_header_key_strips_punctuation():
    assert normalize_header_key("  Hire-Date (MM/DD) ") == "hiredatemmdd"
    assert normalize_header_key("###") == ""


def test_parse_census_text_maps_rows():
    text = (
        "Employee ID,Name,DOB,Status,Hire Date,Annual Salary,Basic Life,Voluntary Multiple,Dependents\n"
        "E001, Ada Lovelace ,1985-02-15,Active,2019-06-01,$85000,50000,3,Spouse\n"
    )
    records = parse_census_text(text)

    assert len(records) == 1
    record = records[0]
    assert record.employee_id == "E001"
    assert record.name == "Ada Lovelace"
    assert record.dob == "1985-02-15"
    assert record.employment_status == "Active"
    assert record.hire_date == "2019-06-01"
    assert record.annual_salary == "$85000"
    assert record.basic_life_coverage == "50000"
    assert record.voluntary_life_multiple == "3"
    assert record.dependent_elections == "Spouse"


def test_parse_census_text_drops_blank_lines():
    text = "\n  \nid,salary\n\nA,100\n   \nB,200\n"
    records = parse_census_text(text)
    assert [r.employee_id for r in records] == ["A", "B"]


def test_short_rows_leave_fields_absent_and_long_rows_drop_extras():
    text = "id,salary,dob\nA\nB,100,1990-01-01,extra,more\n"
    short, long = parse_census_text(text)

    assert short.employee_id == "A"
    assert short.annual_salary is None
    assert short.dob is None
    assert long.dob == "1990-01-01"
    assert long.model_extra == {}


def test_unmapped_headers_are_carried_through():
    records = parse_census_text("id,Department,Cost Center\nA,Sales,42\n")
    assert records[0].model_extra == {"department": "Sales", "costcenter": "42"}


def test_empty_text_and_header_only():
    assert parse_census_text("") == []
    assert parse_census_text(" \n\n") == []
    assert parse_census_text("id,salary\n") == []


def test_crlf_values_are_trimmed():
    records = parse_census_text("id,salary\r\nA,100\r\n")
    assert records[0].employee_id == "A"
    assert records[0].annual_salary == "100"


def test_decode_latin1_census():
    raw = "name,city\nPaul,Montréal\n".encode("latin-1")
    assert "Montréal" in decode_census_bytes(raw)


def test_decode_strips_bom_and_normalizes_newlines():
    raw = "\ufeffid,salary\r\nA,100\rB,200\n".encode("utf-8")
    text = decode_census_bytes(raw)
    assert text == "id,salary\nA,100\nB,200\n"


def test_decode_empty_upload():
    assert decode_census_bytes(b"") == ""


def test_decode_rejects_binary_content():
    with pytest.raises(CensusReadError):
        decode_census_bytes(bytes(range(256)) * 8)


def test_later_column_wins_when_headers_share_a_field():
    records = parse_census_text("Employee ID,Dependent ID\nE1,D1\n")
    assert records[0].employee_id == "D1"
    assert records[0].model_extra == {}
