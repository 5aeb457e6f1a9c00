"""Unit tests for placement/naming.py — dates, financial years and file names."""

from datetime import date

import pytest

from firm_drive.placement.naming import (
    InvalidDateFormatError,
    company_document_name,
    financial_year,
    month_name,
    next_available_name,
    parse_application_date,
    pdf_upload_name,
    strip_company_prefix,
)

# ---------------------------------------------------------------------------
# parse_application_date() tests
# ---------------------------------------------------------------------------


class TestParseApplicationDate:
    def test_parses_day_month_year(self) -> None:
        assert parse_application_date("01-12-2026") == date(2026, 12, 1)

    def test_accepts_single_digit_parts_and_whitespace(self) -> None:
        assert parse_application_date(" 5-4-2026 ") == date(2026, 4, 5)

    @pytest.mark.parametrize(
        "value",
        ["31-13-2026", "30-02-2026", "abc", "2026-12-01", "01/12/2026", "", "1-12-26"],
    )
    def test_rejects_malformed_dates(self, value: str) -> None:
        with pytest.raises(InvalidDateFormatError, match="Expected dd-mm-yyyy"):
            parse_application_date(value)

    def test_error_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            parse_application_date("31-13-2026")


# ---------------------------------------------------------------------------
# financial_year() / month_name() tests
# ---------------------------------------------------------------------------


class TestFinancialYear:
    @pytest.mark.parametrize(
        ("when", "expected"),
        [
            (date(2026, 3, 15), "2025-2026"),
            (date(2026, 3, 31), "2025-2026"),
            (date(2026, 4, 1), "2026-2027"),
            (date(2026, 12, 1), "2026-2027"),
            (date(2027, 1, 1), "2026-2027"),
        ],
    )
    def test_april_to_march(self, when: date, expected: str) -> None:
        assert financial_year(when) == expected


class TestMonthName:
    def test_english_month_names(self) -> None:
        assert month_name(date(2026, 1, 9)) == "January"
        assert month_name(date(2026, 12, 1)) == "December"


# ---------------------------------------------------------------------------
# strip_company_prefix() tests
# ---------------------------------------------------------------------------


class TestStripCompanyPrefix:
    def test_strips_company_and_dash(self) -> None:
        assert strip_company_prefix("ICICI Bank-TSR.docx", "ICICI Bank") == "TSR.docx"

    def test_case_insensitive_with_spaces_and_underscore(self) -> None:
        assert strip_company_prefix("icici bank _ TSR.docx", "ICICI Bank") == "TSR.docx"

    def test_company_name_is_matched_literally(self) -> None:
        assert strip_company_prefix("A.B (India)-Deed.docx", "A.B (India)") == "Deed.docx"
        assert strip_company_prefix("AxB-Deed.docx", "A.B") == "AxB-Deed.docx"

    def test_no_company_leaves_name_untouched(self) -> None:
        assert strip_company_prefix("ICICI Bank-TSR.docx", None) == "ICICI Bank-TSR.docx"
        assert strip_company_prefix("ICICI Bank-TSR.docx", "") == "ICICI Bank-TSR.docx"

    def test_only_leading_occurrence_is_stripped(self) -> None:
        assert strip_company_prefix("TSR-ICICI Bank.docx", "ICICI Bank") == "TSR-ICICI Bank.docx"


# ---------------------------------------------------------------------------
# next_available_name() tests
# ---------------------------------------------------------------------------


class TestNextAvailableName:
    def test_first_copy_keeps_original_name(self) -> None:
        assert next_available_name([], "F100", "TSR.docx") == "F100-TSR.docx"

    def test_successive_copies_get_increasing_suffixes(self) -> None:
        existing: list[str] = []
        for expected in ["F100-TSR.docx", "F100-TSR-1.docx", "F100-TSR-2.docx"]:
            name = next_available_name(existing, "F100", "TSR.docx")
            assert name == expected
            existing.append(name)

    def test_fills_lowest_free_suffix(self) -> None:
        existing = ["F100-TSR.docx", "F100-TSR-2.docx"]
        assert next_available_name(existing, "F100", "TSR.docx") == "F100-TSR-1.docx"

    def test_unrelated_names_do_not_collide(self) -> None:
        existing = ["F100-Deed.docx", "F200-TSR.docx", "F100-TSR.pdf"]
        assert next_available_name(existing, "F100", "TSR.docx") == "F100-TSR.docx"


# ---------------------------------------------------------------------------
# File name builders
# ---------------------------------------------------------------------------


class TestNameBuilders:
    def test_company_document_name(self) -> None:
        assert company_document_name("ICICI Bank", "TSR") == "ICICI Bank-TSR.docx"

    def test_pdf_upload_name(self) -> None:
        assert pdf_upload_name("ULF-3561", "Sale Deed") == "ULF-3561-Sale Deed.pdf"
