"""Pure naming rules for placed documents: dates, prefixes and collision suffixes."""

from __future__ import annotations

import re
from collections.abc import Iterable
from datetime import date

DOCX_EXTENSION = ".docx"
PDF_EXTENSION = ".pdf"

# Fixed English names so folder names do not depend on the host locale
MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)

# Financial years start in April
FINANCIAL_YEAR_START_MONTH = 4

_APPLICATION_DATE_RE = re.compile(r"^\s*(\d{1,2})-(\d{1,2})-(\d{4})\s*$")
_DOCX_SUFFIX_RE = re.compile(r"\.docx$", re.IGNORECASE)


class InvalidDateFormatError(ValueError):
    """Raised when an application date is not a valid dd-mm-yyyy string."""


def parse_application_date(value: str) -> date:
    """Parse a ``dd-mm-yyyy`` application date strictly.

    Args:
        value: Date string such as "01-12-2026".

    Returns:
        The parsed date.

    Raises:
        InvalidDateFormatError: If the string is not three dash-separated
            numbers or does not name a real calendar day.
    """
    match = _APPLICATION_DATE_RE.match(value) if isinstance(value, str) else None
    if match is None:
        raise InvalidDateFormatError(
            f"Invalid application date {value!r}. Expected dd-mm-yyyy"
        )
    day, month, year = (int(part) for part in match.groups())
    try:
        return date(year, month, day)
    except ValueError as exc:
        raise InvalidDateFormatError(
            f"Invalid application date {value!r}. Expected dd-mm-yyyy"
        ) from exc


def financial_year(when: date) -> str:
    """Return the April-to-March financial year containing ``when``.

    March 2026 falls in "2025-2026"; April 2026 starts "2026-2027".
    """
    start = when.year if when.month >= FINANCIAL_YEAR_START_MONTH else when.year - 1
    return f"{start}-{start + 1}"


def month_name(when: date) -> str:
    return MONTH_NAMES[when.month - 1]


def strip_company_prefix(file_name: str, company_name: str | None) -> str:
    """Remove a leading company name and optional separator from a file name.

    "ICICI Bank-TSR.docx" with company "ICICI Bank" becomes "TSR.docx". The
    match is case-insensitive and tolerates whitespace around a single
    ``-`` or ``_``.
    """
    if not company_name:
        return file_name
    pattern = re.compile(rf"^{re.escape(company_name)}\s*[-_]?\s*", re.IGNORECASE)
    return pattern.sub("", file_name, count=1)


def next_available_name(
    existing_names: Iterable[str],
    application_file_no: str,
    original_name: str,
) -> str:
    """Pick a destination name for ``original_name`` that avoids collisions.

    The first copy keeps the original name behind the file number
    (``F100-TSR.docx``). Later copies get ``-1``, ``-2``, ... before the
    extension, taking the lowest number not already used. Only ``.docx``
    names are considered when looking for collisions.

    Args:
        existing_names: Names already present in the destination folder.
        application_file_no: Application file number used as the name prefix.
        original_name: Source file name, company prefix already stripped.

    Returns:
        The name to give the copy.
    """
    base_name = _DOCX_SUFFIX_RE.sub("", original_name)
    prefix = f"{application_file_no}-{base_name}"
    matching = {
        name
        for name in existing_names
        if name.startswith(prefix) and name.endswith(DOCX_EXTENSION)
    }
    if f"{prefix}{DOCX_EXTENSION}" not in matching:
        return f"{application_file_no}-{original_name}"

    suffix = 1
    while f"{prefix}-{suffix}{DOCX_EXTENSION}" in matching:
        suffix += 1
    return f"{prefix}-{suffix}{DOCX_EXTENSION}"


def company_document_name(company_name: str, doc_type: str) -> str:
    return f"{company_name}-{doc_type}{DOCX_EXTENSION}"


def pdf_upload_name(application_file_no: str, pdf_title: str) -> str:
    return f"{application_file_no}-{pdf_title}{PDF_EXTENSION}"
