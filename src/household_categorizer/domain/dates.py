import re
from datetime import date

_DAY_FIRST_SLASH = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
_ISO = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")
_DAY_FIRST_DASH = re.compile(r"^(\d{1,2})-(\d{1,2})-(\d{4})$")
_ISO_STRICT = re.compile(r"^\d{4}-\d{2}-\d{2}$")

US_DATE_FORMAT = "MM/DD/YYYY"


def _iso(year: str, month: str, day: str) -> str:
    return f"{year}-{month.zfill(2)}-{day.zfill(2)}"


def normalize_date(raw: str, expected_format: str | None = None) -> str:
    """Re-emit a statement date as YYYY-MM-DD.

    Day-first slash, ISO and day-first dash dates are recognised in that
    order. Month-first slash dates are only read as such when the bank
    format asks for them. Unrecognised values come back unchanged.
    """
    value = (raw or "").strip()

    if expected_format and expected_format.upper() == US_DATE_FORMAT:
        match = _DAY_FIRST_SLASH.match(value)
        if match:
            month, day, year = match.groups()
            return _iso(year, month, day)

    match = _DAY_FIRST_SLASH.match(value)
    if match:
        day, month, year = match.groups()
        return _iso(year, month, day)

    match = _ISO.match(value)
    if match:
        year, month, day = match.groups()
        return _iso(year, month, day)

    match = _DAY_FIRST_DASH.match(value)
    if match:
        day, month, year = match.groups()
        return _iso(year, month, day)

    return value


def is_iso_date(value: str) -> bool:
    return bool(_ISO_STRICT.match(value or ""))


def parse_iso_date(value: str) -> date | None:
    if not is_iso_date(value):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def budget_month(iso_date: str) -> str:
    """Two-digit month of an ISO date, or "current" when it cannot be read."""
    parsed = parse_iso_date(iso_date)
    if parsed is None:
        return "current"
    return f"{parsed.month:02d}"
