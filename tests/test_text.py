import pytest

from household_categorizer.domain.dates import budget_month, is_iso_date, normalize_date, parse_iso_date
from household_categorizer.domain.text import contains_normalized, matches_patterns, normalize_text


@pytest.mark.parametrize(
    "raw",
    ["TESCO STORES 1234", "  Payment  to:  J. Bloggs!! ", "M&S Food", "", "already normal", "Café  Nero\t#12"],
)
def test_normalize_is_idempotent(raw: str) -> None:
    once = normalize_text(raw)
    assert normalize_text(once) == once


def test_normalize_strips_punctuation_and_whitespace() -> None:
    assert normalize_text("  Payment  to:  J. Bloggs!! ") == "payment to j bloggs"
    assert normalize_text("M&S Food") == "ms food"


def test_contains_normalized_ignores_case_and_punctuation() -> None:
    assert contains_normalized("TESCO-STORES #1234", "tesco stores")
    assert not contains_normalized("SAINSBURYS", "tesco")


def test_empty_fragment_never_matches() -> None:
    assert not contains_normalized("anything at all", "")
    assert not contains_normalized("anything at all", "!!!")
    assert not matches_patterns("anything at all", ["", "..."])


def test_matches_patterns_any_hit() -> None:
    assert matches_patterns("Monthly SALARY acme", ["wage", "salary"])
    assert not matches_patterns("Monthly bonus", ["wage", "salary"])


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("01/03/2024", "2024-03-01"),
        ("1/3/2024", "2024-03-01"),
        ("2024-03-01", "2024-03-01"),
        ("2024-3-1", "2024-03-01"),
        ("01-03-2024", "2024-03-01"),
        (" 01/03/2024 ", "2024-03-01"),
    ],
)
def test_normalize_date_day_first(raw: str, expected: str) -> None:
    assert normalize_date(raw) == expected


def test_normalize_date_month_first_only_when_requested() -> None:
    assert normalize_date("03/01/2024", "MM/DD/YYYY") == "2024-03-01"
    assert normalize_date("03/01/2024", "DD/MM/YYYY") == "2024-01-03"
    # ISO input is still accepted for a month-first bank
    assert normalize_date("2024-03-01", "MM/DD/YYYY") == "2024-03-01"


def test_normalize_date_passes_unknown_values_through() -> None:
    assert normalize_date("2024/03/01") == "2024/03/01"
    assert normalize_date("yesterday") == "yesterday"


def test_iso_helpers() -> None:
    assert is_iso_date("2024-03-01")
    assert not is_iso_date("2024-3-1")
    assert parse_iso_date("2024-02-30") is None
    assert budget_month("2024-11-05") == "11"
    assert budget_month("not a date") == "current"


@pytest.mark.parametrize("space", ["\u00a0", "\u2009", "\u202f", "\u3000", "\t"])
def test_unicode_whitespace_collapses_to_a_space(space: str) -> None:
    assert normalize_text(f"BRITISH{space}GAS") == "british gas"
    assert contains_normalized(f"ACME{space}{space}WIDGETS LTD", "acme widgets")
