import math
from unittest.mock import MagicMock, patch

import pytest

from household_categorizer.domain.bank_formats import custom_format, get_bank_format
from household_categorizer.manager import CategorizerService
from household_categorizer.models import BankTransaction, ColumnMapping, RowError
from household_categorizer.services.csv_parser import (
    INSUFFICIENT_COLUMNS,
    INVALID_AMOUNT,
    INVALID_DATE_FORMAT,
    MISSING_DATE,
    MISSING_DESCRIPTION,
    StatementParser,
    format_amount,
    parse_amount,
    parse_optional_amount,
    split_line,
    transaction_id,
)

STANDARD_HEADER = (
    "Transaction Date,Transaction Type,Sort Code,Account Number,"
    "Transaction Description,Debit Amount,Credit Amount,Balance"
)


@pytest.fixture
def parser(tmp_path):
    return StatementParser(CategorizerService(data_dir=str(tmp_path)))


def _standard_text(*rows: str) -> str:
    return "\n".join((STANDARD_HEADER, *rows))


def test_standard_row_round_trip(parser):
    result = parser.parse_text(_standard_text("01/03/2024,DD,,,TESCO STORES,45.60,,1000.00"), get_bank_format("standard"))

    assert result.row_errors == []
    assert len(result.transactions) == 1
    tx = result.transactions[0]
    assert tx.is_valid
    assert tx.validation_errors == []
    assert tx.transaction_date == "2024-03-01"
    assert tx.description == "TESCO STORES"
    assert tx.amount == pytest.approx(-45.60)
    assert tx.balance == 1000.00
    assert tx.type == "DD"
    assert tx.category == "Essentials"
    assert tx.subcategory == "Groceries"
    assert tx.budget_month == "03"
    assert tx.id == "2024-03-01_TESCO_STORES_-45.6"
    assert tx.line_number == 2


def test_credit_column_gives_positive_amount(parser):
    result = parser.parse_text(
        _standard_text("28/02/2024,BGC,,,SALARY ACME LTD,,2500.00,3500.00"),
        get_bank_format("standard"),
    )
    tx = result.transactions[0]
    assert tx.amount == 2500.0
    assert tx.id == "2024-02-28_SALARY_ACME_LTD_2500"
    assert (tx.category, tx.subcategory) == ("Income", "Salary")


def test_all_validation_errors_are_reported(parser):
    result = parser.parse_text(_standard_text("01/03/2024,DD,,,,abc,,1000.00"), get_bank_format("standard"))

    tx = result.transactions[0]
    assert not tx.is_valid
    assert MISSING_DESCRIPTION in tx.validation_errors
    assert INVALID_AMOUNT in tx.validation_errors
    assert tx.id == "row_2"
    assert tx.amount == 0.0
    assert (tx.category, tx.subcategory) == ("Essentials", "Miscellaneous")


def test_missing_and_bad_dates(parser):
    hsbc = get_bank_format("hsbc")
    result = parser.parse_text("Date,Description,Amount\n,TESCO,-1.00\n2024/03/01,TESCO,-1.00", hsbc)

    missing, bad = result.transactions
    assert missing.validation_errors == [MISSING_DATE]
    assert bad.validation_errors == [INVALID_DATE_FORMAT]
    assert bad.transaction_date == ""


def test_short_row_is_a_row_error(parser):
    result = parser.parse_text(_standard_text("01/03/2024,DD,,", "02/03/2024,DD,,,SHELL,30.00,,970.00"), get_bank_format("standard"))

    assert result.row_errors == [RowError(line_number=2, reason=INSUFFICIENT_COLUMNS, raw="01/03/2024,DD,,")]
    assert len(result.transactions) == 1
    assert result.transactions[0].description == "SHELL"


def test_blank_lines_and_header(parser):
    text = "\n\n" + _standard_text("", "01/03/2024,DD,,,TESCO STORES,45.60,,1000.00", "   ")
    result = parser.parse_text(text, get_bank_format("standard"))

    assert len(result.transactions) == 1
    assert result.transactions[0].line_number == 5


def test_no_header_row(parser):
    result = parser.parse_text("01/03/2024,TESCO,-2.50", get_bank_format("hsbc"), has_header=False)
    assert len(result.valid) == 1


def test_byte_order_mark_is_ignored(parser):
    result = parser.parse_text("\ufeff01/03/2024,TESCO,-2.50", get_bank_format("hsbc"), has_header=False)
    assert result.transactions[0].transaction_date == "2024-03-01"


def test_month_first_format(parser):
    bank_format = custom_format(
        ColumnMapping(transaction_date=0, description=1, amount=2),
        date_format="MM/DD/YYYY",
    )
    result = parser.parse_text("03/01/2024,TESCO,-2.50", bank_format, has_header=False)
    assert result.transactions[0].transaction_date == "2024-03-01"


def test_quoted_fields_and_currency(parser):
    result = parser.parse_text('01/03/2024,"ACME, INC","£1,234.50"', get_bank_format("hsbc"), has_header=False)
    tx = result.transactions[0]
    assert tx.description == "ACME, INC"
    assert tx.amount == 1234.5


def test_bad_row_does_not_stop_the_file(parser):
    lines = ["01/03/2024,TESCO,-2.50", "02/03/2024,SHELL,-30"]
    with patch.object(StatementParser, "_parse_line", side_effect=[RuntimeError("boom"), BankTransaction(id="ok")]):
        result = parser.parse(lines, get_bank_format("hsbc").mapping, has_header=False)

    failed, ok = result.transactions
    assert failed.id == "row_1"
    assert not failed.is_valid
    assert failed.validation_errors == ["boom"]
    assert ok.id == "ok"


def test_categorization_failure_uses_fallback():
    service = MagicMock()
    service.suggest.side_effect = RuntimeError("broken")
    parser = StatementParser(service)

    result = parser.parse_text("01/03/2024,TESCO,-2.50", get_bank_format("hsbc"), has_header=False)
    tx = result.transactions[0]
    assert tx.is_valid
    assert (tx.category, tx.subcategory) == ("Essentials", "Rent/Mortgage")


def test_parse_lines_returns_transactions(parser):
    rows = parser.parse_lines(["Date,Description,Amount", "01/03/2024,TESCO,-2.50"], get_bank_format("hsbc").mapping)
    assert [t.description for t in rows] == ["TESCO"]


def test_amount_helpers():
    assert parse_amount("12.5") == 12.5
    assert parse_amount(" -£1,000.00 ") == -1000.0
    assert math.isnan(parse_amount("abc"))
    assert math.isnan(parse_amount("inf"))
    assert parse_optional_amount("") == 0.0
    assert parse_optional_amount(" £ ") == 0.0
    assert math.isnan(parse_optional_amount("n/a"))


def test_id_helpers():
    assert format_amount(2500.0) == "2500"
    assert format_amount(-45.6) == "-45.6"
    assert format_amount(0.0) == "0"
    assert transaction_id("2024-03-01", "TESCO  STORES\tLONDON", -45.6) == "2024-03-01_TESCO_STORES_LONDON_-45.6"


def test_split_line():
    assert split_line('a,"b,c",d', ",") == ["a", "b,c", "d"]
    assert split_line("a;b;c", ";") == ["a", "b", "c"]
    assert split_line("a||b", "||") == ["a", "b"]


def test_impossible_calendar_date_is_invalid(parser):
    result = parser.parse_text("31/02/2024,TESCO,-2.50", get_bank_format("hsbc"), has_header=False)

    tx = result.transactions[0]
    assert not tx.is_valid
    assert tx.validation_errors == [INVALID_DATE_FORMAT]
    assert tx.transaction_date == ""


def test_parse_batches_cache_writes(parser):
    parser.service.learn_from_correction("TESCO", "Essentials", "Groceries", "Lifestyle", "Shopping")
    text = "\n".join(f"0{day}/03/2024,TESCO STORES,-1.00" for day in range(1, 6))

    with patch.object(parser.service.cache, "save", wraps=parser.service.cache.save) as save:
        result = parser.parse_text(text, get_bank_format("hsbc"), has_header=False)

    assert {t.category for t in result.transactions} == {"Lifestyle"}
    save.assert_called_once()
