import csv
import math
import re
from collections.abc import Iterable

from household_categorizer.domain.dates import budget_month, normalize_date, parse_iso_date
from household_categorizer.domain.taxonomy import FALLBACK_CATEGORY, INVALID_ROW_SUBCATEGORY, first_subcategory
from household_categorizer.logger import get_logger
from household_categorizer.manager import CategorizerService
from household_categorizer.models import BankFormat, BankTransaction, ColumnMapping, ParseResult, RowError

logger = get_logger(__name__)

MISSING_DATE = "Missing transaction date"
MISSING_DESCRIPTION = "Missing transaction description"
INVALID_AMOUNT = "Invalid transaction amount"
INVALID_DATE_FORMAT = "Invalid date format"
INSUFFICIENT_COLUMNS = "insufficient_columns"

_CURRENCY_NOISE = re.compile(r"[£$€¥,\s]")
_WHITESPACE = re.compile(r"\s+")

RowOutcome = BankTransaction | RowError


def parse_amount(raw: str) -> float:
    """Parse a money cell, retrying without currency symbols and separators.

    Returns NaN when the cell cannot be read as a finite number.
    """
    value = (raw or "").strip()
    for candidate in (value, _CURRENCY_NOISE.sub("", value)):
        try:
            number = float(candidate)
        except ValueError:
            continue
        if math.isfinite(number):
            return number
    return math.nan


def parse_optional_amount(raw: str) -> float:
    """Debit/credit cells: blank means zero."""
    if not _CURRENCY_NOISE.sub("", raw or ""):
        return 0.0
    return parse_amount(raw)


def format_amount(amount: float) -> str:
    # Matches how the web client prints numbers: 2500, -45.6
    if amount == 0:
        return "0"
    if amount.is_integer():
        return str(int(amount))
    return repr(amount)


def transaction_id(iso_date: str, description: str, amount: float) -> str:
    return _WHITESPACE.sub("_", f"{iso_date}_{description}_{format_amount(amount)}")


def split_line(line: str, delimiter: str) -> list[str]:
    if len(delimiter) != 1:
        return line.split(delimiter)
    rows = list(csv.reader([line], delimiter=delimiter))
    return rows[0] if rows else []


def _cell(fields: list[str], index: int | None) -> str:
    if index is None or index >= len(fields):
        return ""
    return fields[index].strip()


class StatementParser:
    """Turns bank statement lines into BankTransaction rows.

    Every non-blank data line yields exactly one outcome: a transaction
    (valid or flagged invalid) or a RowError when the line is too short to
    be mapped at all. A bad line never stops the rest of the file.
    """

    def __init__(self, service: CategorizerService):
        self.service = service

    def parse(
        self,
        lines: Iterable[str],
        mapping: ColumnMapping,
        delimiter: str = ",",
        date_format: str = "DD/MM/YYYY",
        has_header: bool = True,
    ) -> ParseResult:
        result = ParseResult()
        header_pending = has_header

        with self.service.deferred_cache_saves():
            for line_number, raw_line in enumerate(lines, start=1):
                line = raw_line.rstrip("\r\n")
                if not line.strip():
                    continue
                if header_pending:
                    header_pending = False
                    continue

                outcome = self._guarded_parse_line(line, line_number, mapping, delimiter, date_format)
                if isinstance(outcome, RowError):
                    result.row_errors.append(outcome)
                else:
                    result.transactions.append(outcome)

        logger.info(
            "[IMPORT] Parsed %d rows: %d valid, %d invalid, %d skipped.",
            len(result.transactions) + len(result.row_errors),
            len(result.valid),
            len(result.invalid),
            len(result.row_errors),
        )
        return result

    def parse_lines(
        self,
        lines: Iterable[str],
        mapping: ColumnMapping,
        delimiter: str = ",",
        date_format: str = "DD/MM/YYYY",
        has_header: bool = True,
    ) -> list[BankTransaction]:
        return self.parse(lines, mapping, delimiter, date_format, has_header).transactions

    def parse_text(self, text: str, bank_format: BankFormat, has_header: bool = True) -> ParseResult:
        return self.parse(
            text.lstrip("\ufeff").splitlines(),
            bank_format.mapping,
            delimiter=bank_format.delimiter,
            date_format=bank_format.date_format,
            has_header=has_header,
        )

    def _guarded_parse_line(
        self,
        line: str,
        line_number: int,
        mapping: ColumnMapping,
        delimiter: str,
        date_format: str,
    ) -> RowOutcome:
        try:
            return self._parse_line(line, line_number, mapping, delimiter, date_format)
        except Exception as exc:
            logger.warning("[IMPORT] Line %d could not be processed: %s", line_number, exc)
            return BankTransaction(
                id=f"row_{line_number}",
                is_valid=False,
                validation_errors=[str(exc)],
                line_number=line_number,
            )

    def _parse_line(
        self,
        line: str,
        line_number: int,
        mapping: ColumnMapping,
        delimiter: str,
        date_format: str,
    ) -> RowOutcome:
        fields = split_line(line, delimiter)
        required = mapping.required_column_count()
        if len(fields) < required:
            logger.debug(
                "[IMPORT] Line %d has %d columns, %d required.", line_number, len(fields), required
            )
            return RowError(line_number=line_number, reason=INSUFFICIENT_COLUMNS, raw=line)

        raw_date = _cell(fields, mapping.transaction_date)
        description = _cell(fields, mapping.description)

        if mapping.amount is not None:
            amount = parse_amount(_cell(fields, mapping.amount))
        else:
            debit = parse_optional_amount(_cell(fields, mapping.debit_amount))
            credit = parse_optional_amount(_cell(fields, mapping.credit_amount))
            amount = credit - debit

        iso_date = normalize_date(raw_date, date_format) if raw_date else ""

        errors: list[str] = []
        if not raw_date:
            errors.append(MISSING_DATE)
        if not description:
            errors.append(MISSING_DESCRIPTION)
        if math.isnan(amount):
            errors.append(INVALID_AMOUNT)
        if raw_date and parse_iso_date(iso_date) is None:
            errors.append(INVALID_DATE_FORMAT)

        if errors:
            return BankTransaction(
                id=f"row_{line_number}",
                transaction_date=iso_date if parse_iso_date(iso_date) else "",
                description=description,
                amount=0.0 if math.isnan(amount) else amount,
                category=FALLBACK_CATEGORY,
                subcategory=INVALID_ROW_SUBCATEGORY,
                is_valid=False,
                validation_errors=errors,
                line_number=line_number,
            )

        raw_balance = _cell(fields, mapping.balance)
        balance = parse_amount(raw_balance) if raw_balance else math.nan

        category, subcategory = self._categorize(description, amount)

        return BankTransaction(
            id=transaction_id(iso_date, description, amount),
            transaction_date=iso_date,
            description=description,
            amount=amount,
            balance=None if math.isnan(balance) else balance,
            reference=_cell(fields, mapping.reference) or None,
            type=_cell(fields, mapping.type) or None,
            category=category,
            subcategory=subcategory,
            budget_month=budget_month(iso_date),
            is_valid=True,
            line_number=line_number,
        )

    def _categorize(self, description: str, amount: float) -> tuple[str, str]:
        try:
            suggestion = self.service.suggest(description, amount)
            return suggestion.category, suggestion.subcategory
        except Exception as exc:
            logger.warning("[IMPORT] Categorization failed for '%s': %s", description[:50], exc)
            return FALLBACK_CATEGORY, first_subcategory(FALLBACK_CATEGORY)
