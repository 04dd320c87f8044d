import csv

from rapidfuzz import fuzz, process, utils

from household_categorizer.errors import UnknownBankFormatError
from household_categorizer.logger import get_logger
from household_categorizer.models import BankFormat, ColumnMapping

logger = get_logger(__name__)

CUSTOM_FORMAT_NAME = "custom"
DEFAULT_DETECTION_THRESHOLD = 80.0

_STANDARD_HEADER = (
    "Transaction Date",
    "Transaction Type",
    "Sort Code",
    "Account Number",
    "Transaction Description",
    "Debit Amount",
    "Credit Amount",
    "Balance",
)

_STANDARD_MAPPING = ColumnMapping(
    transaction_date=0,
    type=1,
    description=4,
    debit_amount=5,
    credit_amount=6,
    balance=7,
)

BANK_FORMATS: tuple[BankFormat, ...] = (
    BankFormat(
        name="standard",
        description="Generic UK statement export with separate debit and credit columns.",
        mapping=_STANDARD_MAPPING,
        header=_STANDARD_HEADER,
    ),
    BankFormat(
        name="barclays",
        description="Barclays online banking CSV (signed amount, memo as description).",
        mapping=ColumnMapping(reference=0, transaction_date=1, amount=3, type=4, description=5),
        header=("Number", "Date", "Account", "Amount", "Subcategory", "Memo"),
    ),
    BankFormat(
        name="hsbc",
        description="HSBC UK statement download (date, description, signed amount).",
        mapping=ColumnMapping(transaction_date=0, description=1, amount=2),
        header=("Date", "Description", "Amount"),
    ),
    BankFormat(
        name="lloyds",
        description="Lloyds / Halifax / Bank of Scotland CSV export.",
        mapping=_STANDARD_MAPPING,
        header=_STANDARD_HEADER,
    ),
    BankFormat(
        name="natwest",
        description="NatWest / RBS CSV export (signed value column).",
        mapping=ColumnMapping(transaction_date=0, type=1, description=2, amount=3, balance=4),
        header=("Date", "Type", "Description", "Value", "Balance", "Account Name", "Account Number"),
    ),
    BankFormat(
        name="nationwide",
        description="Nationwide current account CSV (paid out / paid in).",
        mapping=ColumnMapping(transaction_date=0, type=1, description=2, debit_amount=3, credit_amount=4, balance=5),
        header=("Date", "Transaction type", "Description", "Paid out", "Paid in", "Balance"),
    ),
    BankFormat(
        name="santander",
        description="Santander UK CSV export.",
        mapping=ColumnMapping(transaction_date=0, description=1, amount=2, balance=3),
        header=("Date", "Description", "Amount", "Balance"),
    ),
    BankFormat(
        name="monzo",
        description="Monzo CSV export (signed amount, merchant name as description).",
        mapping=ColumnMapping(reference=0, transaction_date=1, type=3, description=4, amount=7),
        date_format="DD/MM/YYYY",
        header=(
            "Transaction ID", "Date", "Time", "Type", "Name", "Emoji", "Category",
            "Amount", "Currency", "Local amount", "Local currency", "Notes and #tags",
        ),
    ),
    BankFormat(
        name="starling",
        description="Starling Bank statement CSV.",
        mapping=ColumnMapping(transaction_date=0, description=1, reference=2, type=3, amount=4, balance=5),
        header=("Date", "Counter Party", "Reference", "Type", "Amount (GBP)", "Balance (GBP)", "Spending Category"),
    ),
    BankFormat(
        name=CUSTOM_FORMAT_NAME,
        description="User-defined column mapping.",
        mapping=_STANDARD_MAPPING,
    ),
)

_FORMATS_BY_NAME = {bank_format.name: bank_format for bank_format in BANK_FORMATS}


def list_bank_formats() -> list[BankFormat]:
    return list(BANK_FORMATS)


def get_bank_format(name: str) -> BankFormat:
    key = (name or "").strip().lower()
    try:
        return _FORMATS_BY_NAME[key]
    except KeyError:
        raise UnknownBankFormatError(name) from None


def custom_format(
    mapping: ColumnMapping,
    *,
    delimiter: str = ",",
    date_format: str = "DD/MM/YYYY",
) -> BankFormat:
    base = _FORMATS_BY_NAME[CUSTOM_FORMAT_NAME]
    return base.model_copy(update={
        "mapping": mapping,
        "delimiter": delimiter,
        "date_format": date_format,
    })


def _split_header(header_line: str, delimiter: str) -> list[str]:
    rows = list(csv.reader([header_line], delimiter=delimiter))
    if not rows:
        return []
    return [cell.strip() for cell in rows[0] if cell.strip()]


def _best_scores(queries: tuple[str, ...] | list[str], choices: tuple[str, ...] | list[str]) -> list[float]:
    scores: list[float] = []
    for query in queries:
        match = process.extractOne(
            query,
            choices,
            scorer=fuzz.token_sort_ratio,
            processor=utils.default_process,
        )
        scores.append(match[1] if match else 0.0)
    return scores


def header_similarity(bank_format: BankFormat, cells: list[str]) -> float:
    """Score (0-100) of how well a file's header cells match a bank format.

    Both directions are averaged so a file with extra, unknown columns does
    not score as well as an exact match.
    """
    if not bank_format.header or not cells:
        return 0.0
    forward = _best_scores(bank_format.header, cells)
    backward = _best_scores(cells, bank_format.header)
    return (sum(forward) / len(forward) + sum(backward) / len(backward)) / 2


def detect_bank_format(
    header_line: str,
    *,
    delimiter: str = ",",
    threshold: float = DEFAULT_DETECTION_THRESHOLD,
) -> BankFormat | None:
    cells = _split_header(header_line, delimiter)
    if not cells:
        return None

    best: BankFormat | None = None
    best_score = 0.0
    for bank_format in BANK_FORMATS:
        score = header_similarity(bank_format, cells)
        if score > best_score:
            best = bank_format
            best_score = score

    if best is None or best_score < threshold:
        logger.debug("[FORMAT] No bank format matched header (best score %.1f).", best_score)
        return None

    logger.debug("[FORMAT] Detected '%s' (score %.1f).", best.name, best_score)
    return best
