import asyncio
from collections.abc import Collection, Iterable, Sequence

from household_categorizer.domain.bank_formats import (
    CUSTOM_FORMAT_NAME,
    DEFAULT_DETECTION_THRESHOLD,
    custom_format,
    detect_bank_format,
    get_bank_format,
)
from household_categorizer.domain.dates import parse_iso_date
from household_categorizer.domain.taxonomy import transaction_type
from household_categorizer.errors import ImportSubmissionError
from household_categorizer.integration.ledger import LedgerClient
from household_categorizer.logger import get_logger
from household_categorizer.manager import CategorizerService
from household_categorizer.models import (
    BankFormat,
    BankTransaction,
    ColumnMapping,
    Correction,
    ImportPreview,
    ImportSummary,
    TransactionRecord,
)
from household_categorizer.services.csv_parser import StatementParser
from household_categorizer.services.dedup import compute_import_hash, mark_duplicates

logger = get_logger(__name__)

AUTO_FORMAT_NAME = "auto"
FALLBACK_FORMAT_NAME = "standard"


def _first_line(text: str) -> str:
    for line in text.lstrip("\ufeff").splitlines():
        if line.strip():
            return line
    return ""


def _count(value: object) -> int:
    """Row count from a ledger field that may be a list of rows or a number."""
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, (list, tuple)):
        return len(value)
    return 0


class ImportPipeline:
    """CSV text in, reviewed rows out to the ledger."""

    def __init__(
        self,
        service: CategorizerService,
        parser: StatementParser | None = None,
        ledger: LedgerClient | None = None,
        detection_threshold: float = DEFAULT_DETECTION_THRESHOLD,
    ) -> None:
        self.service = service
        self.parser = parser or StatementParser(service)
        self.ledger = ledger
        self.detection_threshold = detection_threshold

    def resolve_format(
        self,
        text: str,
        format_name: str,
        *,
        has_header: bool = True,
        mapping: ColumnMapping | None = None,
        delimiter: str | None = None,
        date_format: str | None = None,
    ) -> BankFormat:
        name = (format_name or FALLBACK_FORMAT_NAME).strip().lower()

        if name == CUSTOM_FORMAT_NAME:
            if mapping is None:
                raise ValueError("A column mapping is required for the custom format")
            return custom_format(
                mapping,
                delimiter=delimiter or ",",
                date_format=date_format or "DD/MM/YYYY",
            )

        if name == AUTO_FORMAT_NAME:
            detected = None
            if has_header:
                detected = detect_bank_format(
                    _first_line(text),
                    delimiter=delimiter or ",",
                    threshold=self.detection_threshold,
                )
            if detected is None:
                logger.info("[IMPORT] Could not detect bank format, using '%s'.", FALLBACK_FORMAT_NAME)
                detected = get_bank_format(FALLBACK_FORMAT_NAME)
            bank_format = detected
        else:
            bank_format = get_bank_format(name)

        overrides = {}
        if delimiter:
            overrides["delimiter"] = delimiter
        if date_format:
            overrides["date_format"] = date_format
        return bank_format.model_copy(update=overrides) if overrides else bank_format

    def preview(
        self,
        text: str,
        format_name: str = FALLBACK_FORMAT_NAME,
        *,
        has_header: bool = True,
        mapping: ColumnMapping | None = None,
        existing_ids: Collection[str] = frozenset(),
        delimiter: str | None = None,
        date_format: str | None = None,
    ) -> ImportPreview:
        bank_format = self.resolve_format(
            text,
            format_name,
            has_header=has_header,
            mapping=mapping,
            delimiter=delimiter,
            date_format=date_format,
        )
        parsed = self.parser.parse_text(text, bank_format, has_header=has_header)
        transactions = mark_duplicates(parsed.transactions, existing_ids)

        invalid_count = sum(1 for t in transactions if not t.is_valid)
        duplicate_count = sum(1 for t in transactions if t.is_duplicate)
        importable_count = sum(1 for t in transactions if t.is_valid and not t.is_duplicate)

        logger.info(
            "[IMPORT] Preview with '%s': %d importable, %d invalid, %d duplicate, %d skipped lines.",
            bank_format.name,
            importable_count,
            invalid_count,
            duplicate_count,
            len(parsed.row_errors),
        )
        return ImportPreview(
            bank_format=bank_format.name,
            transactions=transactions,
            row_errors=parsed.row_errors,
            importable_count=importable_count,
            invalid_count=invalid_count,
            duplicate_count=duplicate_count,
        )

    async def preview_async(
        self,
        text: str,
        format_name: str = FALLBACK_FORMAT_NAME,
        *,
        has_header: bool = True,
        mapping: ColumnMapping | None = None,
        existing_ids: Collection[str] = frozenset(),
        delimiter: str | None = None,
        date_format: str | None = None,
    ) -> ImportPreview:
        """Preview off the event loop, also checking the ledger for earlier imports."""
        preview = await asyncio.to_thread(
            self.preview,
            text,
            format_name,
            has_header=has_header,
            mapping=mapping,
            existing_ids=existing_ids,
            delimiter=delimiter,
            date_format=date_format,
        )
        if not self.ledger or not self.ledger.configured:
            return preview

        known_hashes = await self.ledger.get_import_hashes()
        if not known_hashes:
            return preview

        known_ids = set(existing_ids)
        known_ids.update(
            t.id for t in preview.transactions if t.is_valid and compute_import_hash(t) in known_hashes
        )
        transactions = mark_duplicates(preview.transactions, known_ids)
        return preview.model_copy(update={
            "transactions": transactions,
            "duplicate_count": sum(1 for t in transactions if t.is_duplicate),
            "importable_count": sum(1 for t in transactions if t.is_valid and not t.is_duplicate),
        })

    def build_records(
        self,
        transactions: Iterable[BankTransaction],
        include_duplicates: Collection[str] = frozenset(),
    ) -> list[TransactionRecord]:
        records: list[TransactionRecord] = []
        for transaction in transactions:
            if not transaction.is_valid:
                continue
            if transaction.is_duplicate and transaction.id not in include_duplicates:
                continue

            parsed_date = parse_iso_date(transaction.transaction_date)
            if parsed_date is None:
                logger.warning(
                    "[IMPORT] Skipping '%s': date '%s' is not a calendar date.",
                    transaction.description[:50],
                    transaction.transaction_date,
                )
                continue

            records.append(TransactionRecord(
                date=transaction.transaction_date,
                description=transaction.description,
                amount=abs(transaction.amount),
                type=transaction_type(transaction.amount),
                category=transaction.category,
                subcategory=transaction.subcategory,
                balance=transaction.balance,
                reference=transaction.reference,
                budget_month=parsed_date.month,
                budget_year=parsed_date.year,
                import_hash=compute_import_hash(transaction),
            ))
        return records

    async def submit(self, records: Sequence[TransactionRecord]) -> ImportSummary:
        if not records:
            return ImportSummary(submitted=0, created=0, skipped=0)
        if self.ledger is None:
            raise ImportSubmissionError("Ledger API is not configured")

        response = await self.ledger.submit_batch(records)
        stats = response.get("stats") if isinstance(response.get("stats"), dict) else {}
        created = stats["created"] if "created" in stats else _count(response.get("created"))
        skipped = stats["skipped"] if "skipped" in stats else _count(response.get("skipped"))

        logger.info("[IMPORT] Ledger accepted %s of %d rows (%s skipped).", created, len(records), skipped)
        return ImportSummary(
            submitted=len(records),
            created=int(created),
            skipped=int(skipped),
            details=response,
        )

    def record_corrections(self, corrections: Iterable[Correction]) -> int:
        learned = 0
        for correction in corrections:
            if self.service.learn_from_correction(
                correction.description,
                correction.original_category,
                correction.original_subcategory,
                correction.corrected_category,
                correction.corrected_subcategory,
            ):
                learned += 1
        return learned
