from unittest.mock import AsyncMock

import pytest

from household_categorizer.errors import ImportSubmissionError, UnknownBankFormatError
from household_categorizer.manager import CategorizerService
from household_categorizer.models import BankTransaction, ColumnMapping, Correction
from household_categorizer.services.dedup import compute_import_hash
from household_categorizer.services.importer import ImportPipeline

STATEMENT = "\n".join((
    "Transaction Date,Transaction Type,Sort Code,Account Number,"
    "Transaction Description,Debit Amount,Credit Amount,Balance",
    "01/03/2024,DD,,,TESCO STORES,45.60,,1000.00",
    "02/03/2024,BGC,,,SALARY ACME,,2500.00,3500.00",
    "03/03/2024,DD,,,,abc,,3400.00",
    "04/03/2024,DD",
))


@pytest.fixture
def service(tmp_path):
    return CategorizerService(data_dir=str(tmp_path))


@pytest.fixture
def pipeline(service):
    return ImportPipeline(service)


def test_preview_counts(pipeline):
    preview = pipeline.preview(STATEMENT, "standard")

    assert preview.bank_format == "standard"
    assert len(preview.transactions) == 3
    assert [e.line_number for e in preview.row_errors] == [5]
    assert preview.importable_count == 2
    assert preview.invalid_count == 1
    assert preview.duplicate_count == 0


def test_preview_marks_existing_ids(pipeline):
    preview = pipeline.preview(STATEMENT, "standard", existing_ids={"2024-03-01_TESCO_STORES_-45.6"})

    assert preview.duplicate_count == 1
    assert preview.importable_count == 1
    assert preview.transactions[0].is_duplicate


def test_preview_auto_detects_format(pipeline):
    preview = pipeline.preview("Date,Description,Amount\n01/03/2024,TESCO,-2.50", "auto")
    assert preview.bank_format == "hsbc"
    assert preview.importable_count == 1


def test_preview_auto_falls_back_to_standard(pipeline):
    preview = pipeline.preview("foo,bar\n01/03/2024,DD,,,TESCO STORES,45.60,,1000.00", "auto")
    assert preview.bank_format == "standard"


def test_custom_format_needs_mapping(pipeline):
    with pytest.raises(ValueError):
        pipeline.preview("a,b,c", "custom")

    preview = pipeline.preview(
        "Amount;Date;Payee\n-2.50;01/03/2024;TESCO",
        "custom",
        mapping=ColumnMapping(amount=0, transaction_date=1, description=2),
        delimiter=";",
    )
    assert preview.bank_format == "custom"
    assert preview.transactions[0].amount == -2.5


def test_unknown_format(pipeline):
    with pytest.raises(UnknownBankFormatError):
        pipeline.preview(STATEMENT, "nobank")


def test_build_records(pipeline):
    preview = pipeline.preview(STATEMENT, "standard")
    records = pipeline.build_records(preview.transactions)

    assert len(records) == 2
    tesco, salary = records
    assert tesco.amount == pytest.approx(45.60)
    assert tesco.type == "expense"
    assert tesco.budget_month == 3
    assert tesco.budget_year == 2024
    assert tesco.import_hash == compute_import_hash(preview.transactions[0])
    assert salary.type == "income"
    assert salary.amount == 2500.0

    payload = tesco.model_dump(mode="json", by_alias=True, exclude_none=True)
    assert payload["budgetMonth"] == 3
    assert "importHash" in payload


def test_build_records_duplicate_override(pipeline):
    rows = [
        BankTransaction(id="a", transaction_date="2024-03-01", description="A", amount=-1.0, is_duplicate=True),
        BankTransaction(id="b", transaction_date="2024-03-02", description="B", amount=-2.0, is_duplicate=True),
    ]
    assert pipeline.build_records(rows) == []
    records = pipeline.build_records(rows, include_duplicates={"b"})
    assert [r.description for r in records] == ["B"]


@pytest.mark.anyio
async def test_submit_sends_one_batch(service):
    ledger = AsyncMock()
    ledger.submit_batch.return_value = {"stats": {"created": 2, "skipped": 0}}
    pipeline = ImportPipeline(service, ledger=ledger)

    records = pipeline.build_records(pipeline.preview(STATEMENT, "standard").transactions)
    summary = await pipeline.submit(records)

    ledger.submit_batch.assert_awaited_once_with(records)
    assert (summary.submitted, summary.created, summary.skipped) == (2, 2, 0)


@pytest.mark.anyio
async def test_submit_failure_is_raised(service):
    ledger = AsyncMock()
    ledger.submit_batch.side_effect = ImportSubmissionError("rejected", status_code=500)
    pipeline = ImportPipeline(service, ledger=ledger)
    records = pipeline.build_records(pipeline.preview(STATEMENT, "standard").transactions)

    with pytest.raises(ImportSubmissionError):
        await pipeline.submit(records)


@pytest.mark.anyio
async def test_submit_without_ledger(pipeline):
    records = pipeline.build_records(pipeline.preview(STATEMENT, "standard").transactions)
    with pytest.raises(ImportSubmissionError):
        await pipeline.submit(records)

    summary = await pipeline.submit([])
    assert summary.submitted == 0


@pytest.mark.anyio
async def test_preview_async_checks_ledger_hashes(service):
    plain = ImportPipeline(service).preview(STATEMENT, "standard")
    known = compute_import_hash(plain.transactions[1])

    ledger = AsyncMock()
    ledger.configured = True
    ledger.get_import_hashes.return_value = {known}
    pipeline = ImportPipeline(service, ledger=ledger)

    preview = await pipeline.preview_async(STATEMENT, "standard")
    assert [t.is_duplicate for t in preview.transactions] == [False, True, False]
    assert preview.duplicate_count == 1
    assert preview.importable_count == 1


def test_record_corrections(pipeline, service):
    corrections = [
        Correction(
            description="TESCO STORES",
            original_category="Essentials",
            original_subcategory="Groceries",
            corrected_category="Lifestyle",
            corrected_subcategory="Shopping",
        ),
        Correction(
            description="SHELL",
            original_category="Essentials",
            original_subcategory="Transport",
            corrected_category="Essentials",
            corrected_subcategory="Transport",
        ),
    ]
    assert pipeline.record_corrections(corrections) == 1
    assert len(service.cache) == 1


def test_impossible_date_is_not_counted_as_importable(pipeline):
    preview = pipeline.preview("Date,Description,Amount\n31/02/2024,TESCO,-2.50\n01/03/2024,TESCO,-2.50", "hsbc")

    assert preview.importable_count == 1
    assert preview.invalid_count == 1
    assert len(pipeline.build_records(preview.transactions)) == preview.importable_count


@pytest.mark.anyio
@pytest.mark.parametrize(
    ("response", "expected"),
    [
        ({"stats": {"created": 2, "skipped": 0}, "created": 2}, (2, 0)),
        ({"created": [{"id": 1}], "skipped": [{"id": 2}]}, (1, 1)),
        ({"created": 2, "skipped": 0}, (2, 0)),
        ({}, (0, 0)),
    ],
)
async def test_submit_reads_ledger_counts(service, response, expected):
    ledger = AsyncMock()
    ledger.submit_batch.return_value = response
    pipeline = ImportPipeline(service, ledger=ledger)

    records = pipeline.build_records(pipeline.preview(STATEMENT, "standard").transactions)
    summary = await pipeline.submit(records)

    assert (summary.created, summary.skipped) == expected
