from household_categorizer.models import BankTransaction
from household_categorizer.services.dedup import compute_import_hash, mark_duplicates


def test_mark_duplicates_flags_exactly_known_ids():
    rows = [
        BankTransaction(id="2024-03-01_TESCO_-45.6", description="TESCO"),
        BankTransaction(id="2024-03-02_SHELL_-30", description="SHELL"),
    ]
    marked = mark_duplicates(rows, {"2024-03-02_SHELL_-30", "something-else"})

    assert [t.is_duplicate for t in marked] == [False, True]
    # Inputs untouched
    assert not rows[1].is_duplicate


def test_mark_duplicates_clears_stale_flags():
    rows = [BankTransaction(id="a", is_duplicate=True)]
    assert mark_duplicates(rows, set())[0].is_duplicate is False


def test_import_hash_is_stable_sha256():
    row = BankTransaction(id="2024-03-01_TESCO_-45.6")
    digest = compute_import_hash(row)
    assert len(digest) == 64
    assert digest == compute_import_hash(row.model_copy())
    assert digest != compute_import_hash(BankTransaction(id="2024-03-01_TESCO_-45.7"))
