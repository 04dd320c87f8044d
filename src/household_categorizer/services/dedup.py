import hashlib
from collections.abc import Collection, Sequence

from household_categorizer.logger import get_logger
from household_categorizer.models import BankTransaction

logger = get_logger(__name__)


def compute_import_hash(transaction: BankTransaction) -> str:
    return hashlib.sha256(transaction.id.encode("utf-8")).hexdigest()


def mark_duplicates(parsed: Sequence[BankTransaction], existing_ids: Collection[str]) -> list[BankTransaction]:
    """Flag rows whose identity was already imported.

    Rows are flagged, never dropped; whether to import a duplicate anyway is
    the reviewer's call. Returns copies, the input rows are untouched.
    """
    marked: list[BankTransaction] = []
    duplicates = 0
    for transaction in parsed:
        is_duplicate = bool(transaction.id) and transaction.id in existing_ids
        if is_duplicate:
            duplicates += 1
        marked.append(transaction.model_copy(update={"is_duplicate": is_duplicate}))

    if duplicates:
        logger.info("[IMPORT] %d of %d rows were imported before.", duplicates, len(marked))
    return marked
