from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

TransactionType = Literal["income", "expense"]


class MerchantMapping(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    patterns: tuple[str, ...]
    category: str
    subcategory: str
    confidence: float = Field(ge=0.0, le=1.0)


class LearnedPattern(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    pattern: str
    category: str
    subcategory: str
    confidence: float = Field(ge=0.0, le=1.0)
    frequency: int = Field(default=1, ge=1)
    last_used: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), alias="lastUsed")

    @field_validator("last_used")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # Stored timestamps without an offset were written in UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class CategorizationResult(BaseModel):
    category: str
    subcategory: str
    confidence: float  # 0.0 to 1.0
    source: str = "default"  # "learned", "merchant", "heuristic", "default", "fallback"


class TransactionCategorization(BaseModel):
    category: str
    subcategory: str
    type: TransactionType


class ColumnMapping(BaseModel):
    """0-based column positions inside a statement row. None = not exported."""

    transaction_date: int = Field(ge=0)
    description: int = Field(ge=0)
    debit_amount: Optional[int] = Field(default=None, ge=0)
    credit_amount: Optional[int] = Field(default=None, ge=0)
    amount: Optional[int] = Field(default=None, ge=0)
    balance: Optional[int] = Field(default=None, ge=0)
    reference: Optional[int] = Field(default=None, ge=0)
    type: Optional[int] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _check_amount_columns(self) -> "ColumnMapping":
        split_columns = (self.debit_amount, self.credit_amount)
        has_split = any(column is not None for column in split_columns)
        if self.amount is not None and has_split:
            raise ValueError("amount and debit/credit columns are mutually exclusive")
        if self.amount is None:
            if not has_split:
                raise ValueError("either amount or debit/credit columns must be mapped")
            if None in split_columns:
                raise ValueError("debit and credit columns must be mapped together")
        return self

    @property
    def uses_split_amounts(self) -> bool:
        return self.amount is None

    def mapped_indices(self) -> list[int]:
        return [index for index in self.model_dump().values() if index is not None]

    def required_column_count(self) -> int:
        return max(self.mapped_indices()) + 1


class BankFormat(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    mapping: ColumnMapping
    date_format: str = "DD/MM/YYYY"
    delimiter: str = ","
    header: tuple[str, ...] = ()


class BankTransaction(BaseModel):
    id: str = ""
    transaction_date: str = ""
    description: str = ""
    amount: float = 0.0
    balance: Optional[float] = None
    reference: Optional[str] = None
    type: Optional[str] = None
    category: str = "Essentials"
    subcategory: str = "Miscellaneous"
    budget_month: str = "current"
    is_valid: bool = True
    validation_errors: list[str] = Field(default_factory=list)
    is_duplicate: bool = False
    line_number: Optional[int] = None


class RowError(BaseModel):
    line_number: int
    reason: str
    raw: str = ""


class ParseResult(BaseModel):
    transactions: list[BankTransaction] = Field(default_factory=list)
    row_errors: list[RowError] = Field(default_factory=list)

    @property
    def valid(self) -> list[BankTransaction]:
        return [t for t in self.transactions if t.is_valid]

    @property
    def invalid(self) -> list[BankTransaction]:
        return [t for t in self.transactions if not t.is_valid]


class TransactionRecord(BaseModel):
    """Row shape accepted by the persistence API batch endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    date: str
    description: str
    amount: float
    type: TransactionType
    category: str
    subcategory: str
    balance: Optional[float] = None
    reference: Optional[str] = None
    budget_month: int = Field(alias="budgetMonth", ge=1, le=12)
    budget_year: int = Field(alias="budgetYear")
    import_hash: str = Field(alias="importHash")


class Correction(BaseModel):
    description: str
    original_category: str
    original_subcategory: str
    corrected_category: str
    corrected_subcategory: str


class ImportPreview(BaseModel):
    bank_format: str
    transactions: list[BankTransaction] = Field(default_factory=list)
    row_errors: list[RowError] = Field(default_factory=list)
    importable_count: int = 0
    invalid_count: int = 0
    duplicate_count: int = 0


class ImportSummary(BaseModel):
    submitted: int
    created: int
    skipped: int
    details: dict = Field(default_factory=dict)
