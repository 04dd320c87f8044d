from pydantic import BaseModel, Field

from household_categorizer.models import BankFormat, BankTransaction, ColumnMapping, Correction


class CategorizeRequest(BaseModel):
    description: str
    amount: float = 0.0


class ConfidenceRequest(BaseModel):
    description: str
    category: str
    subcategory: str


class LearnRequest(Correction):
    pass


class LearnBatchRequest(BaseModel):
    corrections: list[Correction]


class SimilarRequest(BaseModel):
    description: str
    transactions: list[BankTransaction]


class ApplySimilarRequest(BaseModel):
    source: BankTransaction
    transactions: list[BankTransaction]


class SubcategoryRequest(BaseModel):
    category: str
    description: str = ""


class DetectFormatRequest(BaseModel):
    header: str
    delimiter: str = ","


class DetectFormatResponse(BaseModel):
    detected: bool
    bank_format: BankFormat | None = None


class ImportPreviewRequest(BaseModel):
    content: str
    format_name: str | None = None
    has_header: bool = True
    mapping: ColumnMapping | None = None
    delimiter: str | None = None
    date_format: str | None = None
    existing_ids: list[str] = Field(default_factory=list)


class ImportConfirmRequest(BaseModel):
    transactions: list[BankTransaction]
    include_duplicates: list[str] = Field(default_factory=list)
    corrections: list[Correction] = Field(default_factory=list)
