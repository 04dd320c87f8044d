from fastapi import APIRouter, HTTPException

from household_categorizer.api.schemas import DetectFormatRequest, DetectFormatResponse
from household_categorizer.core import settings
from household_categorizer.domain.bank_formats import detect_bank_format, get_bank_format, list_bank_formats
from household_categorizer.errors import UnknownBankFormatError
from household_categorizer.models import BankFormat

router = APIRouter()


@router.get("/formats", response_model=list[BankFormat])
async def get_formats() -> list[BankFormat]:
    return list_bank_formats()


@router.get("/formats/{name}", response_model=BankFormat)
async def get_format(name: str) -> BankFormat:
    try:
        return get_bank_format(name)
    except UnknownBankFormatError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@router.post("/formats/detect", response_model=DetectFormatResponse)
async def detect_format(req: DetectFormatRequest) -> DetectFormatResponse:
    bank_format = detect_bank_format(
        req.header,
        delimiter=req.delimiter,
        threshold=settings.FORMAT_DETECTION_THRESHOLD,
    )
    return DetectFormatResponse(detected=bank_format is not None, bank_format=bank_format)
