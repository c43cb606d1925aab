import uuid
from time import perf_counter

from fastapi import APIRouter, Depends, File, Form, Header, HTTPException, UploadFile, status
from fastapi.concurrency import run_in_threadpool

from invoice_api.core.config import settings
from invoice_api.deps.security import verify_bearer_token
from invoice_api.models.invoice_digitize import InvoiceDigitizeResponse
from invoice_api.services.invoice_digitizer import InvoiceRejectedError, digitize_invoice_image
from invoice_digitizer.extraction_request import ImageFile
from invoice_digitizer.invoice_prompt_config import EXTRACTION_MODELS, is_supported_model
from invoice_digitizer.logging_config import logger
from invoice_digitizer.structured_extraction import (
    ExtractionParseError,
    ExtractionTransportError,
    MissingApiKeyError,
)

router = APIRouter(prefix="/api/v1/invoices", tags=["invoices"])

ALLOWED_MIME_TYPES = {
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/webp",
}


def _looks_like_image(content: bytes) -> bool:
    if content.startswith(b"\xff\xd8\xff"):  # JPEG
        return True
    if content.startswith(b"\x89PNG\r\n\x1a\n"):  # PNG
        return True
    if len(content) >= 12 and content[:4] == b"RIFF" and content[8:12] == b"WEBP":
        return True
    return False


@router.post("/digitize", response_model=InvoiceDigitizeResponse)
async def digitize_from_image(
    image: UploadFile = File(...),
    model: str | None = Form(default=None),
    x_request_id: str | None = Header(default=None),
    _: None = Depends(verify_bearer_token),
) -> InvoiceDigitizeResponse:
    started_at = perf_counter()
    if image.content_type not in ALLOWED_MIME_TYPES:
        raise HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail=f"Unsupported media type: {image.content_type}",
        )

    model_name = (model or settings.default_model).strip()
    if not is_supported_model(model_name):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Unsupported model: {model_name}. Choose one of {sorted(EXTRACTION_MODELS)}.",
        )

    content = await image.read()
    if not content:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Image is empty.")
    if len(content) > settings.max_image_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Image exceeds max size of {settings.max_image_bytes} bytes.",
        )
    if not _looks_like_image(content):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Uploaded file does not look like a valid supported image.",
        )

    request_id = x_request_id or str(uuid.uuid4())
    logger.info(
        "Invoice digitize request accepted request_id=%s content_type=%s image_bytes=%s",
        request_id,
        image.content_type,
        len(content),
    )
    image_file = ImageFile(
        name=image.filename or "invoice",
        content=content,
        content_type=image.content_type or "",
    )
    try:
        response = await run_in_threadpool(
            digitize_invoice_image,
            request_id=request_id,
            image=image_file,
            model_name=model_name,
        )
    except MissingApiKeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{exc.code}: {exc}",
        ) from exc
    except (ExtractionTransportError, ExtractionParseError) as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"{exc.code}: {exc}",
        ) from exc
    except InvoiceRejectedError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        ) from exc

    logger.info(
        "Invoice digitize request finished request_id=%s total_ms=%s",
        request_id,
        round((perf_counter() - started_at) * 1000, 1),
    )
    return response


@router.get("/digitize")
async def digitize_from_image_help() -> dict[str, str]:
    return {
        "detail": (
            "Use POST /api/v1/invoices/digitize with multipart form-data: "
            "field 'image' (PNG, JPEG or WEBP file) and optional field 'model' "
            f"(one of {', '.join(sorted(EXTRACTION_MODELS))})."
        )
    }
