from time import perf_counter

from invoice_api.core.config import settings
from invoice_api.models.invoice_digitize import InvoiceDigitizeResponse
from invoice_digitizer.extraction_request import ImageFile
from invoice_digitizer.invoice_validation import DocumentRejected, review_invoice
from invoice_digitizer.logging_config import logger
from invoice_digitizer.structured_extraction import digitize_invoice


class InvoiceRejectedError(RuntimeError):
    """The model answered with the "Invalid Document" sentinel."""


def digitize_invoice_image(
    *,
    request_id: str,
    image: ImageFile,
    model_name: str,
) -> InvoiceDigitizeResponse:
    started_at = perf_counter()
    logger.info(
        "Invoice digitize start request_id=%s model=%s content_type=%s image_bytes=%s",
        request_id,
        model_name,
        image.media_type,
        image.size,
    )

    invoice = digitize_invoice(image, settings.openai_api_key, model_name)
    review = review_invoice(invoice)
    if isinstance(review, DocumentRejected):
        logger.warning(
            "Invoice digitize request_id=%s: document rejected reason=%s",
            request_id,
            review.reason,
        )
        raise InvoiceRejectedError(review.reason)

    warnings = [review.warning] if review.warning else []
    response = InvoiceDigitizeResponse(
        request_id=request_id,
        status="ok",
        invoice=review.invoice.to_wire(),
        warnings=warnings,
        note=review.note,
        model_version=model_name,
    )
    logger.info(
        "Invoice digitize done request_id=%s model=%s line_items=%s warnings=%s duration_ms=%s",
        request_id,
        model_name,
        len(review.invoice.line_items),
        len(warnings),
        round((perf_counter() - started_at) * 1000, 1),
    )
    return response
