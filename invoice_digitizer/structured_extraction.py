from __future__ import annotations

from time import perf_counter
from typing import Any

from openai import OpenAI, OpenAIError
from pydantic import ValidationError

from invoice_digitizer.extraction_request import ImageFile, build_extraction_request
from invoice_digitizer.invoice_schema import InvoiceData
from invoice_digitizer.logging_config import logger

RAW_TEXT_LOG_LIMIT = 2000


class StructuredExtractionError(RuntimeError):
    code = "extraction_failed"


class MissingApiKeyError(StructuredExtractionError):
    code = "configuration_error"

    def __init__(self) -> None:
        super().__init__("OpenAI API key is not set. Please enter your API key.")


class ExtractionTransportError(StructuredExtractionError):
    code = "model_error"


class ExtractionParseError(StructuredExtractionError):
    code = "unexpected_format"

    def __init__(self, raw_text: str) -> None:
        super().__init__(
            "Failed to parse invoice data. The AI model returned an unexpected format."
        )
        self.raw_text = raw_text


def _response_text(response: Any) -> str:
    message = response.choices[0].message
    refusal = getattr(message, "refusal", None)
    if isinstance(refusal, str) and refusal.strip():
        raise ExtractionTransportError(refusal.strip())
    content = getattr(message, "content", None)
    if isinstance(content, str):
        return content.strip()
    return ""


def parse_invoice_response(raw_text: str) -> InvoiceData:
    try:
        return InvoiceData.model_validate_json(raw_text)
    except ValidationError as exc:
        logger.error("Invoice response failed schema validation: %s", exc)
        logger.error("Raw response text: %s", raw_text[:RAW_TEXT_LOG_LIMIT])
        raise ExtractionParseError(raw_text) from exc


def digitize_invoice(
    image: ImageFile,
    api_key: str,
    model_name: str,
    *,
    client: OpenAI | None = None,
    system_prompt: str | None = None,
) -> InvoiceData:
    """Send one image to the extraction model and return the parsed invoice.

    Exactly one request is made; there is no retry. Raises
    `MissingApiKeyError` before touching the network when no key is given,
    `ExtractionTransportError` when the call itself fails and
    `ExtractionParseError` when the answer does not match `InvoiceData`.
    """
    if not api_key or not api_key.strip():
        raise MissingApiKeyError()

    started_at = perf_counter()
    request = build_extraction_request(image, model_name, system_prompt=system_prompt)
    logger.info(
        "Invoice extraction start model=%s filename=%s content_type=%s image_bytes=%s",
        model_name,
        image.name,
        image.media_type,
        image.size,
    )

    if client is None:
        client = OpenAI(api_key=api_key.strip())
    try:
        response = client.chat.completions.create(
            model=request.model_name,
            temperature=0,
            messages=request.to_messages(),
            response_format=request.response_format,
        )
    except OpenAIError as exc:
        logger.error(
            "Invoice extraction call failed model=%s error=%s",
            model_name,
            exc.__class__.__name__,
        )
        raise ExtractionTransportError(str(exc)) from exc

    raw_text = _response_text(response)
    invoice = parse_invoice_response(raw_text)
    logger.info(
        "Invoice extraction done model=%s line_items=%s response_chars=%s duration_ms=%s",
        model_name,
        len(invoice.line_items),
        len(raw_text),
        round((perf_counter() - started_at) * 1000, 1),
    )
    return invoice
