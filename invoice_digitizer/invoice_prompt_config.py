from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from invoice_digitizer.app_paths import PROMPT_CONFIG_PATH
from invoice_digitizer.invoice_schema import INVALID_DOCUMENT_VENDOR, InvoiceData
from invoice_digitizer.logging_config import logger

OUTPUT_SCHEMA_NAME = "invoice_data"

EXTRACTION_MODELS: dict[str, str] = {
    "gpt-4o": "GPT-4o",
    "gpt-4o-mini": "GPT-4o mini",
    "gpt-4.1-mini": "GPT-4.1 mini",
}
DEFAULT_EXTRACTION_MODEL = "gpt-4o"

DEFAULT_SYSTEM_PROMPT = (
    "You extract structured data from photographed or scanned invoices. "
    "Work strictly from what is printed on the document: do not invent values. "
    "Answer only with JSON matching the provided schema."
)

EXTRACTION_RULES = (
    "All monetary values (totalAmount, taxAmount, unitPrice, amount) must be plain numbers "
    "without currency symbols or thousands separators.",
    "Normalize every date to YYYY-MM-DD.",
    "If the invoice shows no due date, set dueDate to null.",
    "If the invoice shows no tax, set taxAmount to 0.",
    "currency must be the 3-letter ISO 4217 code (e.g., USD, EUR, MYR).",
    "Cross-check every line item: quantity * unitPrice should equal amount.",
    "Cross-check the grand total: the sum of all line item amounts plus taxAmount should equal "
    "totalAmount.",
    "If a cross-check is off only by a minor rounding difference, keep the values printed on the "
    "invoice. If the difference is larger, keep the printed values and explain the discrepancy "
    "in notes.",
    "If there are no notes, set notes to null.",
    f'If the image is not an invoice, do not fail: return vendorName "{INVALID_DOCUMENT_VENDOR}", '
    "invoiceNumber \"\", invoiceDate \"\", totalAmount 0, currency \"\", an empty lineItems list "
    "and a short explanation in notes.",
)


class PromptConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    system_prompt: str = DEFAULT_SYSTEM_PROMPT


DEFAULT_PROMPT_CONFIG = PromptConfig(system_prompt=DEFAULT_SYSTEM_PROMPT)


def load_prompt_config() -> dict[str, Any]:
    if PROMPT_CONFIG_PATH.exists():
        try:
            with PROMPT_CONFIG_PATH.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Prompt config unreadable path=%s error=%s", PROMPT_CONFIG_PATH, exc)
            data = {}
    else:
        data = {}
    if not isinstance(data, dict):
        data = {}

    try:
        config = PromptConfig.model_validate(
            {
                "system_prompt": data.get("system_prompt") or DEFAULT_SYSTEM_PROMPT,
            }
        )
    except ValidationError:
        config = DEFAULT_PROMPT_CONFIG
    return config.model_dump()


def save_prompt_config(config: dict[str, Any]) -> None:
    merged = {
        "system_prompt": config.get("system_prompt") or DEFAULT_SYSTEM_PROMPT,
    }
    validated = PromptConfig.model_validate(merged)
    PROMPT_CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
    with PROMPT_CONFIG_PATH.open("w", encoding="utf-8") as handle:
        json.dump(validated.model_dump(), handle, ensure_ascii=True, indent=2)


def build_extraction_instruction() -> str:
    rules = "\n".join(f"{index}. {rule}" for index, rule in enumerate(EXTRACTION_RULES, start=1))
    return (
        "Analyze this invoice image and extract the key information.\n"
        "Follow these rules:\n"
        f"{rules}"
    )


def output_json_schema() -> dict[str, Any]:
    return InvoiceData.model_json_schema(by_alias=True)


def _nullable(node: dict[str, Any]) -> dict[str, Any]:
    null_type = {"type": "null"}
    if "anyOf" in node:
        if null_type not in node["anyOf"]:
            node = {**node, "anyOf": [*node["anyOf"], null_type]}
        return node
    node_type = node.get("type")
    if isinstance(node_type, str):
        return {**node, "type": [node_type, "null"]}
    return node


def _strict_node(node: Any) -> Any:
    if isinstance(node, list):
        return [_strict_node(item) for item in node]
    if not isinstance(node, dict):
        return node

    strict: dict[str, Any] = {}
    for key, value in node.items():
        if key in ("title", "default"):
            continue
        if key in ("properties", "$defs"):
            strict[key] = {name: _strict_node(child) for name, child in value.items()}
        else:
            strict[key] = _strict_node(value)

    properties = strict.get("properties")
    if isinstance(properties, dict):
        required = set(strict.get("required", []))
        for name in properties:
            if name not in required:
                properties[name] = _nullable(properties[name])
        strict["required"] = list(properties)
        strict["additionalProperties"] = False
    return strict


def strict_output_json_schema() -> dict[str, Any]:
    """
    Output shape in the form OpenAI's strict structured outputs accept.

    Every property is listed as required; optional ones (dueDate, taxAmount,
    notes) become nullable instead. Null values are normalised again by the
    `InvoiceData` validators.
    """
    return _strict_node(output_json_schema())


def build_response_format() -> dict[str, Any]:
    return {
        "type": "json_schema",
        "json_schema": {
            "name": OUTPUT_SCHEMA_NAME,
            "schema": strict_output_json_schema(),
            "strict": True,
        },
    }


def is_supported_model(model_name: str) -> bool:
    return model_name in EXTRACTION_MODELS


def model_label(model_name: str) -> str:
    return EXTRACTION_MODELS.get(model_name, model_name)
