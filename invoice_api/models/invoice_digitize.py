from typing import Any

from pydantic import BaseModel, Field


class InvoiceDigitizeResponse(BaseModel):
    request_id: str = Field(..., description="Correlation id for tracing/logs.")
    status: str = Field(default="ok")
    # Wire format of `InvoiceData` (camelCase keys).
    invoice: dict[str, Any]
    warnings: list[str] = []
    note: str | None = None
    model_version: str
