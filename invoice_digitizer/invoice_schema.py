from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

INVALID_DOCUMENT_VENDOR = "Invalid Document"


class LineItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    description: str = Field(
        description="Description of the item or service.",
    )
    quantity: float = Field(
        description="The quantity of the item.",
    )
    unit_price: float = Field(
        alias="unitPrice",
        description="The price per unit of the item.",
    )
    amount: float = Field(
        description="The total amount for the line item (quantity * unitPrice).",
    )


class InvoiceData(BaseModel):
    """Structured invoice as returned by the extraction model.

    Attribute names are snake_case; the wire format (and the JSON schema sent
    to the model) uses the camelCase aliases.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    vendor_name: str = Field(
        alias="vendorName",
        description="The name of the company that issued the invoice.",
    )
    invoice_number: str = Field(
        alias="invoiceNumber",
        description="The unique identifier for the invoice.",
    )
    invoice_date: str = Field(
        alias="invoiceDate",
        description="The date the invoice was issued (YYYY-MM-DD).",
    )
    due_date: str | None = Field(
        default=None,
        alias="dueDate",
        description="The date the payment is due (YYYY-MM-DD). Omit if not present.",
    )
    total_amount: float = Field(
        alias="totalAmount",
        description="The total amount due, including taxes.",
    )
    tax_amount: float = Field(
        default=0.0,
        alias="taxAmount",
        description="The total amount of tax. 0 if no tax is shown.",
    )
    currency: str = Field(
        description="The 3-letter ISO 4217 currency code for the amounts (e.g., USD, EUR, MYR).",
    )
    line_items: list[LineItem] = Field(
        alias="lineItems",
        description="A list of all items or services being billed.",
    )
    notes: str | None = Field(
        default=None,
        description=(
            "Explanation of discrepancies found while cross-checking the totals, "
            "or why the image is not a valid invoice."
        ),
    )

    @field_validator("due_date", "notes", mode="before")
    @classmethod
    def _empty_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("tax_amount", mode="before")
    @classmethod
    def _missing_tax_is_zero(cls, value: Any) -> Any:
        if value is None:
            return 0.0
        return value

    @property
    def is_invalid_document(self) -> bool:
        return self.vendor_name.strip() == INVALID_DOCUMENT_VENDOR

    @property
    def line_items_total(self) -> float:
        return sum(item.amount for item in self.line_items)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


def invoice_field_names() -> list[str]:
    return [field.alias or name for name, field in InvoiceData.model_fields.items()]
