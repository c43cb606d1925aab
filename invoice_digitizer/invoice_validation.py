"""
Client-side checks on an extracted invoice.

- `reconcile_totals` compares the stated total with line items plus tax
- `review_invoice` turns a parsed response into either a reviewable invoice
  or a rejected document
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from invoice_digitizer.invoice_schema import InvoiceData

TOLERANCE = 0.01
DEFAULT_CURRENCY_CODE = "MYR"
INVALID_DOCUMENT_MESSAGE = (
    "The uploaded image does not appear to be a valid invoice. Please try another image."
)

_CURRENCY_CODE_PATTERN = re.compile(r"[A-Za-z]{3}")


@dataclass(frozen=True)
class InvoiceReview:
    invoice: InvoiceData
    warning: str | None = None
    note: str | None = None


@dataclass(frozen=True)
class DocumentRejected:
    reason: str


def safe_currency_code(code: str | None) -> str:
    if code and _CURRENCY_CODE_PATTERN.fullmatch(code):
        return code.upper()
    return DEFAULT_CURRENCY_CODE


def format_currency(amount: float, code: str | None) -> str:
    return f"{safe_currency_code(code)} {amount:,.2f}"


def computed_total(invoice: InvoiceData) -> float:
    return invoice.line_items_total + invoice.tax_amount


def reconcile_totals(invoice: InvoiceData, tolerance: float = TOLERANCE) -> str | None:
    """
    Return a discrepancy warning when line items plus tax miss the stated total.

    The check is advisory: a mismatch never rejects the invoice.
    """
    calculated = computed_total(invoice)
    if abs(calculated - invoice.total_amount) <= tolerance:
        return None
    return (
        "The sum of extracted line items plus tax "
        f"({format_currency(calculated, invoice.currency)}) does not match the invoice total "
        f"({format_currency(invoice.total_amount, invoice.currency)}). "
        "Please review the extracted data."
    )


def review_invoice(invoice: InvoiceData) -> InvoiceReview | DocumentRejected:
    if invoice.is_invalid_document:
        return DocumentRejected(reason=invoice.notes or INVALID_DOCUMENT_MESSAGE)
    return InvoiceReview(
        invoice=invoice,
        warning=reconcile_totals(invoice),
        note=invoice.notes,
    )
