#!/usr/bin/env python3
import argparse
import json
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from invoice_digitizer.extraction_request import ImageFile
from invoice_digitizer.invoice_prompt_config import EXTRACTION_MODELS
from invoice_digitizer.invoice_validation import DocumentRejected, review_invoice
from invoice_digitizer.local_settings import load_settings
from invoice_digitizer.structured_extraction import StructuredExtractionError, digitize_invoice

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_REJECTED = 2


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Digitize one invoice image and print the extracted JSON.")
    parser.add_argument("image", help="Path to a PNG, JPEG or WEBP invoice image")
    parser.add_argument(
        "--model",
        choices=sorted(EXTRACTION_MODELS),
        default=None,
        help="Extraction model (defaults to the stored preference)",
    )
    parser.add_argument("--output", default=None, help="Optional path to write the invoice JSON")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    args = parse_args(argv)

    image_path = Path(args.image)
    if not image_path.is_file():
        print(f"Image not found: {image_path}", file=sys.stderr)
        return EXIT_ERROR

    settings = load_settings()
    api_key = settings.api_key or os.getenv("OPENAI_API_KEY", "")
    model_name = args.model or settings.model_name
    image = ImageFile(name=image_path.name, content=image_path.read_bytes())

    try:
        invoice = digitize_invoice(image, api_key, model_name)
    except StructuredExtractionError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_ERROR

    review = review_invoice(invoice)
    if isinstance(review, DocumentRejected):
        print(f"Rejected: {review.reason}", file=sys.stderr)
        return EXIT_REJECTED

    if review.note:
        print(f"AI note: {review.note}")
    if review.warning:
        print(f"Warning: {review.warning}")

    payload = json.dumps(review.invoice.to_wire(), indent=2, ensure_ascii=False)
    print(payload)
    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(payload, encoding="utf-8")
        print(f"Wrote JSON: {output_path}")
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
