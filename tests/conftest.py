from types import SimpleNamespace
from typing import Any

import pytest

from invoice_digitizer.extraction_request import ImageFile

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


def make_payload(**overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "vendorName": "Acme Supplies Sdn Bhd",
        "invoiceNumber": "INV-1001",
        "invoiceDate": "2024-03-01",
        "dueDate": "2024-03-31",
        "totalAmount": 21.5,
        "taxAmount": 1.5,
        "currency": "MYR",
        "lineItems": [
            {"description": "Widget", "quantity": 2, "unitPrice": 10, "amount": 20},
        ],
    }
    payload.update(overrides)
    return payload


class FakeCompletions:
    def __init__(self, content: str | None = None, error: Exception | None = None, refusal: str | None = None):
        self.content = content
        self.error = error
        self.refusal = refusal
        self.calls: list[dict[str, Any]] = []

    def create(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.content, refusal=self.refusal)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeOpenAI:
    def __init__(self, **kwargs: Any):
        self.completions = FakeCompletions(**kwargs)
        self.chat = SimpleNamespace(completions=self.completions)


@pytest.fixture(autouse=True)
def isolated_prompt_config(tmp_path, monkeypatch):
    path = tmp_path / "invoice_extraction_prompt.json"
    monkeypatch.setattr("invoice_digitizer.invoice_prompt_config.PROMPT_CONFIG_PATH", path)
    return path


@pytest.fixture
def image_file() -> ImageFile:
    return ImageFile(name="invoice.png", content=PNG_BYTES, content_type="image/png")


@pytest.fixture
def settings_path(tmp_path):
    return tmp_path / "local_settings.json"
