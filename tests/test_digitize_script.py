import json

from conftest import PNG_BYTES, make_payload
from invoice_digitizer.invoice_schema import InvoiceData
from invoice_digitizer.local_settings import DigitizerSettings
from invoice_digitizer.structured_extraction import MissingApiKeyError
from scripts import digitize_invoice as script


def _patch(monkeypatch, result=None, error=None):
    calls = []

    def fake(image, api_key, model_name):
        calls.append((image.name, api_key, model_name))
        if error is not None:
            raise error
        return result

    monkeypatch.setattr(script, "digitize_invoice", fake)
    monkeypatch.setattr(script, "load_settings", lambda: DigitizerSettings(api_key="sk-test"))
    return calls


def test_prints_json_and_writes_output(tmp_path, monkeypatch, capsys):
    image_path = tmp_path / "invoice.png"
    image_path.write_bytes(PNG_BYTES)
    output_path = tmp_path / "out" / "invoice.json"
    calls = _patch(monkeypatch, result=InvoiceData.model_validate(make_payload()))

    exit_code = script.main([str(image_path), "--model", "gpt-4o-mini", "--output", str(output_path)])

    assert exit_code == script.EXIT_OK
    assert calls == [("invoice.png", "sk-test", "gpt-4o-mini")]
    assert json.loads(output_path.read_text(encoding="utf-8"))["invoiceNumber"] == "INV-1001"
    assert "Warning" not in capsys.readouterr().out


def test_rejected_document_exits_with_code_two(tmp_path, monkeypatch):
    image_path = tmp_path / "cat.png"
    image_path.write_bytes(PNG_BYTES)
    sentinel = InvoiceData.model_validate(
        make_payload(vendorName="Invalid Document", totalAmount=0, lineItems=[])
    )
    _patch(monkeypatch, result=sentinel)

    assert script.main([str(image_path)]) == script.EXIT_REJECTED


def test_extraction_error_exits_with_code_one(tmp_path, monkeypatch, capsys):
    image_path = tmp_path / "invoice.png"
    image_path.write_bytes(PNG_BYTES)
    _patch(monkeypatch, error=MissingApiKeyError())

    assert script.main([str(image_path)]) == script.EXIT_ERROR
    assert "API key is not set" in capsys.readouterr().err


def test_missing_image_exits_with_code_one(tmp_path):
    assert script.main([str(tmp_path / "nope.png")]) == script.EXIT_ERROR
