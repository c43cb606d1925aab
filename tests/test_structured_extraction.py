import json

import pytest
from openai import OpenAIError

from conftest import FakeOpenAI, make_payload
from invoice_digitizer.structured_extraction import (
    ExtractionParseError,
    ExtractionTransportError,
    MissingApiKeyError,
    StructuredExtractionError,
    digitize_invoice,
)


@pytest.mark.parametrize("api_key", ["", "   "])
def test_missing_api_key_fails_before_any_call(image_file, api_key):
    client = FakeOpenAI(content=json.dumps(make_payload()))

    with pytest.raises(MissingApiKeyError):
        digitize_invoice(image_file, api_key, "gpt-4o", client=client)

    assert client.completions.calls == []


def test_successful_extraction_makes_one_structured_call(image_file):
    client = FakeOpenAI(content=json.dumps(make_payload()))

    invoice = digitize_invoice(image_file, "sk-test", "gpt-4o-mini", client=client)

    assert invoice.invoice_number == "INV-1001"
    assert len(client.completions.calls) == 1
    call = client.completions.calls[0]
    assert call["model"] == "gpt-4o-mini"
    assert call["temperature"] == 0
    assert call["response_format"]["type"] == "json_schema"
    assert call["messages"][1]["content"][1]["type"] == "image_url"


def test_transport_error_message_is_surfaced_verbatim(image_file):
    client = FakeOpenAI(error=OpenAIError("Rate limit reached for gpt-4o"))

    with pytest.raises(ExtractionTransportError) as excinfo:
        digitize_invoice(image_file, "sk-test", "gpt-4o", client=client)

    assert str(excinfo.value) == "Rate limit reached for gpt-4o"
    assert isinstance(excinfo.value.__cause__, OpenAIError)


def test_refusal_is_reported_as_model_error(image_file):
    client = FakeOpenAI(content=None, refusal="I can't help with that.")

    with pytest.raises(ExtractionTransportError, match="can't help"):
        digitize_invoice(image_file, "sk-test", "gpt-4o", client=client)


@pytest.mark.parametrize(
    "content",
    [
        "this is not json",
        "",
        None,
        json.dumps({"vendorName": "Acme", "totalAmount": "a lot"}),
    ],
)
def test_unexpected_format_raises_parse_error_with_raw_text(image_file, content):
    client = FakeOpenAI(content=content)

    with pytest.raises(ExtractionParseError) as excinfo:
        digitize_invoice(image_file, "sk-test", "gpt-4o", client=client)

    assert excinfo.value.raw_text == (content or "").strip()
    assert excinfo.value.code == "unexpected_format"


def test_error_taxonomy_shares_a_base_class():
    for error_type in (MissingApiKeyError, ExtractionTransportError, ExtractionParseError):
        assert issubclass(error_type, StructuredExtractionError)
    assert len({MissingApiKeyError.code, ExtractionTransportError.code, ExtractionParseError.code}) == 3
