import base64
import json

from invoice_digitizer.extraction_request import ImageFile, build_extraction_request, encode_image
from invoice_digitizer.invoice_prompt_config import (
    DEFAULT_SYSTEM_PROMPT,
    OUTPUT_SCHEMA_NAME,
    build_extraction_instruction,
    load_prompt_config,
    save_prompt_config,
)


def test_encode_image_returns_base64_and_media_type(image_file):
    encoded = encode_image(image_file)

    assert base64.b64decode(encoded.data) == image_file.content
    assert encoded.media_type == "image/png"
    assert encoded.data_url.startswith("data:image/png;base64,")


def test_media_type_is_guessed_from_file_name():
    image = ImageFile(name="scan.jpg", content=b"\xff\xd8\xff")

    assert image.media_type == "image/jpeg"


def test_instruction_lists_extraction_rules():
    instruction = build_extraction_instruction()

    assert "YYYY-MM-DD" in instruction
    assert "ISO 4217" in instruction
    assert "taxAmount to 0" in instruction
    assert "dueDate to null" in instruction
    assert "notes" in instruction
    assert '"Invalid Document"' in instruction


def test_request_pairs_image_instruction_and_schema(image_file):
    request = build_extraction_request(image_file, "gpt-4o-mini")

    messages = request.to_messages()
    assert messages[0] == {"role": "system", "content": DEFAULT_SYSTEM_PROMPT}
    text_part, image_part = messages[1]["content"]
    assert text_part["type"] == "text"
    assert image_part["image_url"]["url"] == encode_image(image_file).data_url
    assert request.model_name == "gpt-4o-mini"
    assert request.response_format["type"] == "json_schema"
    assert request.response_format["json_schema"]["name"] == OUTPUT_SCHEMA_NAME


def test_saved_prompt_config_overrides_system_prompt(image_file):
    save_prompt_config({"system_prompt": "Read invoices carefully.\n"})

    request = build_extraction_request(image_file, "gpt-4o")

    assert request.system_prompt == "Read invoices carefully."


def test_corrupt_prompt_config_falls_back_to_default(isolated_prompt_config):
    isolated_prompt_config.write_text("{not json", encoding="utf-8")

    assert load_prompt_config() == {"system_prompt": DEFAULT_SYSTEM_PROMPT}


def test_saved_prompt_config_is_plain_json(isolated_prompt_config):
    save_prompt_config({"system_prompt": ""})

    assert json.loads(isolated_prompt_config.read_text(encoding="utf-8")) == {
        "system_prompt": DEFAULT_SYSTEM_PROMPT
    }
