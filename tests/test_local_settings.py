import json

import pytest

from invoice_digitizer.invoice_prompt_config import DEFAULT_EXTRACTION_MODEL
from invoice_digitizer.local_settings import (
    API_KEY_STORAGE_KEY,
    MODEL_STORAGE_KEY,
    DigitizerSettings,
    load_settings,
    save_api_key,
    save_model,
)


def test_missing_file_yields_defaults(settings_path):
    assert load_settings(settings_path) == DigitizerSettings()
    assert not load_settings(settings_path).has_api_key


def test_round_trip_uses_fixed_storage_keys(settings_path):
    save_api_key("  sk-test  ", settings_path)
    save_model("gpt-4o-mini", settings_path)

    stored = json.loads(settings_path.read_text(encoding="utf-8"))
    assert stored == {API_KEY_STORAGE_KEY: "sk-test", MODEL_STORAGE_KEY: "gpt-4o-mini"}
    assert load_settings(settings_path) == DigitizerSettings(api_key="sk-test", model_name="gpt-4o-mini")


def test_unknown_stored_model_falls_back_to_default(settings_path):
    settings_path.write_text(json.dumps({MODEL_STORAGE_KEY: "gemini-2.5-pro"}), encoding="utf-8")

    assert load_settings(settings_path).model_name == DEFAULT_EXTRACTION_MODEL


@pytest.mark.parametrize("content", ["{broken", "[1, 2, 3]"])
def test_unreadable_file_yields_defaults(settings_path, content):
    settings_path.write_text(content, encoding="utf-8")

    assert load_settings(settings_path) == DigitizerSettings()


def test_save_model_rejects_models_outside_catalog(settings_path):
    with pytest.raises(ValueError):
        save_model("gpt-2", settings_path)
    assert not settings_path.exists()
