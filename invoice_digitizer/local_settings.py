from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from invoice_digitizer.app_paths import LOCAL_SETTINGS_PATH
from invoice_digitizer.invoice_prompt_config import DEFAULT_EXTRACTION_MODEL, is_supported_model
from invoice_digitizer.logging_config import logger

API_KEY_STORAGE_KEY = "openai-api-key"
MODEL_STORAGE_KEY = "openai-model-selection"


@dataclass(frozen=True)
class DigitizerSettings:
    api_key: str = ""
    model_name: str = DEFAULT_EXTRACTION_MODEL

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key.strip())


def _read_store(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Local settings unreadable path=%s error=%s", path, exc)
        return {}
    return data if isinstance(data, dict) else {}


def _write_value(key: str, value: str, path: Path) -> None:
    data = _read_store(path)
    data[key] = value
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as handle:
        json.dump(data, handle, ensure_ascii=True, indent=2)


def load_settings(path: Path = LOCAL_SETTINGS_PATH) -> DigitizerSettings:
    data = _read_store(path)
    api_key = data.get(API_KEY_STORAGE_KEY)
    model_name = data.get(MODEL_STORAGE_KEY)
    if not isinstance(model_name, str) or not is_supported_model(model_name):
        model_name = DEFAULT_EXTRACTION_MODEL
    return DigitizerSettings(
        api_key=api_key if isinstance(api_key, str) else "",
        model_name=model_name,
    )


def save_api_key(api_key: str, path: Path = LOCAL_SETTINGS_PATH) -> None:
    _write_value(API_KEY_STORAGE_KEY, api_key.strip(), path)
    logger.info("Saved API key to local settings path=%s", path)


def save_model(model_name: str, path: Path = LOCAL_SETTINGS_PATH) -> None:
    if not is_supported_model(model_name):
        raise ValueError(f"Unsupported extraction model: {model_name}")
    _write_value(MODEL_STORAGE_KEY, model_name, path)
