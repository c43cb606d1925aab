from pathlib import Path

# Single source of truth for data locations.
DATA_DIR = Path("data")
LOCAL_SETTINGS_PATH = DATA_DIR / "local_settings.json"
PROMPT_CONFIG_PATH = DATA_DIR / "invoice_extraction_prompt.json"
PREVIEW_FILE_PREFIX = "invoice-preview-"
