import os
from dataclasses import dataclass

from dotenv import load_dotenv

from invoice_digitizer.invoice_prompt_config import DEFAULT_EXTRACTION_MODEL

load_dotenv()


@dataclass(frozen=True)
class Settings:
    api_name: str = os.getenv("API_NAME", "Invoice Digitizer API")
    api_version: str = os.getenv("API_VERSION", "1.0.0")
    api_bearer_token: str = os.getenv("API_BEARER_TOKEN", "").strip()
    max_image_bytes: int = int(os.getenv("API_MAX_IMAGE_BYTES", str(10 * 1024 * 1024)))
    openai_api_key: str = os.getenv("OPENAI_API_KEY", "").strip()
    default_model: str = os.getenv("OPENAI_INVOICE_MODEL", DEFAULT_EXTRACTION_MODEL).strip()


settings = Settings()
