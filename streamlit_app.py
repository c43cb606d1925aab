import os
from pathlib import Path

import streamlit as st
from dotenv import dotenv_values, load_dotenv

from invoice_digitizer.app_paths import DATA_DIR
from invoice_digitizer.logging_config import logger

BASE_DIR = Path(__file__).resolve().parent


def _load_environment() -> None:
    repo_env = BASE_DIR / ".env"
    if not repo_env.exists():
        return
    load_dotenv(dotenv_path=repo_env, override=True)
    # Ensure variables are available even if the process started without them.
    for key, value in dotenv_values(repo_env).items():
        if value is not None:
            os.environ.setdefault(key, value)


_load_environment()

# Configuration
st.set_page_config(
    page_title="AI Invoice Digitizer",
    page_icon="🧾",
    layout="wide",
)

FEATURE_PAGES = [
    {
        "id": "invoice_digitizer",
        "path": "pages/1_Invoice_Digitizer.py",
        "title": "Invoice Digitizer",
        "description": "Upload an invoice image and extract its line items",
        "icon": "🧾",
    },
    {
        "id": "api_digitize_test",
        "path": "pages/2_API_Digitize_Test.py",
        "title": "API Digitize Test",
        "description": "Send an invoice image to the HTTP API and inspect the JSON",
        "icon": "🧪",
    },
]

NAV_PAGES = [
    {
        "id": "home",
        "path": "pages/home.py",
        "title": "Home",
        "description": "Overview and quick actions",
        "icon": "🏠",
    },
    *FEATURE_PAGES,
    {
        "id": "system_info",
        "path": "pages/system_info.py",
        "title": "System Info",
        "description": "Environment diagnostics",
        "icon": "🔧",
    },
]


@st.cache_resource
def get_app_settings() -> dict:
    """Cache application settings."""
    pages_by_id = {
        page["id"]: {
            "title": page["title"],
            "description": page["description"],
            "path": page["path"],
            "icon": page["icon"],
        }
        for page in FEATURE_PAGES
    }
    return {
        "app_name": "AI Invoice Digitizer",
        "version": "1.0.0",
        "pages": pages_by_id,
        "pages_list": list(pages_by_id.values()),
    }


def _init_session_state() -> None:
    if "app_settings" not in st.session_state:
        st.session_state.app_settings = get_app_settings()


def _build_navigation_pages() -> list[st.Page]:
    return [
        st.Page(page["path"], title=page["title"], icon=page["icon"])
        for page in NAV_PAGES
    ]


def validate_environment() -> list[str]:
    """Validate that the application environment is properly set up."""
    issues: list[str] = []

    try:
        DATA_DIR.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        issues.append(f"Data directory not available: {DATA_DIR} ({exc})")

    for page_info in NAV_PAGES:
        page_path = BASE_DIR / page_info["path"]
        if not page_path.exists():
            issues.append(f"Missing page file: {page_info['path']}")

    if issues:
        for issue in issues:
            logger.warning("Environment issue: %s", issue)
    else:
        logger.info("Environment validation passed.")

    return issues


def main() -> None:
    """Main application function with Streamlit navigation."""
    _init_session_state()
    app_settings = st.session_state.app_settings

    logger.info("Starting app: %s v%s", app_settings["app_name"], app_settings["version"])

    issues = validate_environment()
    if issues:
        logger.error("Environment issues detected: %s", issues)
        st.error("⚠️ Environment Issues Detected. See terminal logs for details.")
        st.warning("Please ensure all required files and directories are present.")
        return

    nav = st.navigation(_build_navigation_pages(), position="sidebar", expanded=True)
    nav.run()


if __name__ == "__main__":
    main()
