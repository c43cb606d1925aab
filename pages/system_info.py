import os
from datetime import datetime
from pathlib import Path

import streamlit as st

from invoice_digitizer.app_paths import DATA_DIR, LOCAL_SETTINGS_PATH, PROMPT_CONFIG_PATH
from invoice_digitizer.logging_config import logger

app_settings = st.session_state.get("app_settings", {})
app_version = app_settings.get("version", "unknown")

st.title("🔧 System Information")

st.write(f"**App Version:** {app_version}")
st.write(f"**Current Time:** {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
st.write(f"**Working Directory:** {os.getcwd()}")
st.write(f"**OPENAI_API_KEY in environment:** {'OPENAI_API_KEY' in os.environ}")

pages_dir = Path(__file__).resolve().parents[1] / "pages"

st.write("**Paths:**")
for path in [DATA_DIR, LOCAL_SETTINGS_PATH, PROMPT_CONFIG_PATH, pages_dir]:
    if os.path.exists(path):
        st.write(f"✅ {path}")
    else:
        st.write(f"❌ {path}")

logger.debug("Session state keys: %s", sorted(st.session_state.keys()))
st.caption("Session state keys logged to terminal.")
