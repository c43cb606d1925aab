import os

import pandas as pd
import streamlit as st

from invoice_digitizer.digitizer_state import DigitizerSession
from invoice_digitizer.extraction_request import ImageFile
from invoice_digitizer.invoice_prompt_config import (
    DEFAULT_SYSTEM_PROMPT,
    EXTRACTION_MODELS,
    load_prompt_config,
    model_label,
    save_prompt_config,
)
from invoice_digitizer.invoice_schema import InvoiceData
from invoice_digitizer.invoice_validation import format_currency, safe_currency_code
from invoice_digitizer.local_settings import (
    DigitizerSettings,
    load_settings,
    save_api_key,
    save_model,
)
from invoice_digitizer.logging_config import logger

SESSION_KEY = "invoice_digitizer_session"
UPLOADER_RESET_KEY = "invoice_uploader_reset"


def _secrets_api_key() -> str:
    try:
        return str(st.secrets.get("OPENAI_API_KEY", "") or "")
    except Exception:  # noqa: BLE001
        return ""


def _initial_settings() -> DigitizerSettings:
    stored = load_settings()
    if stored.has_api_key:
        return stored
    fallback_key = os.getenv("OPENAI_API_KEY", "").strip() or _secrets_api_key().strip()
    return DigitizerSettings(api_key=fallback_key, model_name=stored.model_name)


def _get_session() -> DigitizerSession:
    session = st.session_state.get(SESSION_KEY)
    if session is None:
        session = DigitizerSession(settings=_initial_settings())
        st.session_state[SESSION_KEY] = session
    return session


def _upload_token(uploaded_file) -> str:  # type: ignore[no-untyped-def]
    file_id = getattr(uploaded_file, "file_id", None)
    if file_id:
        return str(file_id)
    return f"{uploaded_file.name}:{uploaded_file.size}"


def _image_from_upload(uploaded_file) -> ImageFile:  # type: ignore[no-untyped-def]
    return ImageFile(
        name=uploaded_file.name,
        content=uploaded_file.getvalue(),
        content_type=uploaded_file.type or "",
    )


def _line_items_df(invoice: InvoiceData) -> pd.DataFrame:
    currency = safe_currency_code(invoice.currency)
    rows = [
        {
            "Description": item.description,
            "Qty": item.quantity,
            "Unit Price": format_currency(item.unit_price, currency),
            "Amount": format_currency(item.amount, currency),
        }
        for item in invoice.line_items
    ]
    return pd.DataFrame(rows, columns=["Description", "Qty", "Unit Price", "Amount"])


def _render_api_key_manager(session: DigitizerSession) -> None:
    editing = st.session_state.get("api_key_editing", False)
    if session.settings.has_api_key and not editing:
        status_col, edit_col = st.columns([3, 1], vertical_alignment="center")
        status_col.success("API Key is set")
        if edit_col.button("Edit"):
            st.session_state["api_key_editing"] = True
            st.rerun()
        return

    new_key = st.text_input(
        "OpenAI API Key",
        value=session.settings.api_key,
        type="password",
        placeholder="Enter your OpenAI API Key",
    )
    if st.button("Save Key", disabled=not new_key.strip()):
        save_api_key(new_key)
        session.update_settings(api_key=new_key.strip())
        st.session_state["api_key_editing"] = False
        st.toast("Saved!")
        st.rerun()


def _render_result(session: DigitizerSession) -> None:
    if session.error:
        st.error(f"**An Error Occurred**\n\n{session.error}")
        return

    review = session.result
    if review is None:
        st.info(
            "Upload an invoice and the extracted information will be displayed here, "
            "ready for your database."
        )
        return

    invoice = review.invoice
    if review.note:
        st.info(f"**AI Note from Invoice Analysis**\n\n{review.note}")
    if review.warning:
        st.warning(f"**Digitization Validation Warning**\n\n{review.warning}")

    st.subheader(invoice.vendor_name)
    number_col, date_col, due_col = st.columns(3)
    number_col.metric("Invoice #", invoice.invoice_number)
    date_col.metric("Invoice Date", invoice.invoice_date)
    due_col.metric("Due Date", invoice.due_date or "N/A")

    st.markdown("#### Line Items")
    st.dataframe(_line_items_df(invoice), hide_index=True, width="stretch")

    tax_col, total_col = st.columns(2)
    if invoice.tax_amount > 0:
        tax_col.metric("Tax", format_currency(invoice.tax_amount, invoice.currency))
    total_col.metric("Total Amount", format_currency(invoice.total_amount, invoice.currency))

    with st.expander("JSON", expanded=False):
        st.json(invoice.to_wire())


session = _get_session()
if UPLOADER_RESET_KEY not in st.session_state:
    st.session_state[UPLOADER_RESET_KEY] = 0

st.title("🧾 AI Invoice Digitizer")
st.caption("Instantly extract invoice data with OpenAI.")

with st.sidebar:
    model_names = list(EXTRACTION_MODELS)
    selected_model = st.selectbox(
        "AI Model",
        model_names,
        index=model_names.index(session.settings.model_name),
        format_func=model_label,
    )
    if selected_model != session.settings.model_name:
        save_model(selected_model)
        session.update_settings(model_name=selected_model)
        logger.info("Extraction model changed model=%s", selected_model)

    _render_api_key_manager(session)

    prompt_config = st.session_state.get("invoice_prompt_config") or load_prompt_config()
    st.session_state["invoice_prompt_config"] = prompt_config
    with st.expander("🧠 Prompt configuration", expanded=False):
        system_prompt_input = st.text_area(
            "System prompt",
            value=prompt_config.get("system_prompt", DEFAULT_SYSTEM_PROMPT),
            height=160,
        )
        if st.button("Save prompt"):
            new_config = {"system_prompt": system_prompt_input.strip() or DEFAULT_SYSTEM_PROMPT}
            save_prompt_config(new_config)
            st.session_state["invoice_prompt_config"] = new_config
            st.success("Prompt configuration saved.")
        if st.button("Reset prompt"):
            default_config = {"system_prompt": DEFAULT_SYSTEM_PROMPT}
            save_prompt_config(default_config)
            st.session_state["invoice_prompt_config"] = default_config
            st.success("Defaults saved. Reload the page if needed.")

upload_col, result_col = st.columns(2)

with upload_col:
    uploaded_file = st.file_uploader(
        "Invoice image",
        type=["png", "jpg", "jpeg", "webp"],
        help="PNG, JPG, or WEBP",
        disabled=session.is_processing,
        key=f"invoice_uploader_{st.session_state[UPLOADER_RESET_KEY]}",
    )
    upload_token = _upload_token(uploaded_file) if uploaded_file is not None else None
    if session.sync_upload(upload_token, lambda: _image_from_upload(uploaded_file)):
        if uploaded_file is None:
            logger.info("Invoice image removed from uploader")
        else:
            logger.info("Invoice image selected filename=%s bytes=%s", uploaded_file.name, uploaded_file.size)

    if session.preview_path is not None:
        st.image(str(session.preview_path), caption="Invoice preview", width="stretch")

    digitize_col, clear_col = st.columns(2)
    digitize_clicked = digitize_col.button(
        "Digitize Invoice",
        type="primary",
        disabled=not session.can_digitize,
        help=None if session.settings.has_api_key else "Please save your API key first",
        width="stretch",
    )
    if session.image is not None and clear_col.button("Clear", width="stretch"):
        session.reset()
        st.session_state[UPLOADER_RESET_KEY] += 1
        st.rerun()

with result_col:
    if digitize_clicked:
        with st.spinner("Digitizing invoice... This might take a moment."):
            session.digitize()
    _render_result(session)
