"""
Digitizer view state as an explicit tagged union.

    Idle -> Ready -> Processing -> Settled

`Settled` carries exactly one outcome: either an `InvoiceReview` (with its
optional discrepancy warning) or an `ExtractionFailed` error message, so a
result and an error can never be shown at the same time.
"""

from __future__ import annotations

import tempfile
import weakref
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Callable, Union

from invoice_digitizer.app_paths import PREVIEW_FILE_PREFIX
from invoice_digitizer.extraction_request import ImageFile
from invoice_digitizer.invoice_schema import InvoiceData
from invoice_digitizer.invoice_validation import DocumentRejected, InvoiceReview, review_invoice
from invoice_digitizer.local_settings import DigitizerSettings
from invoice_digitizer.logging_config import logger
from invoice_digitizer.structured_extraction import StructuredExtractionError, digitize_invoice

NO_FILE_MESSAGE = "Please upload an invoice image first."
NO_API_KEY_MESSAGE = "Please enter your OpenAI API key before digitizing."
UNKNOWN_ERROR_MESSAGE = "An unknown error occurred during digitization."

Extractor = Callable[[ImageFile, str, str], InvoiceData]


class DigitizerStateError(RuntimeError):
    pass


@dataclass(frozen=True)
class ExtractionFailed:
    message: str


Outcome = Union[InvoiceReview, ExtractionFailed]


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Ready:
    image: ImageFile


@dataclass(frozen=True)
class Processing:
    image: ImageFile
    model_name: str


@dataclass(frozen=True)
class Settled:
    image: ImageFile | None
    outcome: Outcome


DigitizerState = Union[Idle, Ready, Processing, Settled]


def select_file(state: DigitizerState, image: ImageFile) -> Ready:
    if isinstance(state, Processing):
        raise DigitizerStateError("Cannot select a new file while an extraction is running.")
    return Ready(image=image)


def begin_extraction(
    state: DigitizerState,
    settings: DigitizerSettings,
) -> Processing | Settled:
    if isinstance(state, Processing):
        raise DigitizerStateError("An extraction is already running.")
    image = getattr(state, "image", None)
    if image is None:
        return Settled(image=None, outcome=ExtractionFailed(NO_FILE_MESSAGE))
    if not settings.has_api_key:
        return Settled(image=image, outcome=ExtractionFailed(NO_API_KEY_MESSAGE))
    return Processing(image=image, model_name=settings.model_name)


def settle(state: DigitizerState, outcome: Outcome) -> Settled:
    if not isinstance(state, Processing):
        raise DigitizerStateError(f"Cannot settle from {type(state).__name__}.")
    return Settled(image=state.image, outcome=outcome)


def reset(state: DigitizerState) -> Idle:
    return Idle()


def outcome_from_review(review: InvoiceReview | DocumentRejected) -> Outcome:
    if isinstance(review, DocumentRejected):
        return ExtractionFailed(review.reason)
    return review


class DigitizerSession:
    """Mutable holder for one user's digitizer view.

    Settings are injected and may be replaced with `update_settings`; the
    extractor defaults to the OpenAI client but any callable with the same
    signature works.
    """

    def __init__(
        self,
        settings: DigitizerSettings,
        extractor: Extractor | None = None,
    ) -> None:
        self.settings = settings
        self._extractor = extractor or digitize_invoice
        self.state: DigitizerState = Idle()
        self._preview_path: Path | None = None
        self._preview_finalizer: weakref.finalize | None = None
        self._upload_token: str | None = None

    def update_settings(self, **changes: str) -> None:
        self.settings = replace(self.settings, **changes)

    @property
    def image(self) -> ImageFile | None:
        return getattr(self.state, "image", None)

    @property
    def preview_path(self) -> Path | None:
        return self._preview_path

    @property
    def is_processing(self) -> bool:
        return isinstance(self.state, Processing)

    @property
    def can_digitize(self) -> bool:
        return self.image is not None and self.settings.has_api_key and not self.is_processing

    @property
    def result(self) -> InvoiceReview | None:
        if isinstance(self.state, Settled) and isinstance(self.state.outcome, InvoiceReview):
            return self.state.outcome
        return None

    @property
    def error(self) -> str | None:
        if isinstance(self.state, Settled) and isinstance(self.state.outcome, ExtractionFailed):
            return self.state.outcome.message
        return None

    @property
    def warning(self) -> str | None:
        return self.result.warning if self.result else None

    @property
    def note(self) -> str | None:
        return self.result.note if self.result else None

    def select_file(self, image: ImageFile) -> None:
        self.state = select_file(self.state, image)
        self._replace_preview(image)

    def sync_upload(self, token: str | None, load_image: Callable[[], ImageFile]) -> bool:
        """
        Align the session with an upload widget.

        `token` identifies the widget's current file, or is None when the
        widget is empty. A new token selects the file; a cleared widget resets
        the session. Returns True when the session changed.
        """
        if token == self._upload_token:
            return False
        if token is None:
            self.reset()
            return True
        self.select_file(load_image())
        self._upload_token = token
        return True

    def digitize(self) -> DigitizerState:
        self.state = begin_extraction(self.state, self.settings)
        if not isinstance(self.state, Processing):
            logger.info("Digitize rejected locally: %s", self.error)
            return self.state

        processing = self.state
        try:
            invoice = self._extractor(
                processing.image,
                self.settings.api_key,
                processing.model_name,
            )
        except StructuredExtractionError as exc:
            outcome: Outcome = ExtractionFailed(str(exc))
        except Exception:  # noqa: BLE001
            logger.exception("Digitization failed unexpectedly filename=%s", processing.image.name)
            outcome = ExtractionFailed(UNKNOWN_ERROR_MESSAGE)
        else:
            outcome = outcome_from_review(review_invoice(invoice))

        self.state = settle(processing, outcome)
        return self.state

    def reset(self) -> None:
        self.state = reset(self.state)
        self._upload_token = None
        self._release_preview()

    def _replace_preview(self, image: ImageFile) -> None:
        self._release_preview()
        suffix = Path(image.name).suffix or ".img"
        with tempfile.NamedTemporaryFile(
            prefix=PREVIEW_FILE_PREFIX, suffix=suffix, delete=False
        ) as tmp_file:
            tmp_file.write(image.content)
            self._preview_path = Path(tmp_file.name)
        # Also removed when the session is garbage collected (expired Streamlit session).
        self._preview_finalizer = weakref.finalize(self, _remove_preview, self._preview_path)

    def _release_preview(self) -> None:
        if self._preview_finalizer is not None:
            self._preview_finalizer()
            self._preview_finalizer = None
        self._preview_path = None


def _remove_preview(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        logger.warning("Could not remove preview path=%s error=%s", path, exc)
