from __future__ import annotations

import base64
import mimetypes
from dataclasses import dataclass, field
from typing import Any

from invoice_digitizer.invoice_prompt_config import (
    build_extraction_instruction,
    build_response_format,
    load_prompt_config,
)

DEFAULT_MEDIA_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class ImageFile:
    name: str
    content: bytes = field(repr=False)
    content_type: str = ""

    @property
    def media_type(self) -> str:
        if self.content_type:
            return self.content_type
        guessed, _ = mimetypes.guess_type(self.name)
        return guessed or DEFAULT_MEDIA_TYPE

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class EncodedImage:
    data: str = field(repr=False)
    media_type: str

    @property
    def data_url(self) -> str:
        return f"data:{self.media_type};base64,{self.data}"


@dataclass(frozen=True)
class ExtractionRequest:
    model_name: str
    system_prompt: str
    user_content: list[dict[str, Any]] = field(repr=False)
    response_format: dict[str, Any] = field(repr=False)

    def to_messages(self) -> list[dict[str, Any]]:
        return [
            {"role": "system", "content": self.system_prompt},
            {"role": "user", "content": self.user_content},
        ]


def encode_image(image: ImageFile) -> EncodedImage:
    return EncodedImage(
        data=base64.b64encode(image.content).decode("ascii"),
        media_type=image.media_type,
    )


def build_extraction_request(
    image: ImageFile,
    model_name: str,
    system_prompt: str | None = None,
) -> ExtractionRequest:
    """Pair the encoded image with the extraction instruction and output shape."""
    if system_prompt is None:
        system_prompt = load_prompt_config()["system_prompt"]
    encoded = encode_image(image)
    return ExtractionRequest(
        model_name=model_name,
        system_prompt=system_prompt.rstrip(),
        user_content=[
            {"type": "text", "text": build_extraction_instruction()},
            {"type": "image_url", "image_url": {"url": encoded.data_url}},
        ],
        response_format=build_response_format(),
    )
