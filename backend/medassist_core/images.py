from __future__ import annotations

import base64
import binascii
import re

_DATA_URL_RE = re.compile(r"^data:(image/[\w.+-]+);base64,", re.IGNORECASE)


class ImagePayloadError(ValueError):
    pass


def strip_data_url_prefix(payload: str) -> str:
    return _DATA_URL_RE.sub("", (payload or "").strip(), count=1)


def data_url_mime_type(payload: str, default: str = "image/jpeg") -> str:
    match = _DATA_URL_RE.match((payload or "").strip())
    return match.group(1).lower() if match else default


def decode_image_payload(payload: str, *, max_bytes: int | None = None) -> bytes:
    """Decode a base64 image string, with or without a data URL prefix."""
    data = re.sub(r"\s+", "", strip_data_url_prefix(payload))
    if not data:
        raise ImagePayloadError("No image data provided")
    try:
        raw = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ImagePayloadError("Image data is not valid base64") from exc
    if not raw:
        raise ImagePayloadError("No image data provided")
    if max_bytes is not None and len(raw) > max_bytes:
        raise ImagePayloadError(f"Image exceeds {max_bytes // (1024 * 1024)}MB limit")
    return raw


def encode_image_bytes(raw: bytes) -> str:
    return base64.b64encode(raw).decode("ascii")


def to_data_url(raw: bytes, mime_type: str = "image/jpeg") -> str:
    return f"data:{mime_type};base64,{encode_image_bytes(raw)}"
