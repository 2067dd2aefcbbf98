from __future__ import annotations

import base64

import pytest

from medassist_core.images import (
    ImagePayloadError,
    data_url_mime_type,
    decode_image_payload,
    strip_data_url_prefix,
    to_data_url,
)


def test_data_url_payload_decodes_to_original_length(png_bytes):
    data_url = to_data_url(png_bytes, "image/png")
    assert data_url.startswith("data:image/png;base64,")
    stripped = strip_data_url_prefix(data_url)
    assert not stripped.startswith("data:")
    assert len(base64.b64decode(stripped)) == len(png_bytes)
    assert decode_image_payload(data_url) == png_bytes


def test_mime_type_comes_from_data_url_prefix():
    assert data_url_mime_type("data:image/webp;base64,AAAA") == "image/webp"
    assert data_url_mime_type("AAAA") == "image/jpeg"
    assert data_url_mime_type("AAAA", default="image/png") == "image/png"


def test_decode_tolerates_line_wrapped_base64(png_bytes):
    encoded = base64.encodebytes(png_bytes).decode("ascii")
    assert "\n" in encoded
    assert decode_image_payload(encoded) == png_bytes


@pytest.mark.parametrize("payload", ["", "data:image/png;base64,", "***"])
def test_decode_rejects_empty_or_invalid_payloads(payload):
    with pytest.raises(ImagePayloadError):
        decode_image_payload(payload)


def test_decode_enforces_size_limit():
    payload = base64.b64encode(b"x" * 2048).decode("ascii")
    with pytest.raises(ImagePayloadError):
        decode_image_payload(payload, max_bytes=1024)
    assert len(decode_image_payload(payload, max_bytes=4096)) == 2048
