from __future__ import annotations

import os
from typing import Any

from .base import ProviderError, UpstreamStream, require_api_key, response_json, send_request

_PROVIDER = "gemini"


def _model_url(method: str) -> str:
    base_url = os.getenv(
        "GEMINI_API_BASE_URL", "https://generativelanguage.googleapis.com/v1beta"
    ).rstrip("/")
    model = (os.getenv("MEDASSIST_VISION_MODEL") or "gemini-1.5-flash-latest").strip()
    if not model.startswith("models/"):
        model = f"models/{model}"
    return f"{base_url}/{model}:{method}"


def text_part(text: str) -> dict[str, Any]:
    return {"text": text}


def inline_image_part(base64_data: str, mime_type: str = "image/jpeg") -> dict[str, Any]:
    return {"inline_data": {"mime_type": mime_type, "data": base64_data}}


def user_turn(*parts: dict[str, Any]) -> dict[str, Any]:
    return {"role": "user", "parts": list(parts)}


def model_turn(*parts: dict[str, Any]) -> dict[str, Any]:
    return {"role": "model", "parts": list(parts)}


def coerce_candidate_text(payload: Any) -> str:
    if not isinstance(payload, dict):
        return ""
    candidates = payload.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        return ""
    content = candidates[0].get("content") if isinstance(candidates[0], dict) else None
    if not isinstance(content, dict):
        return ""
    parts = content.get("parts")
    if not isinstance(parts, list):
        return ""
    return "".join(
        str(part.get("text"))
        for part in parts
        if isinstance(part, dict) and isinstance(part.get("text"), str)
    )


def _request_kwargs(contents: list[dict[str, Any]], generation_config: dict[str, Any] | None) -> dict[str, Any]:
    api_key = require_api_key(_PROVIDER, "GOOGLE_API_KEY")
    body: dict[str, Any] = {"contents": contents}
    if generation_config:
        body["generationConfig"] = generation_config
    return {
        "headers": {"Content-Type": "application/json", "x-goog-api-key": api_key},
        "json": body,
    }


def generate_content(
    contents: list[dict[str, Any]],
    *,
    generation_config: dict[str, Any] | None = None,
) -> str:
    kwargs = _request_kwargs(contents, generation_config)
    response = send_request(_PROVIDER, "POST", _model_url("generateContent"), **kwargs)
    payload = response_json(_PROVIDER, response)
    text = coerce_candidate_text(payload)
    if not text.strip():
        raise ProviderError(_PROVIDER, "model returned no text")
    return text


def open_content_stream(
    contents: list[dict[str, Any]],
    *,
    generation_config: dict[str, Any] | None = None,
) -> UpstreamStream:
    kwargs = _request_kwargs(contents, generation_config)
    return UpstreamStream(
        _PROVIDER,
        "POST",
        _model_url("streamGenerateContent"),
        extract=coerce_candidate_text,
        params={"alt": "sse"},
        **kwargs,
    )
