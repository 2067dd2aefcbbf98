from __future__ import annotations

import os
from typing import Any

from .base import (
    ProviderConfig,
    ProviderError,
    UpstreamStream,
    require_api_key,
    response_json,
    send_request,
)


def openai_provider() -> ProviderConfig:
    return ProviderConfig(
        provider="openai",
        base_url=os.getenv("OPENAI_API_BASE_URL", "https://api.openai.com/v1").rstrip("/"),
        api_key=require_api_key("openai", "OPENAI_API_KEY"),
        model=(os.getenv("MEDASSIST_OPENAI_MODEL") or "gpt-4o-mini").strip(),
    )


def perplexity_provider() -> ProviderConfig:
    return ProviderConfig(
        provider="perplexity",
        base_url=os.getenv("PPLX_BASE_URL", "https://api.perplexity.ai").rstrip("/"),
        api_key=require_api_key("perplexity", "PPLX_API_KEY"),
        model=(os.getenv("PPLX_MODEL") or "sonar").strip(),
    )


def _auth_headers(provider: ProviderConfig) -> dict[str, str]:
    return {
        "Authorization": f"Bearer {provider.api_key}",
        "Content-Type": "application/json",
    }


def coerce_completion_text(response_json: dict[str, Any]) -> str:
    choices = response_json.get("choices")
    if not isinstance(choices, list) or not choices:
        return ""
    message = choices[0].get("message", {})
    content = message.get("content")
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts: list[str] = []
        for item in content:
            if isinstance(item, dict):
                text_value = item.get("text")
                if isinstance(text_value, str):
                    parts.append(text_value)
        return "\n".join(parts)
    return ""


def coerce_delta_text(chunk: Any) -> str | None:
    if not isinstance(chunk, dict):
        return None
    choices = chunk.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    delta = choices[0].get("delta") or {}
    content = delta.get("content")
    return content if isinstance(content, str) else None


def chat_completion(
    *,
    provider: ProviderConfig,
    messages: list[dict[str, Any]],
    temperature: float = 0.7,
    max_tokens: int | None = None,
) -> str:
    payload: dict[str, Any] = {
        "model": provider.model,
        "temperature": temperature,
        "messages": messages,
    }
    if max_tokens is not None:
        payload["max_tokens"] = max_tokens
    response = send_request(
        provider.provider,
        "POST",
        f"{provider.base_url}/chat/completions",
        headers=_auth_headers(provider),
        json=payload,
    )
    completion = response_json(provider.provider, response)
    if not isinstance(completion, dict):
        raise ProviderError(provider.provider, "unexpected completion payload")
    return coerce_completion_text(completion)


def open_chat_stream(
    *,
    provider: ProviderConfig,
    messages: list[dict[str, Any]],
    temperature: float = 0.7,
    max_tokens: int | None = None,
) -> UpstreamStream:
    payload: dict[str, Any] = {
        "model": provider.model,
        "temperature": temperature,
        "messages": messages,
        "stream": True,
    }
    if max_tokens is not None:
        payload["max_tokens"] = max_tokens
    return UpstreamStream(
        provider.provider,
        "POST",
        f"{provider.base_url}/chat/completions",
        extract=coerce_delta_text,
        headers=_auth_headers(provider),
        json=payload,
    )


def transcribe_audio(*, file_name: str, mime_type: str, audio_bytes: bytes) -> str:
    provider = openai_provider()
    model = (os.getenv("MEDASSIST_WHISPER_MODEL") or "whisper-1").strip()
    response = send_request(
        provider.provider,
        "POST",
        f"{provider.base_url}/audio/transcriptions",
        headers={"Authorization": f"Bearer {provider.api_key}"},
        data={"model": model},
        files={"file": (file_name, audio_bytes, mime_type or "application/octet-stream")},
    )
    payload = response_json(provider.provider, response)
    if not isinstance(payload, dict):
        raise ProviderError(provider.provider, "unexpected transcription payload")
    text = str(payload.get("text") or "").strip()
    if not text:
        raise ProviderError(provider.provider, "transcription returned empty text")
    return text
