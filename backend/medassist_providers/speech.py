from __future__ import annotations

import os

from .base import ProviderError, require_api_key, send_request

_PROVIDER = "elevenlabs"


def synthesize_speech(text: str) -> bytes:
    api_key = require_api_key(_PROVIDER, "ELEVENLABS_API_KEY")
    base_url = os.getenv("ELEVENLABS_API_BASE_URL", "https://api.elevenlabs.io/v1").rstrip("/")
    voice_id = (os.getenv("ELEVENLABS_VOICE_ID") or "JBFqnCBsd6RMkjVDRZzb").strip()
    model_id = (os.getenv("ELEVENLABS_MODEL_ID") or "eleven_multilingual_v2").strip()
    response = send_request(
        _PROVIDER,
        "POST",
        f"{base_url}/text-to-speech/{voice_id}/stream",
        headers={
            "xi-api-key": api_key,
            "Content-Type": "application/json",
            "Accept": "audio/mpeg",
        },
        json={"text": text, "model_id": model_id},
    )
    audio = response.content
    if not audio:
        raise ProviderError(_PROVIDER, "provider returned empty audio")
    return audio
