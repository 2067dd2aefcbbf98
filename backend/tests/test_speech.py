from __future__ import annotations

from medassist_providers import ProviderError


def test_tts_returns_audio_bytes(client, backend_module, monkeypatch):
    spoken = []

    def fake_synthesize(text):
        spoken.append(text)
        return b"ID3-fake-mp3"

    monkeypatch.setattr(backend_module, "_synthesize_speech", fake_synthesize)
    response = client.post("/api/tts", json={"text": "  Take one tablet daily.  "})
    assert response.status_code == 200
    assert response.headers["content-type"] == "audio/mpeg"
    assert response.content == b"ID3-fake-mp3"
    assert spoken == ["Take one tablet daily."]


def test_tts_rejects_missing_text(client):
    assert client.post("/api/tts", json={}).status_code == 400
    assert client.post("/api/tts", json={"text": "   "}).status_code == 400


def test_tts_provider_failure_returns_500(client, backend_module, monkeypatch):
    def failing(text):
        raise ProviderError("elevenlabs", "quota exceeded", 401)

    monkeypatch.setattr(backend_module, "_synthesize_speech", failing)
    response = client.post("/api/tts", json={"text": "hello"})
    assert response.status_code == 500
    assert response.json() == {"error": "TTS Generation Failed"}


def test_stt_transcribes_uploaded_audio(client, backend_module, monkeypatch):
    calls = []

    def fake_transcribe(**kwargs):
        calls.append(kwargs)
        return "I missed my morning dose."

    monkeypatch.setattr(backend_module, "_transcribe_audio", fake_transcribe)
    response = client.post(
        "/api/stt",
        files={"audio": ("note.webm", b"fake-webm-bytes", "audio/webm;codecs=opus")},
    )
    assert response.status_code == 200
    assert response.json() == {"text": "I missed my morning dose."}
    assert calls[0]["file_name"] == "note.webm"
    assert calls[0]["mime_type"] == "audio/webm"
    assert calls[0]["audio_bytes"] == b"fake-webm-bytes"


def test_stt_accepts_file_field_alias(client, backend_module, monkeypatch):
    monkeypatch.setattr(backend_module, "_transcribe_audio", lambda **kwargs: "ok")
    response = client.post("/api/stt", files={"file": ("clip.wav", b"wav-bytes", "audio/wav")})
    assert response.status_code == 200
    assert response.json()["text"] == "ok"


def test_stt_rejects_unsupported_format(client):
    response = client.post("/api/stt", files={"audio": ("notes.txt", b"hello", "text/plain")})
    assert response.status_code == 415
    assert "unsupported audio format" in response.json()["detail"].lower()


def test_stt_requires_upload(client):
    response = client.post("/api/stt", data={"other": "x"})
    assert response.status_code == 400


def test_stt_rejects_oversized_audio(client, backend_module, monkeypatch):
    monkeypatch.setattr(backend_module, "_MAX_AUDIO_BYTES", 8)
    response = client.post("/api/stt", files={"audio": ("big.mp3", b"0123456789", "audio/mpeg")})
    assert response.status_code == 413


def test_stt_provider_failure_returns_500(client, backend_module, monkeypatch):
    def failing(**kwargs):
        raise ProviderError("openai", "timed out")

    monkeypatch.setattr(backend_module, "_transcribe_audio", failing)
    response = client.post("/api/stt", files={"audio": ("a.mp3", b"mp3", "audio/mpeg")})
    assert response.status_code == 500
    assert response.json() == {"error": "Failed to convert speech to text"}
