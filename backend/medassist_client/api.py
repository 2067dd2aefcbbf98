from __future__ import annotations

import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterable

import httpx

from medassist_core.images import to_data_url
from medassist_core.schemas import AnalysisRequest, Medication

from .sse import NutritionStreamAssembler, NutritionStreamResult

logger = logging.getLogger("medassist.client")

DEFAULT_BASE_URL = "http://127.0.0.1:8000"


class MedAssistClientError(Exception):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass
class ChatReply:
    text: str
    title: str


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text.strip() or f"HTTP {response.status_code}"
    if isinstance(payload, dict):
        for key in ("error", "message", "detail"):
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    return f"HTTP {response.status_code}"


def _raise_for_error(response: httpx.Response) -> None:
    if response.status_code < 400:
        return
    response.read()
    message = _error_message(response)
    logger.warning("request %s failed (%s): %s", response.request.url.path, response.status_code, message)
    raise MedAssistClientError(message, status_code=response.status_code)


def read_image_file(path: str | Path) -> tuple[bytes, str]:
    file_path = Path(path)
    mime_type = mimetypes.guess_type(file_path.name)[0] or "image/jpeg"
    if not mime_type.startswith("image/"):
        raise MedAssistClientError(f"{file_path.name} is not an image file")
    return file_path.read_bytes(), mime_type


class MedAssistClient:
    """Thin client for the MedAssist HTTP API.

    ``http`` may be any ``httpx.Client``; tests pass a FastAPI ``TestClient``.
    """

    def __init__(self, base_url: str = DEFAULT_BASE_URL, http: httpx.Client | None = None) -> None:
        self._owns_http = http is None
        self._http = http or httpx.Client(base_url=base_url, timeout=httpx.Timeout(90.0, connect=8.0))

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    def __enter__(self) -> "MedAssistClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def chat(
        self,
        messages: list[dict[str, str]],
        *,
        persona: str = "general_med",
        include_history: bool = True,
        on_chunk: Callable[[str], None] | None = None,
    ) -> ChatReply:
        payload = {
            "messages": messages,
            "data": {"persona": persona, "includeHistory": include_history},
        }
        chunks: list[str] = []
        with self._http.stream("POST", "/api/chat", json=payload) as response:
            _raise_for_error(response)
            title = response.headers.get("X-Chat-Title", "")
            for chunk in response.iter_text():
                if not chunk:
                    continue
                chunks.append(chunk)
                if on_chunk is not None:
                    on_chunk(chunk)
        return ChatReply(text="".join(chunks), title=title)

    def compare_meal(
        self,
        before: bytes,
        after: bytes,
        *,
        before_mime_type: str = "image/jpeg",
        after_mime_type: str = "image/jpeg",
    ) -> str:
        response = self._http.post(
            "/api/food-analysis",
            files={
                "beforeImage": ("before.jpg", before, before_mime_type),
                "afterImage": ("after.jpg", after, after_mime_type),
            },
        )
        _raise_for_error(response)
        payload = response.json()
        if not payload.get("success"):
            raise MedAssistClientError(payload.get("error") or "Food analysis failed", response.status_code)
        return str(payload.get("analysis") or "")

    def analyze_nutrition(
        self,
        image: bytes,
        medications: Iterable[Medication] = (),
        *,
        mime_type: str = "image/jpeg",
        timing_context: str | None = None,
        on_chunk: Callable[[str], None] | None = None,
    ) -> NutritionStreamResult:
        meds = list(medications)
        request = AnalysisRequest(
            type="analysis_request",
            image=to_data_url(image, mime_type),
            medications=meds or None,
            timingContext=timing_context,
        )
        payload = {
            "messages": [
                {"role": "user", "content": request.model_dump_json(exclude_none=True)},
            ],
        }
        assembler = NutritionStreamAssembler()
        with self._http.stream("POST", "/api/calculator", json=payload) as response:
            _raise_for_error(response)
            for chunk in response.iter_text():
                assembler.feed(chunk)
                if on_chunk is not None:
                    on_chunk(chunk)
        result = assembler.finish()
        if not result.complete:
            logger.warning("nutrition stream ended before completion")
        return result

    def search_drugs(self, query: str) -> list[dict[str, Any]]:
        response = self._http.get("/api/meddb", params={"q": query})
        _raise_for_error(response)
        payload = response.json()
        if not payload.get("success"):
            return []
        suggestions = payload.get("suggestions")
        return suggestions if isinstance(suggestions, list) else []

    def speak(self, text: str) -> bytes:
        response = self._http.post("/api/tts", json={"text": text})
        _raise_for_error(response)
        return response.content

    def transcribe(
        self,
        audio: bytes,
        *,
        file_name: str = "recording.webm",
        mime_type: str = "audio/webm",
    ) -> str:
        response = self._http.post("/api/stt", files={"audio": (file_name, audio, mime_type)})
        _raise_for_error(response)
        return str(response.json().get("text") or "")
