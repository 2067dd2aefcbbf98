from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any, Iterable, Iterator

from fastapi import FastAPI, File, HTTPException, Query, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response, StreamingResponse
from pydantic import ValidationError

from medassist_core import ThinkTagFilter, chat_title, classify_message, select_route
from medassist_core.drugs import build_drug_suggestions
from medassist_core.images import (
    ImagePayloadError,
    data_url_mime_type,
    decode_image_payload,
    encode_image_bytes,
)
from medassist_core.models import ChatRoute
from medassist_core.prompts import MEAL_COMPARISON_PROMPT, NUTRITION_ANALYSIS_PROMPT
from medassist_core.routing import build_upstream_messages, rewrite_title
from medassist_core.schemas import (
    AnalysisRequest,
    CalculatorRequest,
    ChatRequest,
    MealComparisonPayload,
    Medication,
    SpeechRequest,
)
from medassist_core.streaming import build_alert_prompt, nutrition_event_stream
from medassist_providers import MissingCredentialsError, ProviderError
from medassist_providers import gemini, openai_compat, openfda, speech

_ENV_KEY_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _load_local_env_file(path: Path) -> None:
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except OSError:
        return
    for raw in lines:
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        if not _ENV_KEY_RE.fullmatch(key):
            continue
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
            value = value[1:-1]
        os.environ.setdefault(key, value)


def _bootstrap_local_env() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    for candidate in (repo_root / ".env", repo_root / "backend/.env"):
        if candidate.exists():
            _load_local_env_file(candidate)


_bootstrap_local_env()

logging.basicConfig(
    level=os.getenv("MEDASSIST_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("medassist")

_MAX_AUDIO_BYTES = int(os.getenv("MEDASSIST_MAX_AUDIO_BYTES", str(20 * 1024 * 1024)))
_MAX_IMAGE_BYTES = int(os.getenv("MEDASSIST_MAX_IMAGE_BYTES", str(10 * 1024 * 1024)))
_TITLE_MAX_CHARS = int(os.getenv("MEDASSIST_TITLE_MAX_CHARS", "40"))
_ALLOWED_AUDIO_MIME_TYPES = {
    "audio/mpeg",
    "audio/mp3",
    "audio/mp4",
    "audio/m4a",
    "audio/wav",
    "audio/x-wav",
    "audio/webm",
    "audio/ogg",
}
_ALLOWED_AUDIO_EXTENSIONS = {".mp3", ".mp4", ".m4a", ".wav", ".webm", ".ogg", ".flac"}
_STREAM_HEADERS = {"Cache-Control": "no-cache", "Connection": "keep-alive"}


app = FastAPI(title="MedAssist Backend")

allowed_origins = os.getenv("ALLOWED_ORIGINS", "*").split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in allowed_origins],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Chat-Title"],
    max_age=86400,
)


def _validation_error_response(errors: list[Any]) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "error": "Invalid request format",
            "details": jsonable_encoder(errors),
        },
    )


@app.exception_handler(RequestValidationError)
async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("rejected %s %s: schema mismatch", request.method, request.url.path)
    return _validation_error_response(list(exc.errors()))


def _truthy_env(name: str) -> bool:
    return os.getenv(name, "false").strip().lower() in {"1", "true", "yes"}


# Upstream calls.


def _complete_openai(**kwargs: Any) -> str:
    return openai_compat.chat_completion(provider=openai_compat.openai_provider(), **kwargs)


def _open_chat_stream(route: ChatRoute, messages: list[dict[str, str]]) -> Iterable[str]:
    if route.provider == "openai":
        provider = openai_compat.openai_provider()
    else:
        provider = openai_compat.perplexity_provider()
    return openai_compat.open_chat_stream(
        provider=provider,
        messages=messages,
        temperature=route.temperature,
        max_tokens=route.max_tokens,
    )


def _vision_generate(contents: list[dict[str, Any]]) -> str:
    return gemini.generate_content(contents)


def _open_vision_stream(
    contents: list[dict[str, Any]],
    generation_config: dict[str, Any] | None = None,
) -> Iterable[str]:
    return gemini.open_content_stream(contents, generation_config=generation_config)


def _search_drug_labels(query: str) -> list[dict[str, Any]]:
    return openfda.search_drug_labels(query, limit=20)


def _synthesize_speech(text: str) -> bytes:
    return speech.synthesize_speech(text)


def _transcribe_audio(*, file_name: str, mime_type: str, audio_bytes: bytes) -> str:
    return openai_compat.transcribe_audio(file_name=file_name, mime_type=mime_type, audio_bytes=audio_bytes)


# Upload helpers.


def _normalize_upload_filename(upload: UploadFile | None, fallback_name: str) -> str:
    file_name = (upload.filename or "").strip() if upload else ""
    return file_name or fallback_name


def _upload_mime_type(upload: UploadFile) -> str:
    return (upload.content_type or "").split(";", 1)[0].lower().strip()


async def _read_upload_bytes(upload: UploadFile, *, max_bytes: int, too_large_detail: str) -> bytes:
    raw = await upload.read(max_bytes + 1)
    if len(raw) > max_bytes:
        raise HTTPException(status_code=413, detail=too_large_detail)
    if not raw:
        raise HTTPException(status_code=400, detail="Uploaded file is empty.")
    return raw


def _select_upload(primary: UploadFile | None, fallback: UploadFile | None, *, field_hint: str) -> UploadFile:
    upload = primary or fallback
    if upload is None:
        raise HTTPException(status_code=400, detail=f"Missing multipart file field '{field_hint}'.")
    return upload


def _validate_audio_upload(file_name: str, mime_type: str) -> None:
    ext = Path(file_name).suffix.lower().strip()
    if mime_type not in _ALLOWED_AUDIO_MIME_TYPES and ext not in _ALLOWED_AUDIO_EXTENSIONS:
        raise HTTPException(status_code=415, detail="Unsupported audio format.")


# Chat relay.


def _latest_user_message(messages: list[dict[str, str]]) -> str:
    for turn in reversed(messages):
        if turn["role"] == "user":
            return turn["content"]
    return messages[-1]["content"]


def _resolve_chat_title(message: str) -> str:
    if _truthy_env("MEDASSIST_REWRITE_TITLES"):
        rewritten = rewrite_title(message, _complete_openai)
        if rewritten:
            return chat_title(rewritten, _TITLE_MAX_CHARS)
    return chat_title(message, _TITLE_MAX_CHARS)


def _relay_chat_stream(chunks: Iterable[str]) -> Iterator[str]:
    think_filter = ThinkTagFilter()
    try:
        yield from think_filter.filter(chunks)
    except ProviderError as exc:
        logger.error("chat stream interrupted: %s", exc)


@app.post("/api/chat")
def chat(payload: ChatRequest):
    messages = [{"role": turn.role, "content": turn.content} for turn in payload.messages]
    latest = _latest_user_message(messages)
    try:
        message_type = classify_message(latest, _complete_openai)
        route = select_route(message_type, payload.data.persona)
        logger.info(
            "chat persona=%s message_type=%s prompt=%s provider=%s",
            payload.data.persona,
            message_type.value,
            route.prompt_key,
            route.provider,
        )
        upstream = _open_chat_stream(
            route,
            build_upstream_messages(route, messages, payload.data.includeHistory),
        )
    except ProviderError as exc:
        logger.error("chat relay failed: %s", exc)
        return JSONResponse(status_code=500, content={"success": False, "error": "Internal server error"})

    headers = {"X-Chat-Title": _resolve_chat_title(latest), **_STREAM_HEADERS}
    return StreamingResponse(
        _relay_chat_stream(upstream),
        media_type="text/event-stream",
        headers=headers,
    )


# Meal comparison.


def _compare_meal(before: tuple[str, str], after: tuple[str, str]) -> str:
    return _vision_generate(
        [
            gemini.user_turn(
                gemini.text_part(MEAL_COMPARISON_PROMPT),
                gemini.inline_image_part(before[0], before[1]),
                gemini.inline_image_part(after[0], after[1]),
            )
        ]
    )


def _missing_images_response() -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": "Both before and after images are required"},
    )


async def _comparison_images_from_form(request: Request) -> list[tuple[str, str]] | None:
    form = await request.form()
    images: list[tuple[str, str]] = []
    for field_name in ("beforeImage", "afterImage"):
        upload = form.get(field_name)
        if upload is None or isinstance(upload, str):
            return None
        raw = await _read_upload_bytes(
            upload,
            max_bytes=_MAX_IMAGE_BYTES,
            too_large_detail=f"Image exceeds {_MAX_IMAGE_BYTES // (1024 * 1024)}MB limit.",
        )
        mime_type = _upload_mime_type(upload)
        images.append((encode_image_bytes(raw), mime_type if mime_type.startswith("image/") else "image/jpeg"))
    return images


def _comparison_images_from_json(body: Any) -> list[tuple[str, str]] | None:
    payload = MealComparisonPayload.model_validate(body)
    if not payload.beforeImage or not payload.afterImage:
        return None
    images: list[tuple[str, str]] = []
    for value in (payload.beforeImage, payload.afterImage):
        raw = decode_image_payload(value, max_bytes=_MAX_IMAGE_BYTES)
        images.append((encode_image_bytes(raw), data_url_mime_type(value)))
    return images


@app.post("/api/food-analysis")
async def food_analysis(request: Request):
    content_type = request.headers.get("content-type", "")
    try:
        if "multipart/form-data" in content_type:
            images = await _comparison_images_from_form(request)
        else:
            try:
                body = await request.json()
            except ValueError:
                return _validation_error_response([{"msg": "Request body is not valid JSON"}])
            images = _comparison_images_from_json(body)
    except ValidationError as exc:
        return _validation_error_response(exc.errors(include_url=False, include_context=False))
    except ImagePayloadError as exc:
        return JSONResponse(status_code=400, content={"success": False, "error": str(exc)})
    except HTTPException as exc:
        return JSONResponse(status_code=exc.status_code, content={"success": False, "error": exc.detail})
    if images is None:
        return _missing_images_response()

    try:
        analysis = await run_in_threadpool(_compare_meal, images[0], images[1])
    except ProviderError as exc:
        logger.error("food analysis failed: %s", exc)
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "An error occurred during food analysis"},
        )
    return {"success": True, "analysis": analysis}


# Nutrition stream.


def _generation_config(payload: CalculatorRequest) -> dict[str, Any] | None:
    if payload.body is None:
        return None
    config: dict[str, Any] = {}
    if payload.body.maxTokens is not None:
        config["maxOutputTokens"] = payload.body.maxTokens
    if payload.body.temperature is not None:
        config["temperature"] = payload.body.temperature
    return config or None


def _analysis_medications(payload: CalculatorRequest, analysis_request: AnalysisRequest) -> list[Medication]:
    if analysis_request.medications:
        return analysis_request.medications
    if payload.body is not None and payload.body.medications:
        return payload.body.medications
    return []


@app.post("/api/calculator")
def calculator(payload: CalculatorRequest):
    try:
        analysis_request = AnalysisRequest.model_validate_json(payload.messages[-1].content)
    except ValidationError as exc:
        return _validation_error_response(exc.errors(include_url=False, include_context=False))
    try:
        image_bytes = decode_image_payload(analysis_request.image, max_bytes=_MAX_IMAGE_BYTES)
    except ImagePayloadError as exc:
        return JSONResponse(status_code=400, content={"success": False, "error": str(exc)})

    medications = _analysis_medications(payload, analysis_request)
    generation_config = _generation_config(payload)
    analysis_prompt = gemini.text_part(NUTRITION_ANALYSIS_PROMPT)
    image_part = gemini.inline_image_part(
        encode_image_bytes(image_bytes),
        data_url_mime_type(analysis_request.image),
    )
    try:
        analysis_stream = _open_vision_stream([gemini.user_turn(analysis_prompt, image_part)], generation_config)
    except ProviderError as exc:
        logger.error("nutrition analysis failed: %s", exc)
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "An error occurred during food analysis"},
        )

    def open_alert_stream(full_analysis: str) -> Iterable[str]:
        alert_prompt = build_alert_prompt(medications, full_analysis, analysis_request.timingContext)
        return _open_vision_stream(
            [
                gemini.user_turn(analysis_prompt),
                gemini.model_turn(gemini.text_part(full_analysis)),
                gemini.user_turn(gemini.text_part(alert_prompt)),
            ],
            generation_config,
        )

    logger.info("nutrition analysis started medications=%d", len(medications))
    return StreamingResponse(
        nutrition_event_stream(analysis_stream, medications, open_alert_stream),
        media_type="text/event-stream",
        headers=_STREAM_HEADERS,
    )


# Drug lookup.


@app.get("/api/meddb")
def meddb(q: str | None = Query(default=None)):
    query = (q or "").strip()
    if not query:
        return JSONResponse(
            status_code=400,
            content={
                "success": False,
                "message": "Please provide a search query parameter (q)",
                "suggestions": [],
            },
        )
    try:
        results = _search_drug_labels(query)
    except MissingCredentialsError as exc:
        logger.error("drug lookup unavailable: %s", exc)
        return JSONResponse(
            status_code=500,
            content={"success": False, "message": "FDA API key is not configured", "suggestions": []},
        )
    except ProviderError as exc:
        logger.error("drug lookup failed: %s", exc)
        return JSONResponse(
            status_code=500,
            content={"success": False, "message": "Error fetching medication data", "suggestions": []},
        )

    if not results:
        return {"success": False, "message": "No results found", "suggestions": []}
    suggestions = build_drug_suggestions(results, query)
    return {"success": True, "query": query, "total": len(suggestions), "suggestions": suggestions}


# Speech.


@app.post("/api/tts")
def tts(payload: SpeechRequest):
    text = payload.text.strip()
    if not text:
        raise HTTPException(status_code=400, detail="Text is required.")
    try:
        audio = _synthesize_speech(text)
    except ProviderError as exc:
        logger.error("tts failed: %s", exc)
        return JSONResponse(status_code=500, content={"error": "TTS Generation Failed"})
    return Response(content=audio, media_type="audio/mpeg")


@app.post("/api/stt")
async def stt(
    audio: UploadFile | None = File(default=None),
    file: UploadFile | None = File(default=None),
):
    upload = _select_upload(audio, file, field_hint="audio")
    file_name = _normalize_upload_filename(upload, "recording.webm")
    mime_type = _upload_mime_type(upload)
    _validate_audio_upload(file_name, mime_type)
    audio_bytes = await _read_upload_bytes(
        upload,
        max_bytes=_MAX_AUDIO_BYTES,
        too_large_detail=f"Audio file exceeds {_MAX_AUDIO_BYTES // (1024 * 1024)}MB limit.",
    )
    try:
        text = await run_in_threadpool(
            _transcribe_audio,
            file_name=file_name,
            mime_type=mime_type,
            audio_bytes=audio_bytes,
        )
    except ProviderError as exc:
        logger.error("stt failed: %s", exc)
        return JSONResponse(status_code=500, content={"error": "Failed to convert speech to text"})
    return {"text": text}


@app.get("/health")
def health():
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host=os.getenv("HOST", "127.0.0.1"), port=int(os.getenv("PORT", "8000")))
