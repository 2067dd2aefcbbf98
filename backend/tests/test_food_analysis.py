from __future__ import annotations

import base64

from medassist_core.prompts import MEAL_COMPARISON_PROMPT
from medassist_providers import ProviderError


def _install_vision(backend_module, monkeypatch, text: str = "**Consumption Analysis**\n* About 60% eaten") -> list:
    calls: list = []

    def fake_generate(contents):
        calls.append(contents)
        return text

    monkeypatch.setattr(backend_module, "_vision_generate", fake_generate)
    return calls


def test_food_analysis_requires_both_images(client):
    response = client.post("/api/food-analysis", json={})
    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Both before and after images are required"}

    response = client.post("/api/food-analysis", json={"beforeImage": "aGVsbG8="})
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_food_analysis_multipart_requires_both_images(client, png_bytes):
    response = client.post(
        "/api/food-analysis",
        files={"beforeImage": ("before.png", png_bytes, "image/png")},
    )
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_food_analysis_multipart_success(client, backend_module, monkeypatch, png_bytes):
    calls = _install_vision(backend_module, monkeypatch)

    response = client.post(
        "/api/food-analysis",
        files={
            "beforeImage": ("before.png", png_bytes, "image/png"),
            "afterImage": ("after.jpg", png_bytes, "image/jpeg"),
        },
    )
    assert response.status_code == 200
    assert response.json() == {"success": True, "analysis": "**Consumption Analysis**\n* About 60% eaten"}

    parts = calls[0][0]["parts"]
    assert parts[0] == {"text": MEAL_COMPARISON_PROMPT}
    assert parts[1]["inline_data"]["mime_type"] == "image/png"
    assert parts[2]["inline_data"]["mime_type"] == "image/jpeg"
    assert base64.b64decode(parts[1]["inline_data"]["data"]) == png_bytes


def test_food_analysis_json_data_urls(client, backend_module, monkeypatch, png_bytes):
    calls = _install_vision(backend_module, monkeypatch, "Mostly eaten.")
    encoded = base64.b64encode(png_bytes).decode("ascii")

    response = client.post(
        "/api/food-analysis",
        json={"beforeImage": f"data:image/png;base64,{encoded}", "afterImage": encoded},
    )
    assert response.status_code == 200
    assert response.json()["analysis"] == "Mostly eaten."

    parts = calls[0][0]["parts"]
    assert parts[1]["inline_data"] == {"mime_type": "image/png", "data": encoded}
    assert parts[2]["inline_data"] == {"mime_type": "image/jpeg", "data": encoded}


def test_food_analysis_rejects_invalid_base64(client):
    response = client.post(
        "/api/food-analysis",
        json={"beforeImage": "not base64!", "afterImage": "also not"},
    )
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_food_analysis_provider_failure_returns_500(client, backend_module, monkeypatch, png_bytes):
    def failing_generate(contents):
        raise ProviderError("gemini", "model overloaded", 503)

    monkeypatch.setattr(backend_module, "_vision_generate", failing_generate)
    encoded = base64.b64encode(png_bytes).decode("ascii")
    response = client.post("/api/food-analysis", json={"beforeImage": encoded, "afterImage": encoded})
    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "An error occurred during food analysis"}


def test_food_analysis_without_credentials_returns_500(client, png_bytes):
    encoded = base64.b64encode(png_bytes).decode("ascii")
    response = client.post("/api/food-analysis", json={"beforeImage": encoded, "afterImage": encoded})
    assert response.status_code == 500
    assert response.json()["success"] is False


def test_food_analysis_multipart_empty_image_uses_error_envelope(client, png_bytes):
    response = client.post(
        "/api/food-analysis",
        files={
            "beforeImage": ("before.png", b"", "image/png"),
            "afterImage": ("after.png", png_bytes, "image/png"),
        },
    )
    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Uploaded file is empty."}


def test_food_analysis_multipart_oversized_image_uses_error_envelope(client, backend_module, monkeypatch, png_bytes):
    monkeypatch.setattr(backend_module, "_MAX_IMAGE_BYTES", 16)
    response = client.post(
        "/api/food-analysis",
        files={
            "beforeImage": ("before.png", png_bytes, "image/png"),
            "afterImage": ("after.png", png_bytes, "image/png"),
        },
    )
    assert response.status_code == 413
    payload = response.json()
    assert payload["success"] is False
    assert "limit" in payload["error"]
