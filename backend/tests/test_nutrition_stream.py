from __future__ import annotations

import base64
import json

from medassist_client.sse import assemble_nutrition_stream, parse_sse_events
from medassist_core.models import MEDICATION_ALERT_END, MEDICATION_ALERT_START
from medassist_core.schemas import Medication
from medassist_core.streaming import nutrition_event_stream
from medassist_providers import ProviderError

METFORMIN = {
    "name": "Metformin",
    "dosage": "500mg",
    "frequency": "Twice daily",
    "timeOfDay": ["Morning", "Evening"],
    "notes": "With food",
}


def _calculator_payload(image: str, medications: list[dict] | None = None, body: dict | None = None) -> dict:
    request = {"type": "analysis_request", "image": image}
    if medications is not None:
        request["medications"] = medications
    payload = {"messages": [{"role": "user", "content": json.dumps(request)}]}
    if body is not None:
        payload["body"] = body
    return payload


def _install_vision_stream(backend_module, monkeypatch, *responses: list[str]) -> list[dict]:
    calls: list[dict] = []
    queue = list(responses)

    def fake_open(contents, generation_config=None):
        calls.append({"contents": contents, "generation_config": generation_config})
        return iter(queue.pop(0))

    monkeypatch.setattr(backend_module, "_open_vision_stream", fake_open)
    return calls


def _frames(response_text: str) -> list:
    frames = []
    for event in parse_sse_events(response_text):
        data = event.get("data")
        frames.append(data if data == "[DONE]" else json.loads(data))
    return frames


def test_nutrition_stream_with_medications_emits_one_alert_section(client, backend_module, monkeypatch, png_bytes):
    calls = _install_vision_stream(
        backend_module,
        monkeypatch,
        ["Calories: 450 kcal\n", "Carbs: 60g"],
        ["No major interactions.", " Take metformin with this meal."],
    )
    image = "data:image/png;base64," + base64.b64encode(png_bytes).decode("ascii")

    response = client.post("/api/calculator", json=_calculator_payload(image, [METFORMIN]))
    assert response.status_code == 200
    assert "text/event-stream" in response.headers.get("content-type", "")

    frames = _frames(response.text)
    assert frames[-1] == "[DONE]"
    separators = [frame for frame in frames[:-1] if frame["type"] == "separator"]
    assert len(separators) == 2
    assert MEDICATION_ALERT_START in separators[0]["content"]
    assert MEDICATION_ALERT_END in separators[1]["content"]

    types = [frame["type"] for frame in frames[:-1]]
    start = types.index("separator")
    end = len(types) - 1 - types[::-1].index("separator")
    assert set(types[:start]) == {"analysis"}
    assert set(types[start + 1:end]) == {"medication_alert"}
    assert end == len(types) - 1

    assert len(calls) == 2
    alert_contents = calls[1]["contents"]
    assert [turn["role"] for turn in alert_contents] == ["user", "model", "user"]
    assert alert_contents[1]["parts"][0]["text"] == "Calories: 450 kcal\nCarbs: 60g"
    assert "Metformin (500mg, Twice daily, taken: Morning, Evening) - Notes: With food" in (
        alert_contents[2]["parts"][0]["text"]
    )

    result = assemble_nutrition_stream([response.text])
    assert result.analysis_text == "Calories: 450 kcal\nCarbs: 60g"
    assert result.medication_alert_text == "No major interactions. Take metformin with this meal."
    assert result.alert_started and result.alert_finished and result.complete


def test_nutrition_stream_without_medications_skips_alert(client, backend_module, monkeypatch, png_bytes):
    calls = _install_vision_stream(backend_module, monkeypatch, ["Calories: 300 kcal"])
    image = base64.b64encode(png_bytes).decode("ascii")

    response = client.post("/api/calculator", json=_calculator_payload(image))
    assert response.status_code == 200
    frames = _frames(response.text)
    assert frames == [{"content": "Calories: 300 kcal", "type": "analysis"}, "[DONE]"]
    assert len(calls) == 1


def test_nutrition_stream_falls_back_to_body_medications(client, backend_module, monkeypatch, png_bytes):
    calls = _install_vision_stream(backend_module, monkeypatch, ["Protein: 20g"], ["Fine."])
    image = base64.b64encode(png_bytes).decode("ascii")

    response = client.post(
        "/api/calculator",
        json=_calculator_payload(image, body={"maxTokens": 512, "temperature": 0.2, "medications": [METFORMIN]}),
    )
    assert response.status_code == 200
    assert len(calls) == 2
    assert calls[0]["generation_config"] == {"maxOutputTokens": 512, "temperature": 0.2}
    assert "---MEDICATION_ALERT_START---" in response.text


def test_nutrition_stream_rejects_non_json_request(client):
    payload = {"messages": [{"role": "user", "content": "not json at all"}]}
    response = client.post("/api/calculator", json=payload)
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_nutrition_stream_rejects_wrong_request_type(client, png_bytes):
    request = {"type": "chat", "image": base64.b64encode(png_bytes).decode("ascii")}
    payload = {"messages": [{"role": "user", "content": json.dumps(request)}]}
    response = client.post("/api/calculator", json=payload)
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid request format"


def test_nutrition_stream_rejects_invalid_base64(client):
    response = client.post("/api/calculator", json=_calculator_payload("data:image/png;base64,@@@"))
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_nutrition_stream_returns_500_when_vision_call_fails(client, backend_module, monkeypatch, png_bytes):
    def failing_open(contents, generation_config=None):
        raise ProviderError("gemini", "quota exceeded", 429)

    monkeypatch.setattr(backend_module, "_open_vision_stream", failing_open)
    image = base64.b64encode(png_bytes).decode("ascii")
    response = client.post("/api/calculator", json=_calculator_payload(image))
    assert response.status_code == 500
    assert response.json()["success"] is False


def test_event_stream_stops_without_done_when_alert_call_fails():
    def failing_alert(analysis: str):
        raise ProviderError("gemini", "boom")

    frames = list(
        nutrition_event_stream(iter(["Calories: 200"]), [Medication(**METFORMIN)], failing_alert)
    )
    assert frames == ['data: {"content": "Calories: 200", "type": "analysis"}\n\n']
