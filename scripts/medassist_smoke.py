#!/usr/bin/env python3
from __future__ import annotations

import importlib
import os
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

from fastapi.testclient import TestClient

# Placeholder bytes for offline runs; live runs should set MEDASSIST_SMOKE_IMAGE to a real meal photo.
_PLACEHOLDER_JPEG = b"\xff\xd8\xff\xe0smoke-placeholder\xff\xd9"


@dataclass
class Check:
  name: str
  run: Callable[[Any], str]
  result: dict[str, Any] = field(default_factory=dict)


def _truthy(value: str | None) -> bool:
  return (value or "").strip().lower() in {"1", "true", "yes"}


def install_offline_providers(backend_module: Any) -> None:
  """Replace every upstream call with canned answers so the smoke run needs no keys."""
  alert_queue: list[list[str]] = []

  def fake_complete(**kwargs: Any) -> str:
    prompt = kwargs["messages"][-1]["content"]
    message = prompt.split("Message:", 1)[-1].split("\n", 1)[0]
    return "GREETING" if "hello" in message.lower() else "GLP1"

  def fake_chat_stream(route: Any, messages: list[dict[str, str]]):
    return iter([f"[{route.prompt_key}] ", "Offline reply."])

  def fake_vision_stream(contents: list[dict[str, Any]], generation_config: Any = None):
    if len(contents) == 1:
      alert_queue.append(["No interactions expected."])
      return iter(["Calories: 320 kcal\n", "Carbs: 40g"])
    return iter(alert_queue.pop())

  backend_module._complete_openai = fake_complete
  backend_module._open_chat_stream = fake_chat_stream
  backend_module._open_vision_stream = fake_vision_stream
  backend_module._vision_generate = lambda contents: "**Consumption**\n* About half eaten"
  backend_module._search_drug_labels = lambda query: [
    {"openfda": {"brand_name": ["Metformin ER"]}, "active_ingredient": ["Metformin 500 mg"]}
  ]
  backend_module._synthesize_speech = lambda text: b"ID3offline"


def run() -> int:
  repo_root = Path(__file__).resolve().parents[1]
  backend_dir = repo_root / "backend"
  if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

  offline = _truthy(os.getenv("MEDASSIST_SMOKE_OFFLINE", "false"))
  backend_module = importlib.import_module("main")
  backend_module = importlib.reload(backend_module)
  if offline:
    install_offline_providers(backend_module)

  from medassist_client import MedAssistClient, parse_analysis, read_image_file
  from medassist_core.schemas import Medication

  sample_image = os.getenv("MEDASSIST_SMOKE_IMAGE", "").strip()
  if sample_image:
    image_bytes, image_mime = read_image_file(sample_image)
  else:
    image_bytes, image_mime = _PLACEHOLDER_JPEG, "image/jpeg"
  metformin = Medication(name="Metformin", dosage="500mg", frequency="Twice daily", timeOfDay=["Morning", "Evening"])

  def chat_greeting(api: MedAssistClient) -> str:
    reply = api.chat([{"role": "user", "content": "hello there"}], persona="glp1")
    assert reply.text.strip(), "empty chat reply"
    return f"title={reply.title!r} text={reply.text[:160]!r}"

  def chat_glp1(api: MedAssistClient) -> str:
    reply = api.chat([{"role": "user", "content": "Is nausea common when starting semaglutide?"}], persona="glp1")
    assert reply.text.strip(), "empty chat reply"
    return f"title={reply.title!r} text={reply.text[:160]!r}"

  def meal_comparison(api: MedAssistClient) -> str:
    analysis = api.compare_meal(image_bytes, image_bytes, before_mime_type=image_mime, after_mime_type=image_mime)
    assert analysis.strip(), "empty comparison"
    return analysis[:160]

  def nutrition_stream(api: MedAssistClient) -> str:
    result = api.analyze_nutrition(image_bytes, [metformin], mime_type=image_mime)
    assert result.complete, "stream ended without [DONE]"
    assert result.alert_started and result.alert_finished, "medication alert section missing"
    summary = parse_analysis(result.analysis_text)
    return f"category={summary.category!r} alert={result.medication_alert_text[:120]!r}"

  def drug_lookup(api: MedAssistClient) -> str:
    suggestions = api.search_drugs("metformin")
    assert suggestions, "no suggestions"
    return ", ".join(item["name"] for item in suggestions[:5])

  def speech(api: MedAssistClient) -> str:
    audio = api.speak("Take one tablet with breakfast.")
    assert audio, "no audio returned"
    return f"{len(audio)} bytes of audio"

  checks = [
    Check("Chat Greeting Route", chat_greeting),
    Check("Chat GLP-1 Persona", chat_glp1),
    Check("Before/After Meal Comparison", meal_comparison),
    Check("Nutrition Stream With Medication Alert", nutrition_stream),
    Check("Drug Lookup", drug_lookup),
    Check("Text To Speech", speech),
  ]

  with TestClient(backend_module.app) as client:
    api = MedAssistClient(http=client)
    for check in checks:
      try:
        check.result = {"pass": True, "detail": check.run(api)}
      except Exception as exc:
        check.result = {"pass": False, "detail": f"{type(exc).__name__}: {exc}"}

  passed = sum(1 for check in checks if check.result.get("pass"))
  failed = len(checks) - passed
  timestamp = datetime.now(timezone.utc).isoformat()

  report_lines = [
    "# MedAssist Smoke Report",
    "",
    f"- Timestamp (UTC): `{timestamp}`",
    f"- Offline providers: `{offline}`",
    f"- Total checks: `{len(checks)}`",
    f"- Passed: `{passed}`",
    f"- Failed: `{failed}`",
    "",
    "## Check Results",
    "",
  ]
  for check in checks:
    status = "PASS" if check.result.get("pass") else "FAIL"
    report_lines.append(f"### {status} - {check.name}")
    report_lines.append(f"- Detail: `{check.result.get('detail')}`")
    report_lines.append("")

  report_path = repo_root / "MEDASSIST_SMOKE_REPORT.md"
  report_path.write_text("\n".join(report_lines), encoding="utf-8")
  print(f"Wrote report: {report_path}")
  print(f"Passed {passed}/{len(checks)} checks.")

  return 0 if failed == 0 else 1


if __name__ == "__main__":
  raise SystemExit(run())
