from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Iterable

from medassist_core.models import DONE_SENTINEL, MEDICATION_ALERT_END, MEDICATION_ALERT_START


def parse_sse_events(payload_text: str) -> list[dict[str, Any]]:
    events: list[dict[str, Any]] = []
    current: dict[str, Any] = {}
    for raw_line in payload_text.splitlines():
        line = raw_line.strip("\r")
        if line.startswith("event: "):
            current["event"] = line[7:]
        elif line.startswith("data: "):
            current["data"] = line[6:]
        elif line == "" and current:
            events.append(current)
            current = {}
    if current:
        events.append(current)
    return events


@dataclass
class NutritionStreamResult:
    analysis_text: str = ""
    medication_alert_text: str = ""
    alert_started: bool = False
    alert_finished: bool = False
    complete: bool = False


class NutritionStreamAssembler:
    """Rebuilds the analysis and medication alert from nutrition SSE lines.

    Lines may arrive split at arbitrary chunk boundaries; only complete lines
    are interpreted.
    """

    def __init__(self) -> None:
        self._buffer = ""
        self._analysis: list[str] = []
        self._alert: list[str] = []
        self.result = NutritionStreamResult()

    def feed(self, chunk: str) -> None:
        self._buffer += chunk
        *lines, self._buffer = self._buffer.split("\n")
        for line in lines:
            self._handle_line(line.strip("\r"))

    def finish(self) -> NutritionStreamResult:
        if self._buffer:
            self._handle_line(self._buffer.strip("\r"))
            self._buffer = ""
        self.result.analysis_text = "".join(self._analysis)
        self.result.medication_alert_text = "".join(self._alert)
        return self.result

    def _handle_line(self, line: str) -> None:
        if not line.startswith("data:"):
            return
        data = line[5:].strip()
        if not data:
            return
        if data == DONE_SENTINEL:
            self.result.complete = True
            return
        try:
            frame = json.loads(data)
        except json.JSONDecodeError:
            return
        if not isinstance(frame, dict):
            return
        content = frame.get("content")
        if not isinstance(content, str) or not content:
            return
        frame_type = frame.get("type")
        if frame_type == "separator":
            if MEDICATION_ALERT_START in content:
                self.result.alert_started = True
            elif MEDICATION_ALERT_END in content:
                self.result.alert_finished = True
        elif frame_type == "medication_alert":
            self._alert.append(content)
        else:
            self._analysis.append(content)


def assemble_nutrition_stream(chunks: Iterable[str]) -> NutritionStreamResult:
    assembler = NutritionStreamAssembler()
    for chunk in chunks:
        assembler.feed(chunk)
    return assembler.finish()
