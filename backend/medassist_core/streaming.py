from __future__ import annotations

import json
import logging
from typing import Callable, Iterable, Iterator

from .models import DONE_SENTINEL, MEDICATION_ALERT_END, MEDICATION_ALERT_START, FrameType
from .prompts import MEDICATION_ALERT_PROMPT
from .schemas import Medication

logger = logging.getLogger(__name__)

AlertStreamOpener = Callable[[str], Iterable[str]]


def emit_frame(content: str, frame_type: FrameType) -> str:
    return f"data: {json.dumps({'content': content, 'type': frame_type.value})}\n\n"


def emit_done() -> str:
    return f"data: {DONE_SENTINEL}\n\n"


def format_medications(medications: list[Medication]) -> str:
    lines = []
    for med in medications:
        line = f"- {med.name} ({med.dosage}, {med.frequency}, taken: {', '.join(med.timeOfDay)})"
        if med.notes:
            line += f" - Notes: {med.notes}"
        lines.append(line)
    return "\n".join(lines)


def build_alert_prompt(
    medications: list[Medication],
    food_analysis: str,
    timing_context: str | None = None,
) -> str:
    return MEDICATION_ALERT_PROMPT.format(
        medications=format_medications(medications),
        timing_context=(timing_context or "").strip() or "Not specified",
        food_analysis=food_analysis,
    )


def nutrition_event_stream(
    analysis_chunks: Iterable[str],
    medications: list[Medication],
    open_alert_stream: AlertStreamOpener,
) -> Iterator[str]:
    """Relay the food analysis, then the medication alert, as SSE frames.

    ``open_alert_stream`` receives the full analysis text and returns the
    second model call's chunks. A failure in either call ends the stream
    without the ``[DONE]`` frame.
    """
    analysis_parts: list[str] = []
    try:
        for text in analysis_chunks:
            if not text:
                continue
            analysis_parts.append(text)
            yield emit_frame(text, FrameType.ANALYSIS)

        if medications:
            alert_chunks = open_alert_stream("".join(analysis_parts))
            yield emit_frame(f"\n\n{MEDICATION_ALERT_START}\n\n", FrameType.SEPARATOR)
            for text in alert_chunks:
                if text:
                    yield emit_frame(text, FrameType.MEDICATION_ALERT)
            yield emit_frame(f"\n\n{MEDICATION_ALERT_END}\n\n", FrameType.SEPARATOR)

        yield emit_done()
    except Exception:
        logger.exception("nutrition stream aborted")
