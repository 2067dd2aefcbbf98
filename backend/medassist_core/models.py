from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class MessageType(str, Enum):
    GREETING = "GREETING"
    GLP1 = "GLP1"
    GENERAL_MEDICATION = "GENERAL_MEDICATION"
    UNRELATED = "UNRELATED"


class FrameType(str, Enum):
    ANALYSIS = "analysis"
    MEDICATION_ALERT = "medication_alert"
    SEPARATOR = "separator"


PERSONAS = ("general_med", "glp1")
MEDICATION_ALERT_START = "---MEDICATION_ALERT_START---"
MEDICATION_ALERT_END = "---MEDICATION_ALERT_END---"
DONE_SENTINEL = "[DONE]"


@dataclass(frozen=True)
class ChatRoute:
    message_type: MessageType
    prompt_key: str
    system_prompt: str
    provider: str
    max_tokens: int
    temperature: float = 0.7
