from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Feature(str, Enum):
    CHAT = "chat"
    CALCULATOR = "calculator"


class EntryKind(str, Enum):
    MESSAGES = "messages"
    TITLE = "title"
    PERSONA = "persona"
    IMAGE = "image"
    RESULTS = "results"


FEATURE_KINDS = {
    Feature.CHAT: frozenset({EntryKind.MESSAGES, EntryKind.TITLE, EntryKind.PERSONA}),
    Feature.CALCULATOR: frozenset({EntryKind.IMAGE, EntryKind.RESULTS}),
}


@dataclass(frozen=True)
class SessionKey:
    feature: Feature
    session_id: str
    kind: EntryKind

    @classmethod
    def chat_messages(cls, session_id: str) -> "SessionKey":
        return cls(Feature.CHAT, session_id, EntryKind.MESSAGES)

    @classmethod
    def chat_title(cls, session_id: str) -> "SessionKey":
        return cls(Feature.CHAT, session_id, EntryKind.TITLE)

    @classmethod
    def chat_persona(cls, session_id: str) -> "SessionKey":
        return cls(Feature.CHAT, session_id, EntryKind.PERSONA)

    @classmethod
    def calculator_image(cls, session_id: str) -> "SessionKey":
        return cls(Feature.CALCULATOR, session_id, EntryKind.IMAGE)

    @classmethod
    def calculator_results(cls, session_id: str) -> "SessionKey":
        return cls(Feature.CALCULATOR, session_id, EntryKind.RESULTS)
