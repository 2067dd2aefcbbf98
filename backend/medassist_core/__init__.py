from .models import (
    DONE_SENTINEL,
    MEDICATION_ALERT_END,
    MEDICATION_ALERT_START,
    PERSONAS,
    ChatRoute,
    FrameType,
    MessageType,
)
from .routing import ThinkTagFilter, chat_title, classify_message, select_route, strip_think_tags

__all__ = [
    "DONE_SENTINEL",
    "MEDICATION_ALERT_END",
    "MEDICATION_ALERT_START",
    "PERSONAS",
    "ChatRoute",
    "FrameType",
    "MessageType",
    "ThinkTagFilter",
    "chat_title",
    "classify_message",
    "select_route",
    "strip_think_tags",
]
