from __future__ import annotations

import json
import logging
import re
import unicodedata
from typing import Any, Callable, Iterable, Iterator

from .models import PERSONAS, ChatRoute, MessageType
from .prompts import CLASSIFIER_SYSTEM_PROMPT, CLASSIFIER_USER_TEMPLATE, REWRITE_PROMPT, SYSTEM_PROMPTS

logger = logging.getLogger(__name__)

_THINK_TAG_RE = re.compile(r"</?think>")
_THINK_TAGS = ("<think>", "</think>")
DEFAULT_CHAT_TITLE = "Medication Assistant Discussion"

Completion = Callable[..., str]


def strip_think_tags(text: str) -> str:
    return _THINK_TAG_RE.sub("", text or "")


def parse_message_type(raw: str | None) -> MessageType:
    label = re.sub(r"[\s-]+", "_", (raw or "").strip().upper())
    label = re.sub(r"[^A-Z0-9_]", "", label)
    if label == "GLP_1":
        label = "GLP1"
    try:
        return MessageType(label)
    except ValueError:
        return MessageType.UNRELATED


def classification_messages(message: str) -> list[dict[str, str]]:
    return [
        {"role": "system", "content": CLASSIFIER_SYSTEM_PROMPT},
        {"role": "user", "content": CLASSIFIER_USER_TEMPLATE.format(message=message)},
    ]


def classify_message(message: str, complete: Completion) -> MessageType:
    """Run the single classification call; provider errors propagate."""
    raw = complete(messages=classification_messages(message), temperature=0, max_tokens=10)
    return parse_message_type(raw)


def select_route(message_type: MessageType, persona: str) -> ChatRoute:
    # Greetings win over persona; otherwise the persona prompt handles off-topic turns.
    if message_type is MessageType.GREETING:
        return ChatRoute(
            message_type=message_type,
            prompt_key="greeting",
            system_prompt=SYSTEM_PROMPTS["greeting"],
            provider="openai",
            max_tokens=1000,
        )
    if persona not in PERSONAS:
        raise ValueError(f"Unknown persona: {persona}")
    return ChatRoute(
        message_type=message_type,
        prompt_key=persona,
        system_prompt=SYSTEM_PROMPTS[persona],
        provider="perplexity",
        max_tokens=2000,
    )


def build_upstream_messages(
    route: ChatRoute,
    messages: list[dict[str, str]],
    include_history: bool,
) -> list[dict[str, str]]:
    selected = messages if include_history else messages[-1:]
    return [
        {"role": "system", "content": strip_think_tags(route.system_prompt)},
        *[
            {"role": turn["role"], "content": strip_think_tags(turn["content"])}
            for turn in selected
        ],
    ]


def _header_safe(text: str) -> str:
    collapsed = re.sub(r"\s+", " ", text or "").strip()
    # Accented letters fold to their base letter before non-ASCII is dropped.
    decomposed = unicodedata.normalize("NFKD", collapsed)
    return "".join(char for char in decomposed if 32 <= ord(char) < 127)


def chat_title(message: str, max_chars: int = 40) -> str:
    title = _header_safe(strip_think_tags(message))
    if not title:
        return DEFAULT_CHAT_TITLE
    if len(title) > max_chars:
        return title[:max_chars].rstrip() + "..."
    return title


def rewrite_title(message: str, complete: Completion) -> str | None:
    try:
        raw = complete(
            messages=[
                {"role": "system", "content": REWRITE_PROMPT},
                {"role": "user", "content": message},
            ],
            temperature=0.7,
            max_tokens=150,
        )
        payload: Any = json.loads(raw)
    except Exception as exc:
        logger.warning("title rewrite failed, using truncated message: %s", exc)
        return None
    if not isinstance(payload, dict):
        return None
    title = _header_safe(str(payload.get("title") or ""))
    if not title or not str(payload.get("rewritten_query") or "").strip():
        return None
    return title


class ThinkTagFilter:
    """Removes ``<think>`` delimiters from a chunked text stream.

    A tag split across chunk boundaries is held back until the next chunk
    decides whether it is a delimiter or plain text.
    """

    def __init__(self) -> None:
        self._pending = ""

    def feed(self, chunk: str) -> str:
        text = strip_think_tags(self._pending + chunk)
        self._pending = ""
        cut = text.rfind("<")
        if cut != -1:
            tail = text[cut:]
            if any(tag.startswith(tail) and tag != tail for tag in _THINK_TAGS):
                self._pending = tail
                text = text[:cut]
        return text

    def flush(self) -> str:
        tail, self._pending = self._pending, ""
        return tail

    def filter(self, chunks: Iterable[str]) -> Iterator[str]:
        for chunk in chunks:
            cleaned = self.feed(chunk)
            if cleaned:
                yield cleaned
        tail = self.flush()
        if tail:
            yield tail
