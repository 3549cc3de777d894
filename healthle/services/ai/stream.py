"""Decoder for the assistant's `data: ` prefixed JSON-lines stream."""

import json
from typing import Any

from healthle.core.logging import get_logger

logger = get_logger(__name__)

DATA_PREFIX = "data: "


def extract_delta_text(event: Any) -> str | None:
    """
    Pull the text fragment out of one stream event.

    Events look like ``{"delta": {"content": [{"text": {"value": "..."}}]}}``;
    anything else (status events, empty content) carries no text.
    """
    if not isinstance(event, dict):
        return None
    delta = event.get("delta")
    if not isinstance(delta, dict):
        return None
    content = delta.get("content")
    if not isinstance(content, list) or not content:
        return None
    first = content[0]
    if not isinstance(first, dict):
        return None
    text = first.get("text")
    if not isinstance(text, dict):
        return None
    value = text.get("value")
    return value if isinstance(value, str) else None


class StreamDecoder:
    """
    Assemble an answer from the assistant's event lines.

    Lines come from ``response.aiter_lines()``, which already decodes UTF-8
    across chunk boundaries and holds back a partial line until it is
    complete or the body ends.
    """

    def __init__(self) -> None:
        self.text = ""
        self.malformed_lines = 0

    def feed(self, line: str) -> str | None:
        """Parse one line and return the text fragment it added, if any."""
        fragment = self._parse_line(line)
        if fragment:
            self.text += fragment
        return fragment or None

    def _parse_line(self, line: str) -> str | None:
        stripped = line.strip()
        if not stripped.startswith(DATA_PREFIX):
            return None

        payload = stripped[len(DATA_PREFIX):]
        if payload == "[DONE]":
            return None

        try:
            event = json.loads(payload)
        except json.JSONDecodeError as e:
            self.malformed_lines += 1
            logger.error("Failed to parse stream event", error=str(e), line_length=len(stripped))
            return None

        return extract_delta_text(event)
