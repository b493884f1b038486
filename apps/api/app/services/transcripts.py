"""Transcript rendering helpers."""
from __future__ import annotations

import math
import re
from collections.abc import Iterable

from ..schemas.bland import CallDetails, TranscriptTurn

ASSISTANT_MARKER = "assistant:"
USER_MARKER = "user:"
ASSISTANT_GLYPH = "👨‍💼"
CUSTOMER_GLYPH = "👤"
CUSTOMER_LABEL = "Customer"

_LEADING_NUMBER = re.compile(r"\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def _assistant_prefix(agent_name: str) -> str:
    return f"{ASSISTANT_GLYPH} {agent_name}: "


def _customer_prefix() -> str:
    return f"{CUSTOMER_GLYPH} {CUSTOMER_LABEL}: "


def format_line(line: str, agent_name: str) -> str:
    """Re-tag a single ``assistant:``/``user:`` line; other lines pass through."""

    stripped = line.strip()
    if stripped.startswith(ASSISTANT_MARKER):
        return _assistant_prefix(agent_name) + stripped[len(ASSISTANT_MARKER):].strip()
    if stripped.startswith(USER_MARKER):
        return _customer_prefix() + stripped[len(USER_MARKER):].strip()
    return line


def format_transcript(raw: str, agent_name: str) -> str:
    """Annotate a raw role-tagged transcript with speaker labels and glyphs."""

    return "\n".join(format_line(line, agent_name) for line in raw.split("\n"))


def join_turns(turns: Iterable[TranscriptTurn], agent_name: str) -> str:
    """Render provider transcript turns one per line."""

    lines = []
    for turn in turns:
        prefix = _assistant_prefix(agent_name) if turn.user == "assistant" else _customer_prefix()
        lines.append(f"{prefix}{turn.text or ''}")
    return "\n".join(lines)


def derive_transcript(details: CallDetails, agent_name: str) -> str | None:
    """Pick the best transcript the provider offers for display.

    The pre-concatenated transcript wins; individual turns are only joined
    when it is absent. Returns ``None`` when neither is available.
    """

    if details.concatenated_transcript:
        return format_transcript(details.concatenated_transcript, agent_name)
    if details.transcripts:
        return join_turns(details.transcripts, agent_name)
    return None


def parse_duration(value: object) -> float:
    """Parse a provider duration in seconds, falling back to 0.

    Strings are read up to the first non-numeric character, so ``"12.5s"``
    yields 12.5.
    """

    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        duration = float(value)
    elif isinstance(value, str):
        match = _LEADING_NUMBER.match(value)
        if match is None:
            return 0.0
        duration = float(match.group())
    else:
        return 0.0
    if not math.isfinite(duration) or duration < 0:
        return 0.0
    return duration
