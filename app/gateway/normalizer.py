"""Prompt and response normalization.

Applied around the dispatcher:
  - before dispatch: reorders the ``CORE:`` instrument list embedded in the
    prompt into a canonical, priority-sorted order
  - after a successful attempt: strips markdown emphasis markers from the
    generated text

Both functions are pure and idempotent.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

# Core instruments, highest priority first
CORE_PRIORITY: tuple[str, ...] = (
    "Piano",
    "Breakbeat Drums",
    "Reese Bass",
    "Sub Bass",
    "Atmos Pad",
    "Synth Lead",
    "Amen Break",
)

# "CORE: a, b, c |": the list runs to the next pipe or end of text
_CORE_FIELD = re.compile(r"(?P<label>CORE:)\s*(?P<items>[^|]*)", re.IGNORECASE)

_EMPHASIS_MARKERS = re.compile(r"[*#]")


def sort_core(items: Sequence[str], priority: Sequence[str] = CORE_PRIORITY) -> list[str]:
    """Priority items first (in priority order), then the rest in original order."""
    head = [p for p in priority if p in items]
    tail = [i for i in items if i not in priority]
    return head + tail


def split_items(raw: str) -> list[str]:
    """Split a comma-separated field value, dropping blank entries."""
    return [part.strip() for part in raw.split(",") if part.strip()]


def normalize_prompt(prompt: str, priority: Sequence[str] = CORE_PRIORITY) -> str:
    """Rewrite the first ``CORE:`` field of ``prompt`` in priority order.

    Returns the prompt unchanged when there is no ``CORE:`` field or the
    field holds no items.
    """
    match = _CORE_FIELD.search(prompt)
    if match is None:
        return prompt

    raw = match.group("items")
    items = split_items(raw)
    if not items:
        return prompt

    trailing = raw[len(raw.rstrip()) :]
    rewritten = f"{match.group('label')} {', '.join(sort_core(items, priority))}{trailing}"
    return prompt[: match.start()] + rewritten + prompt[match.end() :]


def clean_response_text(text: str) -> str:
    """Remove ``*`` and ``#`` markers and trim surrounding whitespace."""
    if not text:
        return ""
    return _EMPHASIS_MARKERS.sub("", text).strip()
