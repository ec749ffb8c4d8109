"""Candidate list construction from operator configuration.

The primary model and the comma-separated fallback list come from the
environment, so names are cleaned and validated before they can end up in a
request URL path.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable

from app.gateway.types import CandidateList

logger = logging.getLogger(__name__)

_VALID_NAME = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")
_LATEST_SUFFIX = "-latest"
_RESOURCE_PREFIX = "models/"


def split_csv(value: str | None) -> list[str]:
    """Split a comma-separated setting into trimmed, non-empty parts."""
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def clean_model_name(name: str) -> str:
    """Trim, drop a leading ``models/`` prefix and a trailing ``-latest`` suffix."""
    name = name.strip()
    if name.startswith(_RESOURCE_PREFIX):
        name = name[len(_RESOURCE_PREFIX) :]
    if name.endswith(_LATEST_SUFFIX):
        name = name[: -len(_LATEST_SUFFIX)]
    return name.strip()


def is_safe_model_name(name: str) -> bool:
    """Reject traversal-like or otherwise malformed identifiers."""
    return bool(name) and ".." not in name and _VALID_NAME.match(name) is not None


def build_candidate_list(
    primary: str | None,
    fallbacks: Iterable[str] = (),
    allowed_prefixes: Iterable[str] = (),
) -> CandidateList:
    """Build the ordered, de-duplicated candidate list.

    Order: primary first, then fallbacks as given. Empty ``allowed_prefixes``
    disables prefix filtering.
    """
    prefixes = tuple(p.strip() for p in allowed_prefixes if p and p.strip())
    raw = [primary or "", *fallbacks]

    seen: set[str] = set()
    result: list[str] = []
    for entry in raw:
        name = clean_model_name(entry)
        if not name:
            continue
        if not is_safe_model_name(name):
            logger.warning("Ignoring malformed model name %r", entry)
            continue
        if prefixes and not name.startswith(prefixes):
            logger.warning("Ignoring model %s: not in allowed prefixes %s", name, ",".join(prefixes))
            continue
        if name not in seen:
            seen.add(name)
            result.append(name)

    return tuple(result)
