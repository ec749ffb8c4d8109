"""Failure classification for generation attempts.

An ordered table of rules decides, from the backend error message alone,
whether the dispatcher should move on to the next candidate or stop:

  - model not found / unsupported → the name is wrong for this key/region,
    another candidate may work (recoverable)
  - everything else → will fail the same way for every candidate (abort)

Rules are evaluated top to bottom, first match wins. Matching is a
case-insensitive substring test. Add new backend error patterns by adding
rows to ``FAILURE_RULES``.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from app.gateway.types import AttemptError, ErrorKind

Predicate = Callable[[str], bool]


def contains_any(*tokens: str) -> Predicate:
    """Build a predicate matching a lowercased message containing any token."""
    lowered = tuple(t.lower() for t in tokens)

    def _match(message: str) -> bool:
        return any(t in message for t in lowered)

    return _match


@dataclass(frozen=True)
class FailureRule:
    kind: ErrorKind
    recoverable: bool
    predicate: Predicate


_NETWORK_TOKENS = (
    "network",
    "fetch",
    "econnreset",
    "connection reset",
    "connection refused",
    "enotfound",
    "getaddrinfo",
    "name or service not known",
    "timeout",
    "timed out",
    "etimedout",
)

FAILURE_RULES: tuple[FailureRule, ...] = (
    FailureRule(ErrorKind.MODEL_NOT_FOUND, True, contains_any("not found")),
    FailureRule(ErrorKind.UNSUPPORTED, True, contains_any("unsupported", "is not supported")),
    FailureRule(ErrorKind.PERMISSION, False, contains_any("permission")),
    FailureRule(ErrorKind.QUOTA, False, contains_any("quota", "exceed")),
    FailureRule(ErrorKind.NETWORK, False, contains_any(*_NETWORK_TOKENS)),
    FailureRule(ErrorKind.EMPTY_RESPONSE, False, contains_any("empty response", "no usable text")),
)

# Fallback when no rule matches
UNKNOWN_RULE = FailureRule(ErrorKind.UNKNOWN, False, lambda _message: True)


def match_rule(message: str, rules: tuple[FailureRule, ...] = FAILURE_RULES) -> FailureRule:
    """Return the first rule matching ``message`` (or ``UNKNOWN_RULE``)."""
    lowered = (message or "").lower()
    for rule in rules:
        if rule.predicate(lowered):
            return rule
    return UNKNOWN_RULE


def classify_error(message: str, rules: tuple[FailureRule, ...] = FAILURE_RULES) -> AttemptError:
    """Classify a backend error message into an ``AttemptError``."""
    rule = match_rule(message, rules)
    return AttemptError(message=message or "", kind=rule.kind, recoverable=rule.recoverable)

