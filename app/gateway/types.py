"""Core types and DTOs for the Gemini fallback dispatcher."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

# A backend model identifier, e.g. "gemini-1.5-flash"
ModelCandidate = str

# Ordered, de-duplicated fallback priority (primary first)
CandidateList = tuple[ModelCandidate, ...]


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class ErrorKind(str, Enum):
    """Classification of a failed generation attempt."""

    MODEL_NOT_FOUND = "model_not_found"
    UNSUPPORTED = "unsupported"
    PERMISSION = "permission"
    QUOTA = "quota"
    NETWORK = "network"
    EMPTY_RESPONSE = "empty_response"
    UNKNOWN = "unknown"


# ---------------------------------------------------------------------------
# Dispatch configuration, built once at startup, never mutated
# ---------------------------------------------------------------------------

DEFAULT_SYSTEM_INSTRUCTION = (
    "Answer in plain text only. Describe any structure (sections, lists, steps) "
    "with plain line labels and line breaks. Do not use markdown emphasis or "
    "heading markers such as asterisks (*) or hash signs (#)."
)


@dataclass(frozen=True)
class DispatchConfig:
    """Immutable dispatcher configuration."""

    candidates: CandidateList = ()
    system_instruction: str = DEFAULT_SYSTEM_INSTRUCTION
    attempt_timeout_seconds: float = 60.0
    debug_errors: bool = False

    @property
    def primary(self) -> ModelCandidate | None:
        return self.candidates[0] if self.candidates else None


# ---------------------------------------------------------------------------
# Attempts and results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AttemptError:
    """Why an attempt (or the whole dispatch) failed.

    ``kind`` is None when dispatch was refused before any call was made.
    """

    message: str
    kind: ErrorKind | None = None
    recoverable: bool = False


@dataclass(frozen=True)
class GenerationAttempt:
    """One generation call against one candidate. Immutable once recorded."""

    candidate: ModelCandidate
    started_at: datetime
    latency_ms: int = 0
    text: str | None = None
    error: AttemptError | None = None
    status_code: int = 0  # backend HTTP status of a failed call, 0 when there was none

    @property
    def succeeded(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "model": self.candidate,
            "started_at": self.started_at.isoformat(),
            "latency_ms": self.latency_ms,
            "succeeded": self.succeeded,
            "error_kind": self.error.kind.value if self.error and self.error.kind else None,
            "status_code": self.status_code,
        }


@dataclass
class DispatchResult:
    """Outcome of a dispatch across the candidate list.

    ``tried`` lists every candidate actually called, in call order.
    ``model_ms`` is the latency of the winning attempt only.
    """

    succeeded: bool = False
    text: str = ""
    model: ModelCandidate | None = None
    tried: list[ModelCandidate] = field(default_factory=list)
    total_ms: int = 0
    model_ms: int = 0
    last_error: AttemptError | None = None
    attempts: list[GenerationAttempt] = field(default_factory=list)
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def error_kind(self) -> ErrorKind | None:
        return self.last_error.kind if self.last_error else None

    def to_dict(self, include_error_message: bool = True) -> dict[str, Any]:
        """Serialize to JSON-compatible dict for the dispatch trace log.

        ``error_message`` is None unless ``include_error_message`` is set.
        """
        return {
            "succeeded": self.succeeded,
            "text_length": len(self.text),
            "model": self.model,
            "tried": list(self.tried),
            "total_ms": self.total_ms,
            "model_ms": self.model_ms,
            "error_kind": self.error_kind.value if self.error_kind else None,
            "error_message": self.last_error.message if self.last_error and include_error_message else None,
            "attempts": [a.to_dict() for a in self.attempts],
            "started_at": self.started_at.isoformat(),
        }
