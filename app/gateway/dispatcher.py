"""Fallback Dispatcher: tries candidate models in priority order.

For one prompt:
  1. Refuses up front on an empty prompt or an empty candidate list
  2. Calls each candidate in order, one at a time (never raced)
  3. First success wins: text is cleaned and returned immediately
  4. Recoverable failures (model not found / unsupported) → next candidate
  5. Any other failure stops dispatch and is reported as the last error

Usage:
    dispatcher = FallbackDispatcher(GeminiAdapter(api_key="..."), config)
    result = await dispatcher.dispatch("CORE: Piano, Sub Bass | ...")
"""

from __future__ import annotations

import json
import logging
import time
from datetime import datetime, timezone

from app.core.metrics import DISPATCH_ATTEMPTS, DISPATCH_RESULTS
from app.gateway.classifier import classify_error
from app.gateway.normalizer import clean_response_text
from app.gateway.types import (
    AttemptError,
    DispatchConfig,
    DispatchResult,
    GenerationAttempt,
    ModelCandidate,
)
from app.gateway.vendor_adapters import BaseVendorAdapter, GenerationError

logger = logging.getLogger(__name__)

# Max chars of a backend error message written to logs
LOG_ERROR_LIMIT = 500


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


class FallbackDispatcher:
    """Sequential first-success-wins dispatcher over a fixed candidate list.

    Holds no per-request state; a single instance serves all requests.
    """

    def __init__(self, backend: BaseVendorAdapter, config: DispatchConfig):
        self.backend = backend
        self.config = config

    @property
    def candidates(self) -> tuple[ModelCandidate, ...]:
        return self.config.candidates

    async def dispatch(self, prompt: str) -> DispatchResult:
        """Try each candidate until one succeeds, the list ends, or a hard failure."""
        start = time.monotonic()
        result = DispatchResult()

        if not prompt or not prompt.strip():
            result.last_error = AttemptError(message="Empty prompt")
            return self._finish(result, start)

        if not self.candidates:
            result.last_error = AttemptError(message="No candidate models configured")
            return self._finish(result, start)

        for number, model in enumerate(self.candidates, start=1):
            result.tried.append(model)
            attempt = await self._attempt(model, prompt)
            result.attempts.append(attempt)

            if attempt.succeeded:
                result.succeeded = True
                result.text = attempt.text or ""
                result.model = model
                result.model_ms = attempt.latency_ms
                result.last_error = None
                return self._finish(result, start)

            error = attempt.error
            result.last_error = error
            self._log_failure(attempt, number)

            if not error.recoverable:
                break

        return self._finish(result, start)

    async def _attempt(self, model: ModelCandidate, prompt: str) -> GenerationAttempt:
        """Run one generation call. Exceptions become a classified attempt."""
        started_at = datetime.now(timezone.utc)
        start = time.monotonic()

        try:
            raw = await self.backend.generate(
                model,
                prompt,
                system_instruction=self.config.system_instruction,
                timeout=self.config.attempt_timeout_seconds,
            )
        except Exception as e:
            error = classify_error(str(e))
            DISPATCH_ATTEMPTS.labels(model=model, outcome=error.kind.value).inc()
            return GenerationAttempt(
                candidate=model,
                started_at=started_at,
                latency_ms=_elapsed_ms(start),
                error=error,
                status_code=e.status_code if isinstance(e, GenerationError) else 0,
            )

        text = clean_response_text(raw)
        if not text:
            # Nothing left once markers are stripped
            error = classify_error("Empty response: no usable text")
            DISPATCH_ATTEMPTS.labels(model=model, outcome=error.kind.value).inc()
            return GenerationAttempt(
                candidate=model,
                started_at=started_at,
                latency_ms=_elapsed_ms(start),
                error=error,
            )

        DISPATCH_ATTEMPTS.labels(model=model, outcome="success").inc()
        return GenerationAttempt(
            candidate=model,
            started_at=started_at,
            latency_ms=_elapsed_ms(start),
            text=text,
        )

    def _log_failure(self, attempt: GenerationAttempt, number: int) -> None:
        error = attempt.error
        action = "trying next candidate" if error.recoverable else "stopping"
        context = {
            "model": attempt.candidate,
            "attempt": number,
            "error_kind": error.kind.value,
            "status_code": attempt.status_code,
        }
        if self.config.debug_errors:
            logger.warning(
                "Model %s failed (%s), %s: %s",
                attempt.candidate,
                error.kind.value,
                action,
                error.message[:LOG_ERROR_LIMIT],
                extra=context,
            )
        else:
            logger.info("Model %s failed (%s), %s", attempt.candidate, error.kind.value, action, extra=context)

    def _finish(self, result: DispatchResult, start: float) -> DispatchResult:
        result.total_ms = _elapsed_ms(start)
        DISPATCH_RESULTS.labels(status="success" if result.succeeded else "failed").inc()
        context = {
            "model": result.model,
            "attempt": len(result.tried),
            "error_kind": result.error_kind.value if result.error_kind else None,
        }
        if result.succeeded:
            logger.info(
                "Dispatch succeeded with %s after %d attempt(s) in %dms",
                result.model,
                len(result.tried),
                result.total_ms,
                extra=context,
            )
        elif result.tried:
            logger.info(
                "Dispatch failed after trying %s (%s)",
                ",".join(result.tried),
                result.error_kind.value if result.error_kind else "unknown",
                extra=context,
            )
        else:
            logger.warning("Dispatch refused: %s", result.last_error.message if result.last_error else "")

        if logger.isEnabledFor(logging.DEBUG):
            trace = result.to_dict(include_error_message=self.config.debug_errors)
            logger.debug("Dispatch trace: %s", json.dumps(trace, ensure_ascii=False))
        return result
