"""Vendor adapters: protocol-level handling for the generation backend.

An adapter turns (model, prompt, system instruction) into one HTTP call and
returns the generated text, or raises ``GenerationError`` with a
human-readable message. The message is what the failure classifier looks at,
so adapters keep backend wording intact (truncated) and prefix transport
failures with "Network".

  - Gemini: Google AI generateContent, systemInstruction, SAFETY / prompt
    blocks surface as empty responses
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod

import httpx

logger = logging.getLogger(__name__)

# Max chars of backend error body carried in an error message
ERROR_BODY_LIMIT = 500


class GenerationError(Exception):
    """Raised when a generation call fails for any reason."""

    def __init__(self, message: str, status_code: int = 0):
        super().__init__(message)
        self.status_code = status_code


class BaseVendorAdapter(ABC):
    """Base class for generation backends."""

    def __init__(self, api_key: str, **kwargs):
        self.api_key = api_key

    @abstractmethod
    async def generate(
        self,
        model: str,
        prompt: str,
        system_instruction: str = "",
        timeout: float = 60.0,
    ) -> str:
        """Run one generation call and return the text."""
        ...


# ---------------------------------------------------------------------------
# Gemini Adapter (Google AI)
# ---------------------------------------------------------------------------


class GeminiAdapter(BaseVendorAdapter):
    """Google Gemini ``generateContent`` adapter."""

    default_base_url = "https://generativelanguage.googleapis.com"
    default_api_version = "v1beta"

    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        api_version: str | None = None,
        **kwargs,
    ):
        super().__init__(api_key, **kwargs)
        self.base_url = (base_url or self.default_base_url).rstrip("/")
        self.api_version = (api_version or self.default_api_version).strip("/")

    def build_url(self, model: str) -> str:
        return f"{self.base_url}/{self.api_version}/models/{model}:generateContent"

    @staticmethod
    def build_payload(prompt: str, system_instruction: str = "") -> dict:
        payload: dict = {
            "contents": [
                {
                    "role": "user",
                    "parts": [{"text": prompt}],
                }
            ],
        }
        # System instruction (separate from contents in Gemini API)
        if system_instruction:
            payload["systemInstruction"] = {
                "parts": [{"text": system_instruction}],
            }
        return payload

    async def generate(
        self,
        model: str,
        prompt: str,
        system_instruction: str = "",
        timeout: float = 60.0,
    ) -> str:
        start = time.monotonic()

        try:
            async with httpx.AsyncClient(timeout=timeout) as client:
                resp = await client.post(
                    self.build_url(model),
                    json=self.build_payload(prompt, system_instruction),
                    params={"key": self.api_key},
                    headers={"Content-Type": "application/json"},
                )
        except httpx.TimeoutException as e:
            raise GenerationError(f"Network timeout after {timeout}s: {type(e).__name__}") from e
        except httpx.TransportError as e:
            raise GenerationError(f"Network error: {type(e).__name__}: {e}") from e

        logger.debug(
            "Gemini %s responded %d in %dms",
            model,
            resp.status_code,
            int((time.monotonic() - start) * 1000),
        )

        if resp.is_error:
            body = resp.text[:ERROR_BODY_LIMIT]
            raise GenerationError(
                f"HTTP {resp.status_code} {resp.reason_phrase} - {body}",
                status_code=resp.status_code,
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise GenerationError("Empty response: body is not valid JSON") from e

        return self.extract_text(data)

    @staticmethod
    def extract_text(data) -> str:
        """Join the text parts of the first candidate; raise if there are none."""
        if not isinstance(data, dict):
            raise GenerationError("Empty response: malformed body")

        candidates = data.get("candidates") or []
        if not isinstance(candidates, list):
            raise GenerationError("Empty response: malformed body")
        if not candidates:
            feedback = data.get("promptFeedback")
            block_reason = feedback.get("blockReason", "") if isinstance(feedback, dict) else ""
            if block_reason:
                raise GenerationError(f"Empty response: prompt blocked ({block_reason})")
            raise GenerationError("Empty response: no candidates")

        candidate = candidates[0]
        if not isinstance(candidate, dict):
            raise GenerationError("Empty response: malformed body")
        content = candidate.get("content")
        parts = content.get("parts") if isinstance(content, dict) else None
        if not isinstance(parts, list):
            parts = []
        text = "\n".join(
            p["text"] for p in parts if isinstance(p, dict) and isinstance(p.get("text"), str) and p["text"]
        ).strip()
        if not text:
            finish_reason = candidate.get("finishReason", "")
            suffix = f" (finishReason={finish_reason})" if finish_reason else ""
            raise GenerationError(f"Empty response: no usable text{suffix}")
        return text
