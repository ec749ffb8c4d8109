"""Relay endpoints.

Provides:
  - POST /api/gemini: normalize the prompt, dispatch across candidate models
  - GET /api/status: configuration summary (never the key itself)
"""

from __future__ import annotations

import asyncio
import logging
import time

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.dependencies import get_dispatcher
from app.gateway.dispatcher import FallbackDispatcher
from app.gateway.normalizer import normalize_prompt
from app.gateway.types import DispatchResult
from app.schemas.relay import (
    GenerateErrorResponse,
    GenerateRequest,
    GenerateResponse,
    StatusResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["relay"])

# Max chars of the last backend error returned as "detail" in debug mode
DETAIL_LIMIT = 500

# How often an in-flight dispatch checks whether the client went away
DISCONNECT_POLL_SECONDS = 0.5

# nginx convention for "client closed request"
CLIENT_CLOSED_REQUEST = 499


def _error(status_code: int, error: str, **fields) -> JSONResponse:
    body = GenerateErrorResponse(error=error, **fields)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


async def _dispatch_until_disconnect(
    request: Request,
    dispatcher: FallbackDispatcher,
    prompt: str,
) -> DispatchResult | None:
    """Run dispatch, cancelling it if the client disconnects. None means cancelled."""
    task = asyncio.create_task(dispatcher.dispatch(prompt))
    try:
        while not task.done():
            await asyncio.wait({task}, timeout=DISCONNECT_POLL_SECONDS)
            if not task.done() and await request.is_disconnected():
                logger.info("Client disconnected, abandoning dispatch")
                return None
        return task.result()
    finally:
        if not task.done():
            task.cancel()


@router.post(
    "/gemini",
    response_model=GenerateResponse,
    responses={
        400: {"model": GenerateErrorResponse},
        500: {"model": GenerateErrorResponse},
        502: {"model": GenerateErrorResponse},
    },
)
async def generate(
    body: GenerateRequest,
    request: Request,
    dispatcher: FallbackDispatcher = Depends(get_dispatcher),
):
    """Generate text, falling back across the configured models."""
    if not settings.gemini_api_key:
        return _error(500, "Missing GEMINI_API_KEY")

    prompt = (body.prompt or "").strip()
    if not prompt:
        return _error(400, "Empty prompt")

    result = await _dispatch_until_disconnect(request, dispatcher, normalize_prompt(prompt))
    if result is None:
        return Response(status_code=CLIENT_CLOSED_REQUEST)

    if result.succeeded:
        return GenerateResponse(
            text=result.text,
            model=result.model or "",
            tried=result.tried,
            ms=result.total_ms,
            model_ms=result.model_ms,
        )

    last_error = result.last_error
    if last_error is not None and last_error.kind is None:
        # Refused before any call: operator configuration problem
        return _error(500, last_error.message, tried=result.tried, ms=result.total_ms)

    detail = None
    if dispatcher.config.debug_errors and last_error is not None:
        detail = last_error.message[:DETAIL_LIMIT]

    return _error(502, "Gemini request failed", tried=result.tried, ms=result.total_ms, detail=detail)


@router.get("/status", response_model=StatusResponse)
async def status(dispatcher: FallbackDispatcher = Depends(get_dispatcher)):
    config = dispatcher.config
    return StatusResponse(
        ts=int(time.time() * 1000),
        has_key=bool(settings.gemini_api_key),
        primary=config.primary,
        fallbacks=list(config.candidates),
        allowed_prefixes=settings.allowed_prefixes,
        debug=config.debug_errors,
    )


@router.get("/health")
async def health():
    return {"status": "ok"}
