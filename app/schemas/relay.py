"""Request/response models for the relay endpoints."""

from pydantic import BaseModel, Field


class GenerateRequest(BaseModel):
    prompt: str | None = Field("", max_length=100_000)


class GenerateResponse(BaseModel):
    ok: bool = True
    text: str
    model: str
    tried: list[str]
    ms: int
    model_ms: int


class GenerateErrorResponse(BaseModel):
    ok: bool = False
    error: str
    tried: list[str] = []
    ms: int | None = None
    detail: str | None = None  # last backend error, only when DEBUG_ERRORS is on


class StatusResponse(BaseModel):
    ok: bool = True
    ts: int  # epoch milliseconds
    has_key: bool
    primary: str | None
    fallbacks: list[str]
    allowed_prefixes: list[str]
    debug: bool
