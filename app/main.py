import logging
import traceback
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from app.api.router import api_router
from app.core.config import settings, validate_settings_for_production
from app.core.logging import setup_logging
from app.core.metrics import PrometheusMiddleware, metrics_response
from app.core.sentry import init_sentry
from app.gateway.dispatcher import FallbackDispatcher
from app.gateway.vendor_adapters import GeminiAdapter
from app.schemas.relay import GenerateErrorResponse
from app.web.router import web_router

# Configure logging before anything else
setup_logging()

logger = logging.getLogger(__name__)

INVALID_BODY_ERROR = "Invalid request body"


def build_dispatcher() -> FallbackDispatcher:
    """Build the process-wide dispatcher from the current settings."""
    config = settings.dispatch_config()
    backend = GeminiAdapter(
        api_key=settings.gemini_api_key,
        base_url=settings.gemini_api_base_url,
        api_version=settings.gemini_api_version,
    )
    return FallbackDispatcher(backend, config)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    validate_settings_for_production()
    init_sentry()

    app.state.dispatcher = build_dispatcher()
    config = app.state.dispatcher.config
    if not config.candidates:
        logger.warning("No usable Gemini model configured; every request will be refused")
    if not settings.gemini_api_key:
        logger.warning("GEMINI_API_KEY is not set; /api/gemini will return 500")

    logger.info(
        "Gemini relay ready: primary=%s fallbacks=%s debug=%s",
        config.primary,
        ",".join(config.candidates),
        config.debug_errors,
    )

    yield

    logger.info("Gemini relay shut down")


app = FastAPI(
    title="Gemini Relay",
    description="Single-endpoint Gemini relay with multi-model fallback",
    version="0.1.0",
    lifespan=lifespan,
)


# Body validation failures answer 400 in the relay error shape
@app.exception_handler(RequestValidationError)
async def _validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    logger.info(
        "Rejected %s %s: %s",
        request.method,
        request.url.path,
        ", ".join(str(e.get("type", "invalid")) for e in errors) or "invalid",
    )
    body = GenerateErrorResponse(error=INVALID_BODY_ERROR)
    return JSONResponse(status_code=400, content=body.model_dump(exclude_none=True))


# Log unhandled exceptions; the response never carries exception text
@app.exception_handler(Exception)
async def _unhandled_exception_handler(request: Request, exc: Exception):
    tb = traceback.format_exception(type(exc), exc, exc.__traceback__)
    logger.error("Unhandled %s on %s %s:\n%s", type(exc).__name__, request.method, request.url.path, "".join(tb))
    return JSONResponse(status_code=500, content={"ok": False, "error": "Internal server error"})


# Request metrics middleware
app.add_middleware(PrometheusMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

# Static files
if Path(settings.static_dir).is_dir():
    app.mount("/static", StaticFiles(directory=settings.static_dir), name="static")

# API routes
app.include_router(api_router)


@app.get("/metrics", include_in_schema=False)
async def metrics():
    return metrics_response()


# Web UI routes (catch-all, must stay last)
app.include_router(web_router)


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    uvicorn.run(app, host=settings.app_host, port=settings.app_port, log_config=None)
