from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient

from app.core.config import settings

# Override settings for tests
settings.gemini_api_key = "test-key"
settings.debug_errors = False
settings.app_env = "development"

from app.core.dependencies import get_dispatcher  # noqa: E402
from app.gateway.dispatcher import FallbackDispatcher  # noqa: E402
from app.gateway.types import DispatchConfig  # noqa: E402
from app.gateway.vendor_adapters import BaseVendorAdapter, GenerationError  # noqa: E402
from app.main import app  # noqa: E402


class ScriptedBackend(BaseVendorAdapter):
    """Backend whose per-model outcome is scripted.

    ``script`` maps model → text to return, or an Exception to raise.
    Models missing from the script raise "model not found".
    """

    def __init__(self, script: dict | None = None):
        super().__init__(api_key="test-key")
        self.script = script or {}
        self.calls: list[str] = []
        self.prompts: list[str] = []
        self.system_instructions: list[str] = []

    async def generate(self, model, prompt, system_instruction="", timeout=60.0):
        self.calls.append(model)
        self.prompts.append(prompt)
        self.system_instructions.append(system_instruction)
        outcome = self.script.get(
            model,
            GenerationError(f"HTTP 404 Not Found - models/{model} is not found", status_code=404),
        )
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


@pytest.fixture
def backend() -> ScriptedBackend:
    return ScriptedBackend()


@pytest.fixture
def make_dispatcher():
    def _make(backend: BaseVendorAdapter, candidates=("gemini-a", "gemini-b", "gemini-c"), **config_kwargs):
        return FallbackDispatcher(backend, DispatchConfig(candidates=tuple(candidates), **config_kwargs))

    return _make


@pytest.fixture
def dispatcher(backend, make_dispatcher) -> FallbackDispatcher:
    return make_dispatcher(backend)


@pytest.fixture
async def client(dispatcher: FallbackDispatcher) -> AsyncGenerator[AsyncClient, None]:
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as c:
            yield c
    finally:
        app.dependency_overrides.pop(get_dispatcher, None)
