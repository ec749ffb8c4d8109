from pydantic_settings import BaseSettings, SettingsConfigDict

from app.gateway.candidates import build_candidate_list, split_csv
from app.gateway.types import DEFAULT_SYSTEM_INSTRUCTION, DispatchConfig


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Gemini
    gemini_api_key: str = ""
    gemini_api_base_url: str = "https://generativelanguage.googleapis.com"
    gemini_api_version: str = "v1beta"
    gemini_model: str = "gemini-1.5-flash"
    gemini_model_fallbacks: str = "gemini-1.5-pro,gemini-pro"  # comma-separated, tried after the primary
    model_allowed_prefixes: str = "gemini-"  # comma-separated; empty disables the filter

    # Dispatch
    attempt_timeout_seconds: float = 60.0
    system_instruction: str = DEFAULT_SYSTEM_INSTRUCTION
    debug_errors: bool = False  # expose last backend error as "detail" and log raw messages

    # App
    app_env: str = "development"
    app_host: str = "0.0.0.0"
    app_port: int = 11000
    static_dir: str = "static"

    # Logging
    log_level: str = "INFO"
    log_json: bool = False  # set True in production for structured JSON logs

    # Sentry
    sentry_dsn: str = ""  # leave empty to disable

    @property
    def fallback_models(self) -> list[str]:
        return split_csv(self.gemini_model_fallbacks)

    @property
    def allowed_prefixes(self) -> list[str]:
        return split_csv(self.model_allowed_prefixes)

    def dispatch_config(self) -> DispatchConfig:
        """Freeze the dispatch-related settings into an immutable value."""
        return DispatchConfig(
            candidates=build_candidate_list(self.gemini_model, self.fallback_models, self.allowed_prefixes),
            system_instruction=self.system_instruction,
            attempt_timeout_seconds=self.attempt_timeout_seconds,
            debug_errors=self.debug_errors,
        )


settings = Settings()


def validate_settings_for_production() -> None:
    """Validate critical settings. Called on startup."""
    errors: list[str] = []

    if settings.attempt_timeout_seconds <= 0:
        errors.append("ATTEMPT_TIMEOUT_SECONDS must be positive")

    if settings.app_env == "production":
        if not settings.gemini_api_key:
            errors.append("GEMINI_API_KEY must be set in production")
        if not settings.dispatch_config().candidates:
            errors.append("GEMINI_MODEL / GEMINI_MODEL_FALLBACKS yield no usable model names")
        if settings.debug_errors:
            errors.append("DEBUG_ERRORS must be false in production")

    if errors:
        raise SystemExit("Configuration errors:\n  - " + "\n  - ".join(errors))
