"""Application configuration contract."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful writing assistant. Respond with well-formatted Markdown. "
    "Be concise and direct."
)
_DEFAULT_GATEWAY_BASE_URL = "http://127.0.0.1:8000"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = Field(alias="APP_ENV", default="dev")
    log_level: str = Field(alias="LOG_LEVEL", default="INFO")

    # Security: bind host defaults to loopback
    bind_host: str = Field(alias="BIND_HOST", default="127.0.0.1")
    bind_port: int = Field(alias="BIND_PORT", default=8000)
    web_cors_origins: str = Field(alias="WEB_CORS_ORIGINS", default="http://localhost:3000")

    enabled_providers: str = Field(alias="ENABLED_PROVIDERS", default="mistral,ollama")
    default_system_prompt: str = Field(
        alias="DEFAULT_SYSTEM_PROMPT", default=DEFAULT_SYSTEM_PROMPT
    )
    upstream_timeout_seconds: int = Field(alias="UPSTREAM_TIMEOUT_SECONDS", default=120)

    mistral_api_url: str = Field(
        alias="MISTRAL_API_URL", default="https://api.mistral.ai/v1/chat/completions"
    )
    mistral_api_key: str = Field(alias="MISTRAL_API_KEY", default="")
    mistral_model: str = Field(alias="MISTRAL_MODEL", default="ministral-3b-latest")

    ollama_host: str = Field(alias="OLLAMA_HOST", default="http://localhost:11434")
    ollama_model: str = Field(alias="OLLAMA_MODEL", default="gemma3:4b")

    # Gateway client side: where the editor-facing provider routes live
    gateway_base_url: str = Field(alias="GATEWAY_BASE_URL", default=_DEFAULT_GATEWAY_BASE_URL)
    # sent as a bearer token for a reverse proxy in front of the routes; not checked here
    gateway_auth_token: str = Field(alias="GATEWAY_AUTH_TOKEN", default="")
    gateway_timeout_seconds: int = Field(alias="GATEWAY_TIMEOUT_SECONDS", default=120)

    highlight_style: str = Field(alias="HIGHLIGHT_STYLE", default="default")


def validate_settings_for_env(settings: Settings) -> None:
    import logging as _logging
    import warnings

    from pygments.styles import get_all_styles

    _logger = _logging.getLogger(__name__)

    # Warn if binding to 0.0.0.0 in production
    if settings.app_env == "prod" and settings.bind_host == "0.0.0.0":
        msg = (
            "SECURITY WARNING: BIND_HOST=0.0.0.0 in production. "
            "This exposes the API to all network interfaces. "
            "Set BIND_HOST=127.0.0.1 and use a reverse proxy."
        )
        _logger.warning(msg)
        warnings.warn(msg, stacklevel=2)

    if settings.highlight_style not in set(get_all_styles()):
        _logger.warning("Unknown HIGHLIGHT_STYLE %r", settings.highlight_style)

    if settings.app_env != "prod":
        return

    missing: list[str] = []
    enabled = {
        item.strip().lower() for item in settings.enabled_providers.split(",") if item.strip()
    }
    if not enabled:
        missing.append("ENABLED_PROVIDERS")
    if "mistral" in enabled and not settings.mistral_api_key.strip():
        missing.append("MISTRAL_API_KEY")
    if "ollama" in enabled and not settings.ollama_host.strip():
        missing.append("OLLAMA_HOST")
    if settings.gateway_base_url.rstrip("/") == _DEFAULT_GATEWAY_BASE_URL:
        missing.append("GATEWAY_BASE_URL(non-dev value)")
    if settings.highlight_style not in set(get_all_styles()):
        missing.append("HIGHLIGHT_STYLE(known Pygments style)")

    if missing:
        keys = ", ".join(sorted(set(missing)))
        raise ValueError(f"invalid production configuration: {keys}")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
