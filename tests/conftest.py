import pytest

from inkwell.config import get_settings

_MANAGED_ENV = (
    "APP_ENV",
    "ENABLED_PROVIDERS",
    "MISTRAL_API_KEY",
    "MISTRAL_API_URL",
    "OLLAMA_HOST",
    "GATEWAY_BASE_URL",
    "GATEWAY_AUTH_TOKEN",
    "HIGHLIGHT_STYLE",
    "DEFAULT_SYSTEM_PROMPT",
)


@pytest.fixture(autouse=True)
def test_env(monkeypatch: pytest.MonkeyPatch):
    for key in _MANAGED_ENV:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("APP_ENV", "test")
    monkeypatch.setenv("OLLAMA_HOST", "http://ollama.local")
    monkeypatch.setenv("MISTRAL_API_URL", "https://mistral.local/v1/chat/completions")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
