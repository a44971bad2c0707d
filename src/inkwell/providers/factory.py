"""Provider construction helpers."""

from inkwell.config import Settings
from inkwell.errors import ConfigError
from inkwell.providers.base import ProviderIdentity, TextProvider
from inkwell.providers.mistral import MistralProvider
from inkwell.providers.ollama import OllamaProvider

_KNOWN_PROVIDERS = ("mistral", "ollama")


def enabled_provider_names(settings: Settings) -> list[str]:
    names: list[str] = []
    for item in settings.enabled_providers.split(","):
        value = item.strip().lower()
        if value in _KNOWN_PROVIDERS and value not in names:
            names.append(value)
    return names


def build_provider(name: str, settings: Settings) -> TextProvider:
    value = name.strip().lower()
    if value == "mistral":
        return MistralProvider(settings.mistral_model)
    if value == "ollama":
        return OllamaProvider(settings.ollama_model)
    raise ConfigError(f"unknown provider: {name}")


def resolve_identity(name: str, settings: Settings) -> ProviderIdentity:
    """Identity of an editor-facing provider route served by this app."""
    value = name.strip().lower()
    base_url = settings.gateway_base_url.rstrip("/")
    headers: tuple[tuple[str, str], ...] = ()
    token = settings.gateway_auth_token.strip()
    if token:
        headers = (("Authorization", f"Bearer {token}"),)
    return ProviderIdentity(name=value, endpoint=f"{base_url}/api/editor/{value}", headers=headers)
