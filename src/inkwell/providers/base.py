"""Provider contracts."""

from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True, slots=True)
class GenerationConfig:
    """Sparse overlay on backend defaults; None means "not set"."""

    temperature: float | None = None
    max_tokens: int | None = None
    system_prompt: str | None = None


@dataclass(frozen=True, slots=True)
class GenerationRequest:
    prompt: str
    context: tuple[str, ...] = ()
    config: GenerationConfig | None = None

    @property
    def context_text(self) -> str:
        return "\n\n".join(block for block in self.context if block)

    def to_payload(self) -> dict[str, object]:
        """Editor-facing wire body: config fields only when present."""
        body: dict[str, object] = {"prompt": self.prompt, "context": self.context_text}
        config = self.config
        if config is None:
            return body
        if config.temperature is not None:
            body["temperature"] = config.temperature
        if config.max_tokens is not None:
            body["maxTokens"] = config.max_tokens
        if config.system_prompt is not None:
            body["systemPrompt"] = config.system_prompt
        return body


@dataclass(frozen=True, slots=True)
class ProviderIdentity:
    name: str
    endpoint: str
    headers: tuple[tuple[str, str], ...] = ()


class TextProvider(Protocol):
    name: str

    def generate(self, request: GenerationRequest) -> AsyncIterator[str]: ...

    async def health_check(self) -> bool: ...


def compose_user_content(request: GenerationRequest) -> str:
    context = request.context_text
    if context:
        return f"Context:\n{context}\n\nTask:\n{request.prompt}"
    return request.prompt


def resolve_system_prompt(request: GenerationRequest, default: str) -> str:
    if request.config is not None and request.config.system_prompt is not None:
        return request.config.system_prompt
    return default
