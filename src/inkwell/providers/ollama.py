"""Ollama generate adapter (newline-delimited JSON)."""

import json
import logging
from collections.abc import AsyncIterator

import httpx

from inkwell.config import get_settings
from inkwell.errors import GenerationError, ProviderConfigError, ProviderTransportError
from inkwell.providers.base import (
    GenerationRequest,
    compose_user_content,
    resolve_system_prompt,
)
from inkwell.streaming import decode_stream, iter_lines

logger = logging.getLogger(__name__)


class OllamaProvider:
    name = "ollama"

    def __init__(
        self,
        model: str,
        *,
        host: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.model = model
        self._host = host
        self._transport = transport

    @property
    def host(self) -> str:
        return (self._host or get_settings().ollama_host).rstrip("/")

    def _build_body(self, request: GenerationRequest) -> dict[str, object]:
        settings = get_settings()
        body: dict[str, object] = {
            "model": self.model,
            "prompt": compose_user_content(request),
            "system": resolve_system_prompt(request, settings.default_system_prompt),
            "stream": True,
        }
        options: dict[str, object] = {}
        config = request.config
        if config is not None and config.temperature is not None:
            options["temperature"] = config.temperature
        if config is not None and config.max_tokens is not None:
            options["num_predict"] = config.max_tokens
        if options:
            body["options"] = options
        return body

    @staticmethod
    def _parse_line(line: str) -> str:
        trimmed = line.strip()
        if not trimmed:
            return ""
        try:
            event = json.loads(trimmed)
        except json.JSONDecodeError:
            return ""
        if not isinstance(event, dict):
            return ""
        text = event.get("response")
        return text if isinstance(text, str) else ""

    async def generate(self, request: GenerationRequest) -> AsyncIterator[str]:
        settings = get_settings()
        host = self.host
        timeout_seconds = max(10, int(settings.upstream_timeout_seconds))
        async with httpx.AsyncClient(timeout=timeout_seconds, transport=self._transport) as client:
            try:
                async with client.stream(
                    "POST", f"{host}/api/generate", json=self._build_body(request)
                ) as response:
                    if response.status_code >= 400:
                        detail = (await response.aread()).decode("utf-8", errors="replace")
                        logger.warning("Ollama returned %d", response.status_code)
                        raise GenerationError(
                            f"Ollama error: {response.status_code}",
                            status_code=response.status_code,
                            provider=self.name,
                            details=detail,
                        )
                    async for line in iter_lines(decode_stream(response.aiter_bytes())):
                        text = self._parse_line(line)
                        if text:
                            yield text
            except httpx.InvalidURL as exc:
                raise ProviderConfigError(f"OLLAMA_HOST is invalid: {exc}") from exc
            except httpx.ConnectError as exc:
                logger.warning("Ollama unreachable at %s: %s", host, exc)
                raise ProviderTransportError(
                    f"Cannot connect to Ollama at {host}. Is Ollama running?"
                ) from exc
            except httpx.HTTPError as exc:
                logger.warning("Ollama stream failed: %s", exc)
                raise ProviderTransportError(f"Ollama stream failed: {exc}") from exc

    async def health_check(self) -> bool:
        try:
            async with httpx.AsyncClient(timeout=10, transport=self._transport) as client:
                response = await client.get(f"{self.host}/api/tags")
            return response.status_code < 400
        except Exception:
            return False
