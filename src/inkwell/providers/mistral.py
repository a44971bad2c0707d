"""Mistral chat completions adapter (server-sent events)."""

import json
import logging
from collections.abc import AsyncIterator
from typing import Any

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

_DATA_PREFIX = "data: "
_DONE = "[DONE]"


class MistralProvider:
    name = "mistral"

    def __init__(
        self,
        model: str,
        *,
        api_key: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.model = model
        self._api_key = api_key
        self._transport = transport

    def _resolve_api_key(self) -> str:
        if self._api_key is not None:
            return self._api_key.strip()
        return get_settings().mistral_api_key.strip()

    def _build_body(self, request: GenerationRequest) -> dict[str, object]:
        settings = get_settings()
        body: dict[str, object] = {"model": self.model, "stream": True}
        config = request.config
        if config is not None and config.temperature is not None:
            body["temperature"] = config.temperature
        if config is not None and config.max_tokens is not None:
            body["max_tokens"] = config.max_tokens
        body["messages"] = [
            {
                "role": "system",
                "content": resolve_system_prompt(request, settings.default_system_prompt),
            },
            {"role": "user", "content": compose_user_content(request)},
        ]
        return body

    @staticmethod
    def _parse_event(line: str) -> str:
        trimmed = line.strip()
        if not trimmed.startswith(_DATA_PREFIX):
            return ""
        data = trimmed[len(_DATA_PREFIX) :]
        if data == _DONE:
            return ""
        try:
            event: Any = json.loads(data)
        except json.JSONDecodeError:
            return ""
        if not isinstance(event, dict):
            return ""
        choices = event.get("choices")
        if not isinstance(choices, list) or not choices:
            return ""
        first = choices[0]
        if not isinstance(first, dict):
            return ""
        delta = first.get("delta")
        if not isinstance(delta, dict):
            return ""
        content = delta.get("content")
        return content if isinstance(content, str) else ""

    async def generate(self, request: GenerationRequest) -> AsyncIterator[str]:
        api_key = self._resolve_api_key()
        if not api_key:
            raise ProviderConfigError("MISTRAL_API_KEY not configured")
        settings = get_settings()
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {api_key}",
        }
        timeout_seconds = max(10, int(settings.upstream_timeout_seconds))
        try:
            async with httpx.AsyncClient(
                timeout=timeout_seconds, transport=self._transport
            ) as client:
                async with client.stream(
                    "POST",
                    settings.mistral_api_url,
                    headers=headers,
                    json=self._build_body(request),
                ) as response:
                    if response.status_code >= 400:
                        detail = (await response.aread()).decode("utf-8", errors="replace")
                        logger.warning("Mistral API returned %d", response.status_code)
                        raise GenerationError(
                            f"Mistral API error: {response.status_code}",
                            status_code=response.status_code,
                            provider=self.name,
                            details=detail,
                        )
                    async for line in iter_lines(decode_stream(response.aiter_bytes())):
                        content = self._parse_event(line)
                        if content:
                            yield content
        except httpx.InvalidURL as exc:
            raise ProviderConfigError(f"MISTRAL_API_URL is invalid: {exc}") from exc
        except httpx.HTTPError as exc:
            logger.warning("Mistral stream failed: %s", exc)
            raise ProviderTransportError(f"Mistral stream failed: {exc}") from exc

    async def health_check(self) -> bool:
        return bool(self._resolve_api_key())
