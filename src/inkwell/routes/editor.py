"""Editor-facing generation and highlighting routes."""

import json
import logging
from collections.abc import AsyncIterator

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from inkwell.config import get_settings
from inkwell.errors import GenerationError, ProviderConfigError, ProviderTransportError
from inkwell.highlight import PLAIN_TEXT, HighlightService, pygments_engine
from inkwell.logging import bind_context, unbind_context
from inkwell.providers.base import GenerationConfig, GenerationRequest, TextProvider
from inkwell.providers.factory import build_provider, enabled_provider_names

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/editor", tags=["editor"])


class GenerateInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    prompt: str = Field(min_length=1, max_length=10_000)
    context: str | list[str] = ""
    temperature: float | None = Field(default=None, ge=0, le=2)
    max_tokens: int | None = Field(default=None, alias="maxTokens", ge=1, le=100_000, strict=True)
    system_prompt: str | None = Field(default=None, alias="systemPrompt", max_length=10_000)

    @field_validator("context")
    @classmethod
    def _bounded_context(cls, value: str | list[str]) -> str | list[str]:
        total = len(value) if isinstance(value, str) else sum(len(item) for item in value)
        if total > 50_000:
            raise ValueError("context too long")
        return value

    def to_request(self) -> GenerationRequest:
        context = (self.context,) if isinstance(self.context, str) else tuple(self.context)
        config = None
        if any(v is not None for v in (self.temperature, self.max_tokens, self.system_prompt)):
            config = GenerationConfig(
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                system_prompt=self.system_prompt,
            )
        return GenerationRequest(prompt=self.prompt, context=context, config=config)


def _error(status_code: int, message: str, **extra: object) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, **extra})


async def _relay(first: str, fragments: AsyncIterator[str], provider: str) -> AsyncIterator[str]:
    try:
        yield first
        async for fragment in fragments:
            yield fragment
    except (GenerationError, ProviderTransportError) as exc:
        # headers are already sent; aborting the body is the only signal left
        logger.warning("Provider %s failed mid-stream: %s", provider, exc)
        raise
    finally:
        await fragments.aclose()
        unbind_context("provider")


def get_highlighter() -> HighlightService:
    return HighlightService(pygments_engine(get_settings().highlight_style))


@router.post("/highlight")
async def highlight_code(request: Request) -> JSONResponse:
    """Render a code block; malformed input yields an empty result, never an error."""
    try:
        body = json.loads(await request.body())
    except (json.JSONDecodeError, UnicodeDecodeError):
        return JSONResponse({"html": ""})
    if not isinstance(body, dict):
        return JSONResponse({"html": ""})
    code = body.get("code")
    language = body.get("language")
    result = get_highlighter().render(
        code if isinstance(code, str) else "",
        language if isinstance(language, str) else PLAIN_TEXT,
    )
    return JSONResponse({"html": result.html})


@router.post("/{provider_name}", response_model=None)
async def generate_text(provider_name: str, request: Request) -> StreamingResponse | JSONResponse:
    """Stream a completion from the named upstream provider as plain text."""
    settings = get_settings()
    name = provider_name.strip().lower()
    if name not in enabled_provider_names(settings):
        return _error(404, f"Unknown provider: {provider_name}")
    try:
        payload = GenerateInput.model_validate(json.loads(await request.body()))
    except (json.JSONDecodeError, UnicodeDecodeError, ValidationError):
        return _error(400, "Invalid request")

    provider: TextProvider = build_provider(name, settings)
    fragments = provider.generate(payload.to_request())
    bind_context(provider=name)
    try:
        first = await anext(fragments)
    except StopAsyncIteration:
        unbind_context("provider")
        return StreamingResponse(iter(()), media_type="text/plain; charset=utf-8")
    except ProviderConfigError as exc:
        unbind_context("provider")
        return _error(500, str(exc))
    except ProviderTransportError as exc:
        unbind_context("provider")
        return _error(503, str(exc))
    except GenerationError as exc:
        unbind_context("provider")
        return _error(exc.status_code or 502, str(exc), details=exc.details)
    # the relay unbinds once the body is done
    return StreamingResponse(
        _relay(first, fragments, name),
        media_type="text/plain; charset=utf-8",
    )
