"""Click CLI group: generate, highlight, and serve commands."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import click

from inkwell.config import get_settings
from inkwell.errors import ProviderError
from inkwell.gateway import ProviderGateway
from inkwell.highlight import PLAIN_TEXT, HighlightService, pygments_engine
from inkwell.providers.base import GenerationConfig, GenerationRequest, ProviderIdentity
from inkwell.providers.factory import resolve_identity


@click.group()
def cli() -> None:
    """Inkwell editor backend CLI."""


async def _stream_to_stdout(
    gateway: ProviderGateway, identity: ProviderIdentity, request: GenerationRequest
) -> None:
    async for fragment in gateway.generate(identity, request):
        click.echo(fragment, nl=False)
        sys.stdout.flush()


@cli.command()
@click.argument("prompt")
@click.option("--provider", "provider_name", default="ollama", show_default=True)
@click.option("--context", "context", multiple=True, help="Preceding content block (repeatable).")
@click.option("--temperature", type=float, default=None)
@click.option("--max-tokens", type=int, default=None)
@click.option("--system-prompt", type=str, default=None)
@click.option(
    "--endpoint",
    type=str,
    default=None,
    help="Override the provider endpoint (default: GATEWAY_BASE_URL/api/editor/<provider>).",
)
def generate(
    prompt: str,
    provider_name: str,
    context: tuple[str, ...],
    temperature: float | None,
    max_tokens: int | None,
    system_prompt: str | None,
    endpoint: str | None,
) -> None:
    """Stream a generation to stdout."""
    settings = get_settings()
    identity = resolve_identity(provider_name, settings)
    if endpoint:
        identity = ProviderIdentity(name=identity.name, endpoint=endpoint, headers=identity.headers)
    config = None
    if temperature is not None or max_tokens is not None or system_prompt is not None:
        config = GenerationConfig(
            temperature=temperature, max_tokens=max_tokens, system_prompt=system_prompt
        )
    request = GenerationRequest(prompt=prompt, context=context, config=config)
    gateway = ProviderGateway(timeout_seconds=settings.gateway_timeout_seconds)
    try:
        asyncio.run(_stream_to_stdout(gateway, identity, request))
    except ProviderError as exc:
        click.echo()
        click.echo(f"error: {exc}", err=True)
        sys.exit(1)
    click.echo()


def _guess_language(path: Path) -> str:
    from pygments.lexers import get_lexer_for_filename
    from pygments.util import ClassNotFound

    try:
        lexer = get_lexer_for_filename(path.name)
    except ClassNotFound:
        return PLAIN_TEXT
    return lexer.aliases[0] if lexer.aliases else PLAIN_TEXT


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--language", type=str, default=None, help="Language tag (default: from filename).")
def highlight(path: Path, language: str | None) -> None:
    """Print highlighted HTML for a source file."""
    code = path.read_text(encoding="utf-8", errors="replace")
    service = HighlightService(pygments_engine(get_settings().highlight_style))
    result = service.render(code, language or _guess_language(path))
    click.echo(result.html)


@cli.command()
@click.option("--host", type=str, default=None, help="Bind host (default: BIND_HOST).")
@click.option("--port", type=int, default=None, help="Bind port (default: BIND_PORT).")
def serve(host: str | None, port: int | None) -> None:
    """Run the HTTP API under uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "inkwell.main:app",
        host=host or settings.bind_host,
        port=port or settings.bind_port,
    )
