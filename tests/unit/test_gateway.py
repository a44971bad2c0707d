import asyncio
import json
from collections.abc import AsyncIterator

import httpx
import pytest

from inkwell.errors import (
    GenerationError,
    ProviderConfigError,
    ProviderError,
    ProviderTransportError,
)
from inkwell.gateway import ProviderGateway, failure_message
from inkwell.providers.base import GenerationConfig, GenerationRequest, ProviderIdentity

_IDENTITY = ProviderIdentity(name="ollama", endpoint="http://gateway.local/api/editor/ollama")


class _TrackedBody(httpx.AsyncByteStream):
    def __init__(self, chunks: list[bytes]) -> None:
        self._chunks = chunks
        self.sent = 0
        self.closed = False

    async def __aiter__(self) -> AsyncIterator[bytes]:
        for chunk in self._chunks:
            self.sent += 1
            yield chunk

    async def aclose(self) -> None:
        self.closed = True


async def _collect(fragments: AsyncIterator[str]) -> list[str]:
    return [fragment async for fragment in fragments]


@pytest.mark.asyncio
async def test_generate_sends_only_present_config_fields() -> None:
    seen: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content.decode("utf-8"))
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, text="ok")

    identity = ProviderIdentity(
        name="mistral",
        endpoint="http://gateway.local/api/editor/mistral",
        headers=(("Authorization", "Bearer t0k"),),
    )
    request = GenerationRequest(
        prompt="Summarise",
        context=("# Title", "First paragraph."),
        config=GenerationConfig(temperature=0.2),
    )
    gateway = ProviderGateway(transport=httpx.MockTransport(handler))
    assert await _collect(gateway.generate(identity, request)) == ["ok"]
    assert seen["path"] == "/api/editor/mistral"
    assert seen["body"] == {
        "prompt": "Summarise",
        "context": "# Title\n\nFirst paragraph.",
        "temperature": 0.2,
    }
    assert seen["auth"] == "Bearer t0k"


@pytest.mark.asyncio
async def test_generate_concatenation_matches_body_across_split_characters() -> None:
    text = "Résumé: 東京 ✓"
    raw = text.encode("utf-8")
    chunks = [raw[i : i + 3] for i in range(0, len(raw), 3)]

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, stream=_TrackedBody(chunks))

    gateway = ProviderGateway(transport=httpx.MockTransport(handler))
    fragments = await _collect(gateway.generate(_IDENTITY, GenerationRequest(prompt="hi")))
    assert "".join(fragments) == text
    assert all("�" not in fragment for fragment in fragments)


@pytest.mark.asyncio
async def test_first_fragment_arrives_before_backend_finishes() -> None:
    release = asyncio.Event()

    async def body() -> AsyncIterator[bytes]:
        yield b"Hello"
        await release.wait()
        yield b" world"

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=body())

    gateway = ProviderGateway(transport=httpx.MockTransport(handler))
    fragments = gateway.generate(_IDENTITY, GenerationRequest(prompt="hi"))
    first = await asyncio.wait_for(anext(fragments), timeout=2)
    assert first == "Hello"
    release.set()
    assert await _collect(fragments) == [" world"]


@pytest.mark.asyncio
async def test_failure_uses_error_field_from_body() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, json={"error": "Ollama error: 500", "details": "oom"})

    gateway = ProviderGateway(transport=httpx.MockTransport(handler))
    with pytest.raises(GenerationError) as excinfo:
        await _collect(gateway.generate(_IDENTITY, GenerationRequest(prompt="hi")))
    assert str(excinfo.value) == "Ollama error: 500"
    assert excinfo.value.status_code == 502
    assert excinfo.value.provider == "ollama"


@pytest.mark.asyncio
async def test_failure_without_parseable_body_uses_status() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="<html>Internal Server Error</html>")

    gateway = ProviderGateway(transport=httpx.MockTransport(handler))
    received: list[str] = []
    with pytest.raises(GenerationError, match=r"^HTTP 500$"):
        async for fragment in gateway.generate(_IDENTITY, GenerationRequest(prompt="hi")):
            received.append(fragment)
    assert received == []


def test_failure_message_variants() -> None:
    assert failure_message(400, b'{"error": "Invalid request"}') == "Invalid request"
    assert failure_message(404, b'{"detail": "Not Found"}') == "HTTP 404"
    assert failure_message(500, b'{"error": 42}') == "HTTP 500"
    assert failure_message(502, b'{"error": ""}') == ""
    assert failure_message(503, b"") == "HTTP 503"
    assert failure_message(500, b"\xff\xfe") == "HTTP 500"


@pytest.mark.asyncio
async def test_generate_is_lazy_until_first_pull() -> None:
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(200, text="x")

    gateway = ProviderGateway(transport=httpx.MockTransport(handler))
    fragments = gateway.generate(_IDENTITY, GenerationRequest(prompt="hi"))
    assert calls == 0
    assert await _collect(fragments) == ["x"]
    assert calls == 1


@pytest.mark.asyncio
async def test_connect_failure_is_terminal_stream_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    gateway = ProviderGateway(transport=httpx.MockTransport(handler))
    fragments = gateway.generate(_IDENTITY, GenerationRequest(prompt="hi"))
    with pytest.raises(ProviderTransportError) as excinfo:
        await anext(fragments)
    assert isinstance(excinfo.value.__cause__, httpx.ConnectError)


@pytest.mark.asyncio
async def test_malformed_endpoint_is_config_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("request must not be sent")

    gateway = ProviderGateway(transport=httpx.MockTransport(handler))
    identity = ProviderIdentity(
        name="ollama", endpoint="http://gateway.local:abc/api/editor/ollama"
    )
    fragments = gateway.generate(identity, GenerationRequest(prompt="hi"))
    with pytest.raises(ProviderConfigError, match="ollama endpoint is invalid") as excinfo:
        await anext(fragments)
    assert isinstance(excinfo.value, ProviderError)
    assert excinfo.value.retryable is False
    assert isinstance(excinfo.value.__cause__, httpx.InvalidURL)


def test_identity_is_hashable() -> None:
    identity = ProviderIdentity(
        name="ollama",
        endpoint="http://gateway.local/api/editor/ollama",
        headers=(("Authorization", "Bearer t0k"),),
    )
    same = ProviderIdentity(
        name="ollama",
        endpoint="http://gateway.local/api/editor/ollama",
        headers=(("Authorization", "Bearer t0k"),),
    )
    assert len({identity, same, _IDENTITY}) == 2


@pytest.mark.asyncio
async def test_mid_stream_drop_keeps_delivered_fragments() -> None:
    async def body() -> AsyncIterator[bytes]:
        yield b"partial "
        yield b"answer"
        raise httpx.ReadError("connection reset")

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=body())

    gateway = ProviderGateway(transport=httpx.MockTransport(handler))
    received: list[str] = []
    with pytest.raises(ProviderTransportError):
        async for fragment in gateway.generate(_IDENTITY, GenerationRequest(prompt="hi")):
            received.append(fragment)
    assert "".join(received) == "partial answer"


@pytest.mark.asyncio
async def test_abandoning_stream_releases_response() -> None:
    tracked = _TrackedBody([b"one", b"two", b"three", b"four"])

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, stream=tracked)

    gateway = ProviderGateway(transport=httpx.MockTransport(handler))
    fragments = gateway.generate(_IDENTITY, GenerationRequest(prompt="hi"))
    assert await anext(fragments) == "one"
    await fragments.aclose()
    assert tracked.closed is True
    assert tracked.sent == 1


@pytest.mark.asyncio
async def test_concurrent_generations_do_not_interleave() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        prompt = json.loads(request.content.decode("utf-8"))["prompt"]

        async def body() -> AsyncIterator[bytes]:
            for index in range(20):
                await asyncio.sleep(0)
                yield f"{prompt}{index};".encode("utf-8")

        return httpx.Response(200, content=body())

    gateway = ProviderGateway(transport=httpx.MockTransport(handler))
    left, right = await asyncio.gather(
        _collect(gateway.generate(_IDENTITY, GenerationRequest(prompt="a"))),
        _collect(gateway.generate(_IDENTITY, GenerationRequest(prompt="b"))),
    )
    assert "".join(left) == "".join(f"a{index};" for index in range(20))
    assert "".join(right) == "".join(f"b{index};" for index in range(20))
