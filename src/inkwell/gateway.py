"""Generation gateway: one request in, one text fragment stream out."""

import json
import logging
from collections.abc import AsyncIterator

import httpx

from inkwell.errors import GenerationError, ProviderConfigError, ProviderTransportError
from inkwell.providers.base import GenerationRequest, ProviderIdentity
from inkwell.streaming import decode_stream

logger = logging.getLogger(__name__)


def failure_message(status_code: int, body: bytes) -> str:
    """Best available message for a non-success response body."""
    try:
        payload = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        payload = None
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, str):
            return error
    return f"HTTP {status_code}"


class ProviderGateway:
    """Forward generation requests to a provider endpoint and stream the reply.

    The gateway holds no per-call state: every ``generate`` call opens its own
    client and connection, so concurrent calls never share buffers. There is
    no retry and no provider fallback.
    """

    def __init__(
        self,
        *,
        timeout_seconds: float = 120,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    def generate(
        self, identity: ProviderIdentity, request: GenerationRequest
    ) -> AsyncIterator[str]:
        """Return the fragment stream for ``request`` sent to ``identity``.

        Nothing touches the network until the first pull. Backend and
        transport failures are raised from the stream, never from this call.
        """
        return self._stream(identity, request)

    async def _stream(
        self, identity: ProviderIdentity, request: GenerationRequest
    ) -> AsyncIterator[str]:
        headers = {"Content-Type": "application/json", **dict(identity.headers)}
        logger.info("Generation started provider=%s endpoint=%s", identity.name, identity.endpoint)
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds, transport=self._transport
            ) as client:
                async with client.stream(
                    "POST",
                    identity.endpoint,
                    headers=headers,
                    content=json.dumps(request.to_payload()),
                ) as response:
                    if not response.is_success:
                        body = await response.aread()
                        message = failure_message(response.status_code, body)
                        logger.warning(
                            "Provider %s returned %d: %s",
                            identity.name,
                            response.status_code,
                            message,
                        )
                        raise GenerationError(
                            message,
                            status_code=response.status_code,
                            provider=identity.name,
                        )
                    async for fragment in decode_stream(response.aiter_bytes()):
                        yield fragment
        except httpx.InvalidURL as exc:
            logger.warning("Provider %s has an invalid endpoint: %s", identity.name, exc)
            raise ProviderConfigError(
                f"{identity.name} endpoint is invalid: {exc}"
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning("Provider %s transport failure: %s", identity.name, exc)
            raise ProviderTransportError(
                f"{identity.name} transport failure: {exc}"
            ) from exc
