"""Byte stream to text fragment decoding."""

import codecs
from collections.abc import AsyncIterable, AsyncIterator


async def decode_stream(
    byte_source: AsyncIterable[bytes],
    encoding: str = "utf-8",
) -> AsyncIterator[str]:
    """Decode an async byte stream into text fragments.

    A multi-byte character split across two chunks is held back until the
    chunk carrying its tail arrives, so every fragment is whole text. Bytes
    that never form a valid character are replaced with U+FFFD instead of
    raising. Errors raised by ``byte_source`` itself propagate unchanged.

    The returned iterator is single-pass. Closing it early (``aclose()``)
    closes ``byte_source`` too when it supports ``aclose()``.
    """
    decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
    try:
        async for chunk in byte_source:
            text = decoder.decode(chunk)
            if text:
                yield text
        tail = decoder.decode(b"", final=True)
        if tail:
            yield tail
    finally:
        aclose = getattr(byte_source, "aclose", None)
        if aclose is not None:
            await aclose()


async def iter_lines(fragments: AsyncIterable[str]) -> AsyncIterator[str]:
    """Regroup text fragments into ``\\n``-terminated lines.

    The partial line left at the end of each fragment is carried into the
    next one; an unterminated final line is still emitted.
    """
    buffer = ""
    try:
        async for fragment in fragments:
            buffer += fragment
            *lines, buffer = buffer.split("\n")
            for line in lines:
                yield line
        if buffer:
            yield buffer
    finally:
        aclose = getattr(fragments, "aclose", None)
        if aclose is not None:
            await aclose()
