"""Incremental decoder for server-sent event streams.

Providers frame their streams in one of two ways: blank-line separated
events that may span several lines (OpenAI, Anthropic, OpenRouter, Z.AI)
or one event per line (MiniMax). FrameDecoder accepts raw bytes in
whatever chunks the network delivers and returns the ``data:`` payloads
of every complete frame, carrying partial frames and split multi-byte
characters over to the next read. Bytes that are not valid UTF-8 are
replaced with U+FFFD rather than failing the stream.
"""

from __future__ import annotations

import codecs
import json
import logging
from collections.abc import AsyncIterable, AsyncIterator
from typing import Any

from uibench.errors import DecodeError

logger = logging.getLogger(__name__)

BLANK_LINE = "\n\n"
SINGLE_LINE = "\n"

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"

# Buffered characters allowed without a frame separator.
MAX_FRAME_CHARS = 8 * 1024 * 1024


class FrameDecoder:
    """Split a byte stream into event payloads.

    Feeding the same bytes in any number of chunks yields the same payloads
    as feeding them in one read. Lines without the data prefix (comments,
    ``event:`` lines, keep-alives) are dropped. Once the sentinel payload is
    seen, ``done`` is set and further input is ignored.

    Raises DecodeError when more than max_frame_chars arrive without a
    separator, which means the stream is not using the expected framing.
    """

    def __init__(
        self,
        separator: str = BLANK_LINE,
        prefix: str = DATA_PREFIX,
        sentinel: str = DONE_SENTINEL,
        max_frame_chars: int = MAX_FRAME_CHARS,
    ) -> None:
        if separator not in (BLANK_LINE, SINGLE_LINE):
            raise ValueError(f"Unsupported frame separator {separator!r}")
        self.separator = separator
        self.prefix = prefix
        self.sentinel = sentinel
        self.max_frame_chars = max_frame_chars
        self.done = False
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    def feed(self, chunk: bytes) -> list[str]:
        """Decode a chunk and return payloads of the frames it completes."""
        if self.done:
            return []
        return self._drain(self._decode(chunk, final=False), final=False)

    def flush(self) -> list[str]:
        """Return payloads from a trailing frame that had no separator."""
        if self.done:
            return []
        return self._drain(self._decode(b"", final=True), final=True)

    def _decode(self, chunk: bytes, final: bool) -> str:
        text = self._decoder.decode(chunk, final=final)
        if "\ufffd" in text:
            logger.debug("Replaced undecodable bytes in stream chunk")
        return text

    def _drain(self, text: str, final: bool) -> list[str]:
        self._buffer = (self._buffer + text).replace("\r\n", "\n")
        frames = self._buffer.split(self.separator)
        self._buffer = "" if final else frames.pop()
        if len(self._buffer) > self.max_frame_chars:
            raise DecodeError(
                f"No frame separator within {self.max_frame_chars} characters"
            )

        payloads: list[str] = []
        for frame in frames:
            for line in frame.split("\n"):
                if not line.startswith(self.prefix):
                    continue
                data = line[len(self.prefix):].strip()
                if not data:
                    continue
                if data == self.sentinel:
                    self.done = True
                    self._buffer = ""
                    return payloads
                payloads.append(data)
        return payloads


def _parse_payload(payload: str) -> dict[str, Any] | None:
    try:
        event = json.loads(payload)
    except json.JSONDecodeError:
        logger.debug("Skipping malformed stream payload: %.200s", payload)
        return None
    if not isinstance(event, dict):
        return None
    return event


async def iter_sse_payloads(
    chunks: AsyncIterable[bytes],
    separator: str = BLANK_LINE,
) -> AsyncIterator[dict[str, Any]]:
    """Yield parsed JSON objects from an async byte stream.

    Payloads that are not valid JSON objects are skipped. Iteration stops at
    the end-of-stream sentinel or when the byte stream is exhausted.

    Args:
        chunks: Async iterable of raw response bytes.
        separator: BLANK_LINE or SINGLE_LINE framing.

    Yields:
        One dict per well-formed payload, in arrival order.
    """
    decoder = FrameDecoder(separator)
    async for chunk in chunks:
        for payload in decoder.feed(chunk):
            event = _parse_payload(payload)
            if event is not None:
                yield event
        if decoder.done:
            return

    for payload in decoder.flush():
        event = _parse_payload(payload)
        if event is not None:
            yield event
