"""Tests for the incremental SSE frame decoder."""

from __future__ import annotations

import pytest

from uibench.adapters.frames import (
    BLANK_LINE,
    SINGLE_LINE,
    FrameDecoder,
    iter_sse_payloads,
)
from uibench.errors import DecodeError


def _decode_all(data: bytes, chunks: list[int], separator: str = BLANK_LINE) -> list[str]:
    """Feed data split at the given offsets and collect every payload."""
    decoder = FrameDecoder(separator)
    payloads: list[str] = []
    start = 0
    for end in chunks:
        payloads.extend(decoder.feed(data[start:end]))
        start = end
    payloads.extend(decoder.feed(data[start:]))
    payloads.extend(decoder.flush())
    return payloads


async def _aiter(chunks: list[bytes]):
    for chunk in chunks:
        yield chunk


OPENAI_STREAM = (
    'data: {"choices":[{"delta":{"content":"Hi"}}]}\n\n'
    ': keep-alive\n\n'
    'data: {"choices":[{"delta":{"content":" thére ✨"}}]}\n\n'
    'data: {"choices":[],"usage":{"prompt_tokens":5,"completion_tokens":2}}\n\n'
    "data: [DONE]\n\n"
).encode("utf-8")


class TestFrameDecoderBasics:
    """Single-read decoding behavior."""

    def test_blank_line_frames(self) -> None:
        decoder = FrameDecoder(BLANK_LINE)
        payloads = decoder.feed(b"data: one\n\ndata: two\n\n")
        assert payloads == ["one", "two"]

    def test_partial_frame_is_buffered(self) -> None:
        decoder = FrameDecoder(BLANK_LINE)
        assert decoder.feed(b'data: {"a"') == []
        assert decoder.feed(b": 1}\n\n") == ['{"a": 1}']

    def test_non_data_lines_are_discarded(self) -> None:
        decoder = FrameDecoder(BLANK_LINE)
        payloads = decoder.feed(
            b": comment\n\nevent: content_block_delta\ndata: x\n\nretry: 100\n\n"
        )
        assert payloads == ["x"]

    def test_multi_line_frame_yields_each_data_line(self) -> None:
        decoder = FrameDecoder(BLANK_LINE)
        assert decoder.feed(b"data: a\ndata: b\n\n") == ["a", "b"]

    def test_data_prefix_without_space(self) -> None:
        decoder = FrameDecoder(BLANK_LINE)
        assert decoder.feed(b"data:{}\n\n") == ["{}"]

    def test_empty_payload_is_discarded(self) -> None:
        decoder = FrameDecoder(BLANK_LINE)
        assert decoder.feed(b"data: \n\ndata: x\n\n") == ["x"]

    def test_sentinel_stops_decoding(self) -> None:
        decoder = FrameDecoder(BLANK_LINE)
        payloads = decoder.feed(b"data: a\n\ndata: [DONE]\n\ndata: b\n\n")
        assert payloads == ["a"]
        assert decoder.done is True
        assert decoder.feed(b"data: c\n\n") == []
        assert decoder.flush() == []

    def test_crlf_line_endings(self) -> None:
        decoder = FrameDecoder(BLANK_LINE)
        assert decoder.feed(b"data: a\r\n\r\ndata: b\r\n\r\n") == ["a", "b"]

    def test_single_line_frames(self) -> None:
        decoder = FrameDecoder(SINGLE_LINE)
        assert decoder.feed(b"data: a\ndata: b\ndata: c") == ["a", "b"]
        assert decoder.flush() == ["c"]

    def test_flush_returns_trailing_frame(self) -> None:
        decoder = FrameDecoder(BLANK_LINE)
        assert decoder.feed(b"data: last") == []
        assert decoder.flush() == ["last"]

    def test_unsupported_separator_rejected(self) -> None:
        with pytest.raises(ValueError, match="separator"):
            FrameDecoder("\r")

    def test_dangling_partial_character_is_replaced(self) -> None:
        decoder = FrameDecoder(BLANK_LINE)
        assert decoder.feed("data: é".encode("utf-8")[:-1]) == []
        assert decoder.flush() == ["\ufffd"]

    def test_invalid_bytes_do_not_stop_the_stream(self) -> None:
        decoder = FrameDecoder(BLANK_LINE)
        payloads = decoder.feed(b"data: a\xffb\n\ndata: next\n\n")
        assert payloads == ["a\ufffdb", "next"]

    def test_oversized_frame_raises_decode_error(self) -> None:
        decoder = FrameDecoder(BLANK_LINE, max_frame_chars=16)
        assert decoder.feed(b"data: short\n\n") == ["short"]
        with pytest.raises(DecodeError, match="separator"):
            decoder.feed(b"data: " + b"x" * 32)


class TestFrameDecoderSplitting:
    """Arbitrary chunking must not change the decoded payloads."""

    def test_every_two_way_split_matches_single_read(self) -> None:
        expected = _decode_all(OPENAI_STREAM, [])
        assert len(expected) == 3
        for offset in range(1, len(OPENAI_STREAM)):
            assert _decode_all(OPENAI_STREAM, [offset]) == expected, offset

    def test_byte_at_a_time_matches_single_read(self) -> None:
        expected = _decode_all(OPENAI_STREAM, [])
        offsets = list(range(1, len(OPENAI_STREAM)))
        assert _decode_all(OPENAI_STREAM, offsets) == expected

    def test_split_inside_multibyte_character(self) -> None:
        data = 'data: {"t":"✨"}\n\n'.encode("utf-8")
        sparkle_start = data.index("✨".encode("utf-8"))
        payloads = _decode_all(data, [sparkle_start + 1, sparkle_start + 2])
        assert payloads == ['{"t":"✨"}']

    def test_split_inside_delimiter(self) -> None:
        data = b"data: a\n\ndata: b\n\n"
        assert _decode_all(data, [8]) == ["a", "b"]

    def test_single_line_mode_every_split(self) -> None:
        data = 'data: {"x":1}\ndata: {"y":"ü"}\ndata: [DONE]\n'.encode("utf-8")
        expected = _decode_all(data, [], SINGLE_LINE)
        assert expected == ['{"x":1}', '{"y":"ü"}']
        for offset in range(1, len(data)):
            assert _decode_all(data, [offset], SINGLE_LINE) == expected, offset


class TestIterSSEPayloads:
    """Async JSON payload iteration."""

    @pytest.mark.asyncio
    async def test_yields_parsed_objects_in_order(self) -> None:
        events = [e async for e in iter_sse_payloads(_aiter([OPENAI_STREAM]))]
        assert [e.get("choices") for e in events][:2] == [
            [{"delta": {"content": "Hi"}}],
            [{"delta": {"content": " thére ✨"}}],
        ]
        assert events[2]["usage"] == {"prompt_tokens": 5, "completion_tokens": 2}

    @pytest.mark.asyncio
    async def test_malformed_json_is_skipped(self) -> None:
        chunks = [b"data: {not json}\n\n", b'data: [1, 2]\n\n', b'data: {"ok": true}\n\n']
        events = [e async for e in iter_sse_payloads(_aiter(chunks))]
        assert events == [{"ok": True}]

    @pytest.mark.asyncio
    async def test_stops_at_sentinel_without_reading_further(self) -> None:
        consumed: list[bytes] = []

        async def source():
            for chunk in [b'data: {"a": 1}\n\ndata: [DONE]\n\n', b'data: {"b": 2}\n\n']:
                consumed.append(chunk)
                yield chunk

        events = [e async for e in iter_sse_payloads(source())]
        assert events == [{"a": 1}]
        assert len(consumed) == 1

    @pytest.mark.asyncio
    async def test_trailing_frame_without_separator(self) -> None:
        events = [e async for e in iter_sse_payloads(_aiter([b'data: {"a": 1}']))]
        assert events == [{"a": 1}]
