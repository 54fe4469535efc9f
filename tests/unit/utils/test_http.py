"""
Unit tests for utils.http module.

Tests:
- read_bounded(): chunk accumulation and size enforcement
- read_bounded_text(): truncation and charset decoding
- read_bounded_json(): parsing and errors
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from notecast.utils.http import read_bounded, read_bounded_json, read_bounded_text


def _mock_response(*chunks: bytes, charset: str | None = None) -> MagicMock:
    """Build a mock aiohttp response that yields *chunks* then EOF."""
    response = MagicMock()
    response.content.read = AsyncMock(side_effect=[*chunks, b""])
    response.charset = charset
    return response


class TestReadBounded:
    """Size-bounded body reading."""

    async def test_single_chunk(self) -> None:
        assert await read_bounded(_mock_response(b"hello"), 100) == b"hello"

    async def test_multiple_chunks(self) -> None:
        assert await read_bounded(_mock_response(b"ab", b"cd", b"ef"), 100) == b"abcdef"

    async def test_exact_limit(self) -> None:
        assert await read_bounded(_mock_response(b"x" * 10), 10) == b"x" * 10

    async def test_too_large(self) -> None:
        with pytest.raises(ValueError, match="too large"):
            await read_bounded(_mock_response(b"x" * 6, b"x" * 6), 10)

    async def test_empty(self) -> None:
        assert await read_bounded(_mock_response(), 10) == b""


class TestReadBoundedText:
    """Error body reading."""

    async def test_decodes(self) -> None:
        assert await read_bounded_text(_mock_response(b"internal error"), 100) == "internal error"

    async def test_truncates(self) -> None:
        response = _mock_response(b"x" * 4)
        response.content.read = AsyncMock(side_effect=[b"x" * 4, b"y" * 4, b"z" * 4, b""])
        assert await read_bounded_text(response, 8) == "xxxxyyyy"

    async def test_charset(self) -> None:
        body = "café".encode("latin-1")
        assert await read_bounded_text(_mock_response(body, charset="latin-1"), 100) == "café"

    async def test_invalid_bytes_replaced(self) -> None:
        text = await read_bounded_text(_mock_response(b"\xff\xfe ok"), 100)
        assert text.endswith(" ok")


class TestReadBoundedJson:
    """JSON body reading."""

    async def test_parses(self) -> None:
        response = _mock_response(b'{"status": "success", ', b'"url": "https://x/y"}')
        assert await read_bounded_json(response, 1024) == {
            "status": "success",
            "url": "https://x/y",
        }

    async def test_invalid_json(self) -> None:
        with pytest.raises(ValueError):
            await read_bounded_json(_mock_response(b"<html>"), 1024)
