"""
Unit tests for models.relay module.

Tests:
- URL normalization (case, default ports, slashes)
- Scheme, query, and fragment rejection
- Explicit ports and local hosts
- normalize_relay_urls() order-preserving deduplication
"""

from __future__ import annotations

import pytest

from notecast.models import Relay, normalize_relay_urls


class TestNormalization:
    """Normalized URL form."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("wss://relay.damus.io", "wss://relay.damus.io"),
            ("WSS://Relay.Damus.IO/", "wss://relay.damus.io"),
            ("wss://relay.example:443", "wss://relay.example"),
            ("ws://relay.example:80", "ws://relay.example"),
            ("wss://relay.example//nostr//", "wss://relay.example/nostr"),
            ("  wss://relay.example  ", "wss://relay.example"),
        ],
    )
    def test_url(self, raw: str, expected: str) -> None:
        assert Relay(raw).url == expected

    def test_raw_url_kept(self) -> None:
        assert Relay("WSS://Relay.Example/").raw_url == "WSS://Relay.Example/"

    def test_explicit_port(self) -> None:
        relay = Relay("ws://localhost:4869")
        assert relay.port == 4869
        assert relay.host == "localhost"
        assert relay.is_secure is False

    def test_str(self) -> None:
        assert str(Relay("wss://relay.example/")) == "wss://relay.example"


class TestRejection:
    """Invalid relay URLs."""

    @pytest.mark.parametrize("raw", ["https://relay.example", "relay.example", "ftp://x.example"])
    def test_bad_scheme(self, raw: str) -> None:
        with pytest.raises(ValueError):
            Relay(raw)

    def test_query(self) -> None:
        with pytest.raises(ValueError, match="query"):
            Relay("wss://relay.example/?a=1")

    def test_fragment(self) -> None:
        with pytest.raises(ValueError, match="fragment"):
            Relay("wss://relay.example/#x")

    def test_null_byte(self) -> None:
        with pytest.raises(ValueError, match="null"):
            Relay("wss://relay\x00.example")

    def test_non_string(self) -> None:
        with pytest.raises(TypeError):
            Relay(42)  # type: ignore[arg-type]


class TestNormalizeRelayUrls:
    """List normalization."""

    def test_dedup_keeps_first(self) -> None:
        urls = ["wss://b.example", "wss://a.example", "WSS://B.example/"]
        assert normalize_relay_urls(urls) == ["wss://b.example", "wss://a.example"]

    def test_empty(self) -> None:
        assert normalize_relay_urls([]) == []

    def test_invalid_raises(self) -> None:
        with pytest.raises(ValueError):
            normalize_relay_urls(["wss://ok.example", "http://bad.example"])
