"""Unit tests for nips.event_builders module.

Covers slug and summary helpers, publish mode suggestion, and the kind 1,
kind 30023, and kind 24242 template builders.
"""

from __future__ import annotations

import time

import pytest

from notecast.models import EventKind, PublishMode
from notecast.nips.event_builders import (
    build_long_form,
    build_note,
    build_text_note,
    build_upload_authorization,
    make_slug,
    make_summary,
    suggest_publish_mode,
)


SHA = "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"


# ============================================================================
# Helpers
# ============================================================================


class TestMakeSlug:
    """NIP-23 d identifiers."""

    def test_basic(self) -> None:
        assert make_slug("Hello, World!", 1_700_000_000) == "hello-world-1700000000"

    def test_whitespace_runs(self) -> None:
        assert make_slug("a   b\tc", 1) == "a-b-c-1"

    def test_truncated_before_timestamp(self) -> None:
        slug = make_slug("x" * 50, 42)
        assert slug == "x" * 30 + "-42"

    def test_non_ascii_letters_dropped(self) -> None:
        assert make_slug("Café déjà", 7) == "caf-dj-7"


class TestMakeSummary:
    """Article summaries."""

    def test_first_paragraph(self) -> None:
        assert make_summary("First para.\n\nSecond para.") == "First para."

    def test_short_single_paragraph(self) -> None:
        assert make_summary("Just one line") == "Just one line"

    def test_long_single_paragraph(self) -> None:
        body = "word " * 40
        summary = make_summary(body)
        assert summary.endswith("...")
        assert len(summary) <= 103

    def test_leading_blank_line(self) -> None:
        assert make_summary("\n\nText") == "Text"


class TestSuggestPublishMode:
    """Length threshold."""

    def test_at_threshold_is_regular(self) -> None:
        assert suggest_publish_mode("x" * 256) == PublishMode.REGULAR

    def test_above_threshold_is_long_form(self) -> None:
        assert suggest_publish_mode("x" * 257) == PublishMode.LONG_FORM

    def test_custom_threshold(self) -> None:
        assert suggest_publish_mode("abc", threshold=2) == PublishMode.LONG_FORM


# ============================================================================
# Kind 1 and kind 30023
# ============================================================================


class TestBuildTextNote:
    """Kind 1 templates."""

    def test_content_and_tags(self) -> None:
        template = build_text_note("Title", "Body", created_at=100)
        assert template.kind == EventKind.TEXT_NOTE
        assert template.content == "Title\n\nBody"
        assert template.tags == (("client", "notecast"),)
        assert template.created_at == 100

    def test_custom_client_tag(self) -> None:
        template = build_text_note("T", "B", client_tag="my-app")
        assert template.tag_values("client") == ["my-app"]

    def test_created_at_defaults_to_now(self) -> None:
        before = int(time.time())
        assert build_text_note("T", "B").created_at >= before


class TestBuildLongForm:
    """Kind 30023 templates."""

    def test_tags_in_order(self) -> None:
        template = build_long_form("My Trip", "Day one.\n\nDay two.", created_at=1_700_000_000)
        assert template.kind == EventKind.LONG_FORM
        assert template.content == "Day one.\n\nDay two."
        assert template.tags == (
            ("client", "notecast"),
            ("d", "my-trip-1700000000"),
            ("title", "My Trip"),
            ("summary", "Day one."),
            ("published_at", "1700000000"),
        )


class TestBuildNote:
    @pytest.mark.parametrize(
        ("mode", "kind"),
        [(PublishMode.REGULAR, EventKind.TEXT_NOTE), (PublishMode.LONG_FORM, EventKind.LONG_FORM)],
    )
    def test_dispatch(self, mode: PublishMode, kind: EventKind) -> None:
        assert build_note(mode, "T", "B", created_at=1).kind == kind


# ============================================================================
# Kind 24242
# ============================================================================


class TestBuildUploadAuthorization:
    """Blossom upload authorization."""

    def test_tags(self) -> None:
        template = build_upload_authorization(SHA, "photo.png", created_at=1000)
        assert template.kind == EventKind.BLOSSOM_AUTH
        assert template.content == "Upload photo.png"
        assert template.tags == (("t", "upload"), ("x", SHA), ("expiration", "1300"))

    def test_custom_ttl(self) -> None:
        template = build_upload_authorization(SHA, "a.png", ttl=60, created_at=1000)
        assert template.tag_values("expiration") == ["1060"]
