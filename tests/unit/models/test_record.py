"""
Unit tests for models.record module.

Tests:
- Record construction and shape validation
- Wire serialization (to_dict/to_json, from_dict/from_json)
- Tag accessors (tag_values, first_tag)
- RecordTemplate defaults and validation
- RecordFilter serialization and local matching
"""

from __future__ import annotations

import json
import time
from dataclasses import FrozenInstanceError

import pytest

from notecast.models import Record, RecordFilter, RecordTemplate
from tests.conftest import FAKE_ID, FAKE_PUBKEY, FAKE_SIG, make_fake_record


WIRE = {
    "id": FAKE_ID,
    "pubkey": FAKE_PUBKEY,
    "created_at": 1_700_000_000,
    "kind": 30023,
    "tags": [["d", "my-slug"], ["title", "Hello"], ["t", "a"], ["t", "b"]],
    "content": "body",
    "sig": FAKE_SIG,
}


# ============================================================================
# Record
# ============================================================================


class TestRecordValidation:
    """Shape checks at construction."""

    def test_valid(self) -> None:
        record = make_fake_record()
        assert record.kind == 1
        assert record.content == "hello"

    def test_frozen(self) -> None:
        record = make_fake_record()
        with pytest.raises(FrozenInstanceError):
            record.content = "changed"  # type: ignore[misc]

    def test_tags_frozen_to_tuples(self) -> None:
        record = make_fake_record(tags=[["t", "x"]])
        assert record.tags == (("t", "x"),)

    @pytest.mark.parametrize(
        ("field", "value"),
        [
            ("id", "abc"),
            ("id", "A" * 64),
            ("pubkey", "g" * 64),
            ("signature", "c" * 64),
        ],
    )
    def test_bad_hex(self, field: str, value: str) -> None:
        with pytest.raises(ValueError, match=field):
            make_fake_record(**{field: value})

    def test_negative_timestamp(self) -> None:
        with pytest.raises(ValueError, match="created_at"):
            make_fake_record(created_at=-1)

    def test_bool_timestamp_rejected(self) -> None:
        with pytest.raises(TypeError, match="created_at"):
            make_fake_record(created_at=True)

    def test_kind_out_of_range(self) -> None:
        with pytest.raises(ValueError, match="kind"):
            make_fake_record(kind=70_000)

    def test_empty_tag_rejected(self) -> None:
        with pytest.raises(ValueError, match="must not be empty"):
            make_fake_record(tags=[[]])

    def test_non_string_tag_item(self) -> None:
        with pytest.raises(TypeError, match="items must be str"):
            make_fake_record(tags=[["t", 1]])


class TestRecordSerialization:
    """NIP-01 wire format."""

    def test_from_dict(self) -> None:
        record = Record.from_dict(WIRE)
        assert record.signature == FAKE_SIG
        assert record.tags[0] == ("d", "my-slug")

    def test_to_dict_uses_sig_key(self) -> None:
        data = Record.from_dict(WIRE).to_dict()
        assert data == WIRE

    def test_to_json_compact(self) -> None:
        raw = Record.from_dict(WIRE).to_json()
        assert " " not in raw.replace("my-slug", "")
        assert json.loads(raw) == WIRE

    def test_from_json(self) -> None:
        assert Record.from_json(json.dumps(WIRE)) == Record.from_dict(WIRE)

    def test_missing_field(self) -> None:
        data = {k: v for k, v in WIRE.items() if k != "sig"}
        with pytest.raises(ValueError, match="'sig'"):
            Record.from_dict(data)

    def test_not_a_dict(self) -> None:
        with pytest.raises(TypeError, match="object"):
            Record.from_dict(["EVENT"])

    def test_invalid_json(self) -> None:
        with pytest.raises(ValueError):
            Record.from_json("{")

    def test_unicode_content_preserved(self) -> None:
        record = make_fake_record(content="café \U0001f600")
        assert "café" in record.to_json()


class TestRecordTags:
    """Tag accessors."""

    def test_tag_values_in_order(self) -> None:
        assert Record.from_dict(WIRE).tag_values("t") == ["a", "b"]

    def test_first_tag(self) -> None:
        record = Record.from_dict(WIRE)
        assert record.first_tag("title") == "Hello"
        assert record.first_tag("missing") is None

    def test_single_element_tag_ignored(self) -> None:
        record = make_fake_record(tags=[["t"]])
        assert record.tag_values("t") == []


# ============================================================================
# RecordTemplate
# ============================================================================


class TestRecordTemplate:
    """Unsigned templates."""

    def test_created_at_defaults_to_now(self) -> None:
        before = int(time.time())
        template = RecordTemplate(kind=1)
        assert before <= template.created_at <= int(time.time())

    def test_tags_frozen(self) -> None:
        template = RecordTemplate(kind=1, tags=[["client", "notecast"]])  # type: ignore[arg-type]
        assert template.tags == (("client", "notecast"),)
        assert template.tag_values("client") == ["notecast"]

    def test_content_must_be_str(self) -> None:
        with pytest.raises(TypeError, match="content"):
            RecordTemplate(kind=1, content=b"bytes")  # type: ignore[arg-type]


# ============================================================================
# RecordFilter
# ============================================================================


class TestRecordFilter:
    """Subscription filters."""

    def test_to_dict_omits_empty(self) -> None:
        assert RecordFilter().to_dict() == {}

    def test_to_dict(self) -> None:
        f = RecordFilter(kinds=(0,), authors=(FAKE_PUBKEY,), limit=1)
        assert f.to_dict() == {"kinds": [0], "authors": [FAKE_PUBKEY], "limit": 1}

    def test_lists_converted(self) -> None:
        f = RecordFilter(kinds=[0, 1])  # type: ignore[arg-type]
        assert f.kinds == (0, 1)

    def test_matches_kind(self) -> None:
        f = RecordFilter(kinds=(0,))
        assert f.matches(make_fake_record(kind=0))
        assert not f.matches(make_fake_record(kind=1))

    def test_matches_author(self) -> None:
        f = RecordFilter(authors=("d" * 64,))
        assert not f.matches(make_fake_record())
        assert f.matches(make_fake_record(pubkey="d" * 64))

    def test_empty_matches_all(self) -> None:
        assert RecordFilter().matches(make_fake_record())

    def test_invalid_author(self) -> None:
        with pytest.raises(ValueError, match="authors"):
            RecordFilter(authors=("npub1xyz",))
