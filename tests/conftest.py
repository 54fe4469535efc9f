"""
Pytest configuration and shared fixtures for notecast tests.

Provides:
- Test secret keys (hex and nsec) and a ``Keys`` fixture
- Record builders for signed and unsigned sample records
- An autouse fixture that keeps the secret key variable out of the
  developer's environment
"""

from __future__ import annotations

import logging
from typing import Any

import pytest
from nostr_sdk import Keys

from notecast.models import Record, RecordTemplate
from notecast.utils.keys import ENV_SECRET_KEY, sign_record


VALID_HEX_KEY = (
    "67dea2ed018072d675f5415ecfaed7d2597555e202d85b3d65ea4e58d2d92ffa"  # pragma: allowlist secret
)
VALID_NSEC_KEY = (
    "nsec1vl029mgpspedva04g90vltkh6fvh240zqtv9k0t9af8935ke9laqsnlfe5"  # pragma: allowlist secret
)

FAKE_ID = "a" * 64
FAKE_PUBKEY = "b" * 64
FAKE_SIG = "c" * 128


# ============================================================================
# Logging Configuration
# ============================================================================


@pytest.fixture(scope="session", autouse=True)
def setup_logging() -> None:
    """Configure logging for tests."""
    logging.basicConfig(level=logging.DEBUG)


@pytest.fixture(autouse=True)
def _clean_secret_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Never read a real secret key from the developer's environment."""
    monkeypatch.delenv(ENV_SECRET_KEY, raising=False)


# ============================================================================
# Keys and Records
# ============================================================================


@pytest.fixture
def keys() -> Keys:
    """Keys parsed from the test hex secret key."""
    return Keys.parse(VALID_HEX_KEY)


@pytest.fixture
def secret_env(monkeypatch: pytest.MonkeyPatch) -> str:
    """Export the test secret key under the default variable name."""
    monkeypatch.setenv(ENV_SECRET_KEY, VALID_HEX_KEY)
    return VALID_HEX_KEY


def make_fake_record(**overrides: Any) -> Record:
    """Build a shape-valid record with a fake signature (not verifiable)."""
    fields: dict[str, Any] = {
        "id": FAKE_ID,
        "pubkey": FAKE_PUBKEY,
        "created_at": 1_700_000_000,
        "kind": 1,
        "tags": (),
        "content": "hello",
        "signature": FAKE_SIG,
    }
    fields.update(overrides)
    return Record(**fields)


@pytest.fixture
def fake_record() -> Record:
    return make_fake_record()


@pytest.fixture
def signed_record(keys: Keys) -> Record:
    """A kind 1 record signed with the test keys."""
    template = RecordTemplate(
        kind=1,
        content="Title\n\nBody",
        tags=(("client", "notecast"),),
        created_at=1_700_000_000,
    )
    return sign_record(template, keys)
