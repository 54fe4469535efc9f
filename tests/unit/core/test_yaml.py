"""Unit tests for core.yaml module."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from notecast.core.exceptions import ConfigurationError
from notecast.core.yaml import load_yaml


if TYPE_CHECKING:
    from pathlib import Path


class TestLoadYaml:
    """Safe YAML loading."""

    def test_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("relays:\n  source: manual\n")
        assert load_yaml(path) == {"relays": {"source": "manual"}}

    def test_accepts_str_path(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("a: 1\n")
        assert load_yaml(str(path)) == {"a": 1}

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_yaml(path) == {}

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_yaml(tmp_path / "absent.yaml")

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("a: [1, 2\n")
        with pytest.raises(ConfigurationError):
            load_yaml(path)

    def test_non_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigurationError):
            load_yaml(path)

    def test_unsafe_tags_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "unsafe.yaml"
        path.write_text("a: !!python/object/apply:os.system ['true']\n")
        with pytest.raises(ConfigurationError):
            load_yaml(path)
