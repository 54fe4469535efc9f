"""YAML configuration loading.

Uses ``yaml.safe_load`` so configuration files cannot instantiate arbitrary
Python objects. Structure is validated afterwards by the Pydantic models in
[notecast.services.config][notecast.services.config].

Examples:
    ```python
    from notecast.core.yaml import load_yaml

    data = load_yaml("config/notecast.yaml")
    config = NotecastConfig.from_dict(data)
    ```
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigurationError


def load_yaml(config_path: str | Path) -> dict[str, Any]:
    """Load a YAML configuration file as a dictionary.

    Args:
        config_path: Path to the YAML file.

    Returns:
        The parsed mapping; ``{}`` for an empty file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigurationError: If the YAML is invalid or its top level is not a
            mapping.
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    try:
        with path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Config file {config_path} must contain a mapping, got {type(data).__name__}"
        )
    return data
