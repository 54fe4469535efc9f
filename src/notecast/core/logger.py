"""
Structured logging with key=value and JSON output support.

Wraps the standard library ``logging`` module so every component logs a
snake_case event name followed by structured fields:

```text
info broadcast relay_publish_failed relay=wss://nos.lol error="no acknowledgment within 10.0s"
```

Values containing spaces, equals signs, or quotes are escaped and wrapped in
double quotes; long values are truncated. ``StructuredFormatter`` renders the
same layout for plain ``logging.getLogger()`` calls made by the ``utils`` and
``nips`` layers once the CLI installs it on the root handler.

Examples:
    ```python
    from notecast.core.logger import Logger

    logger = Logger("broadcast")
    logger.info("broadcast_completed", relays=3, succeeded=2)
    # broadcast_completed relays=3 succeeded=2

    Logger("broadcast", json_output=True).info("broadcast_completed", relays=3)
    # {"timestamp": "...", "level": "info", "service": "broadcast", ...}
    ```
"""

from __future__ import annotations

import datetime
import json
import logging
from typing import Any, ClassVar


def _truncate(value: str, max_length: int | None) -> str:
    if max_length and len(value) > max_length:
        return value[:max_length] + f"...<truncated {len(value) - max_length} chars>"
    return value


def format_kv_pairs(
    kwargs: dict[str, Any],
    max_value_length: int | None = 1000,
    prefix: str = " ",
) -> str:
    """Format a dictionary as space-separated key=value pairs.

    Args:
        kwargs: Key-value pairs to format.
        max_value_length: Maximum characters per value before truncation.
            ``None`` disables truncation.
        prefix: String prepended to a non-empty result.

    Returns:
        e.g. ``' relay=wss://nos.lol error="timed out"'``, or ``""`` when
        *kwargs* is empty.
    """
    if not kwargs:
        return ""

    parts = []
    for k, v in kwargs.items():
        s = _truncate(str(v), max_value_length)
        if not s or " " in s or "=" in s or '"' in s or "'" in s:
            escaped = s.replace("\\", "\\\\").replace('"', '\\"')
            parts.append(f'{k}="{escaped}"')
        else:
            parts.append(f"{k}={s}")

    return prefix + " ".join(parts)


class StructuredFormatter(logging.Formatter):
    """Render every record as ``level name message key=value ...``.

    Structured fields come from the ``structured_kv`` extra attached by
    [Logger][notecast.core.logger.Logger]; records without it (plain
    ``logging`` calls) get the same prefix and no fields.
    """

    def format(self, record: logging.LogRecord) -> str:
        base = f"{record.levelname.lower()} {record.name} {record.getMessage()}"
        extra: dict[str, Any] = getattr(record, "structured_kv", {})
        if extra:
            base += format_kv_pairs(extra)
        if record.exc_info:
            base += "\n" + self.formatException(record.exc_info)
        return base


class Logger:
    """Structured logger that turns keyword arguments into log fields.

    Mirrors the standard logging API (``debug`` .. ``critical`` and
    ``exception``) with an extra ``**kwargs`` parameter.

    Args:
        name: Logger name, passed to ``logging.getLogger``.
        json_output: Emit one JSON object per record instead of key=value
            fields.
        max_value_length: Per-value truncation limit (default 1000).
    """

    _DEFAULT_MAX_VALUE_LENGTH: ClassVar[int] = 1000

    def __init__(
        self,
        name: str,
        *,
        json_output: bool = False,
        max_value_length: int | None = None,
    ) -> None:
        if max_value_length is None:
            max_value_length = self._DEFAULT_MAX_VALUE_LENGTH
        self._logger = logging.getLogger(name)
        self._json_output = json_output
        self._max_value_length = max_value_length

    @property
    def name(self) -> str:
        return self._logger.name

    def _format_json(self, msg: str, level: str, kwargs: dict[str, Any]) -> str:
        record = {
            "timestamp": datetime.datetime.now(datetime.UTC).isoformat(),
            "level": level,
            "service": self._logger.name,
            "message": msg,
            **kwargs,
        }
        return json.dumps(record, default=str)

    def _make_extra(self, kwargs: dict[str, Any]) -> dict[str, Any]:
        if not kwargs:
            return {}
        truncated = {
            k: _truncate(str(v), self._max_value_length)
            if self._max_value_length and len(str(v)) > self._max_value_length
            else v
            for k, v in kwargs.items()
        }
        return {"structured_kv": truncated}

    def _log(self, level: int, msg: str, kwargs: dict[str, Any], *, exc_info: bool = False) -> None:
        if not self._logger.isEnabledFor(level):
            return
        if self._json_output:
            level_name = "error" if exc_info else logging.getLevelName(level).lower()
            self._logger.log(level, self._format_json(msg, level_name, kwargs), exc_info=exc_info)
        else:
            self._logger.log(level, msg, extra=self._make_extra(kwargs), exc_info=exc_info)

    def debug(self, msg: str, **kwargs: Any) -> None:
        self._log(logging.DEBUG, msg, kwargs)

    def info(self, msg: str, **kwargs: Any) -> None:
        self._log(logging.INFO, msg, kwargs)

    def warning(self, msg: str, **kwargs: Any) -> None:
        self._log(logging.WARNING, msg, kwargs)

    def error(self, msg: str, **kwargs: Any) -> None:
        self._log(logging.ERROR, msg, kwargs)

    def critical(self, msg: str, **kwargs: Any) -> None:
        self._log(logging.CRITICAL, msg, kwargs)

    def exception(self, msg: str, **kwargs: Any) -> None:
        """Log at ERROR level with the active exception's traceback."""
        self._log(logging.ERROR, msg, kwargs, exc_info=True)

