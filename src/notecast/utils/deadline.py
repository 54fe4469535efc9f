"""Absolute deadlines on the event loop clock.

A [Deadline][notecast.utils.deadline.Deadline] is a point in time, not a
duration, so it can be created once and threaded through several awaits
without drift. It plugs directly into ``asyncio.timeout_at``.

Examples:
    ```python
    hard = Deadline.after(10.0)
    soft = Deadline.after(5.0)
    async with asyncio.timeout_at(Deadline.earliest(soft, hard).when):
        ...
    ```
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass


def _now() -> float:
    return asyncio.get_running_loop().time()


@dataclass(frozen=True, slots=True, order=True)
class Deadline:
    """An absolute point in time on the running loop's monotonic clock.

    Attributes:
        when: Loop time (``loop.time()``) at which the deadline fires.
    """

    when: float

    @classmethod
    def after(cls, seconds: float) -> Deadline:
        """Create a deadline *seconds* from now. Requires a running loop."""
        return cls(_now() + max(seconds, 0.0))

    @property
    def remaining(self) -> float:
        """Seconds left, never negative."""
        return max(self.when - _now(), 0.0)

    @property
    def expired(self) -> bool:
        return _now() >= self.when

    @staticmethod
    def earliest(*deadlines: Deadline) -> Deadline:
        """Return the deadline that fires first."""
        return min(deadlines)
