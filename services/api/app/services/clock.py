from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Wall-clock time as naive UTC, matching how timestamps are stored."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc).replace(tzinfo=None)


class FixedClock:
    def __init__(self, at: datetime) -> None:
        self._at = at

    def now(self) -> datetime:
        return self._at

    def advance(self, **kwargs: float) -> None:
        self._at = self._at + timedelta(**kwargs)


def get_clock() -> Clock:
    """Select the clock based on env vars.

    Defaults to the system clock. PLATTER_CLOCK=fixed:<iso8601> pins time for demos and
    end-to-end tests.
    """

    mode = os.getenv("PLATTER_CLOCK", "system").strip()

    if mode.lower() == "system":
        return SystemClock()

    if mode.lower().startswith("fixed:"):
        value = mode.split(":", 1)[1]
        try:
            at = datetime.fromisoformat(value)
        except ValueError as e:
            raise ValueError(f"Invalid PLATTER_CLOCK timestamp {value!r}") from e
        if at.tzinfo is not None:
            at = at.astimezone(timezone.utc).replace(tzinfo=None)
        return FixedClock(at)

    raise ValueError(f"Unknown PLATTER_CLOCK={mode!r}. Expected system or fixed:<iso8601>.")
