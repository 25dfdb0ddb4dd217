"""
DateWindow -- half-open aggregation interval over dates.

A bound of None is infinite.  ``DateWindow()`` (both bounds None) is the
"no filter" window and is the same value as ``[-inf, +inf)``; ``date.min``
and ``date.max`` bounds are folded into None so every spelling of
"everything" compares equal.

Undated records are inside the unbounded window only.  Any bounded window
excludes them; callers report them as anomalies instead of dropping them
silently.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime

from sales_kernel.exceptions import InvalidWindowError


@dataclass(frozen=True)
class DateWindow:
    """Half-open interval ``[start, end)``."""

    start: date | None = None
    end: date | None = None

    def __post_init__(self) -> None:
        start = _as_date(self.start)
        end = _as_date(self.end)
        if start == date.min:
            start = None
        if end == date.max:
            end = None
        object.__setattr__(self, "start", start)
        object.__setattr__(self, "end", end)
        if start is not None and end is not None and start > end:
            raise InvalidWindowError(start.isoformat(), end.isoformat())

    @classmethod
    def unbounded(cls) -> DateWindow:
        return cls()

    @classmethod
    def coerce(cls, window: DateWindow | None) -> DateWindow:
        """``None`` means no filter."""
        return window if window is not None else cls()

    @property
    def is_unbounded(self) -> bool:
        return self.start is None and self.end is None

    def contains(self, value: date | datetime | None) -> bool:
        """True when ``value`` lies in ``[start, end)``."""
        if value is None:
            return self.is_unbounded
        day = _as_date(value)
        if self.start is not None and day < self.start:
            return False
        if self.end is not None and day >= self.end:
            return False
        return True

    def describe(self) -> dict[str, str | None]:
        return {
            "start": self.start.isoformat() if self.start else None,
            "end": self.end.isoformat() if self.end else None,
        }


def _as_date(value: date | datetime | None) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    return value


NO_FILTER = DateWindow()
