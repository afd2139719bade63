import re
from typing import NamedTuple

from booking_engine.errors import MalformedTime

_HHMM = re.compile(r"([01][0-9]|2[0-3]):([0-5][0-9])")


class TimeSpan(NamedTuple):
    """Half-open interval [start, end) in minutes since midnight."""
    start: int
    end: int

    @classmethod
    def parse(cls, start: str, end: str) -> "TimeSpan":
        return cls(to_minutes(start), to_minutes(end))

    def to_dict(self) -> dict:
        return {"start": from_minutes(self.start), "end": from_minutes(self.end)}


def to_minutes(value) -> int:
    if not isinstance(value, str):
        raise MalformedTime(value)
    m = _HHMM.fullmatch(value)
    if not m:
        raise MalformedTime(value)
    return int(m.group(1)) * 60 + int(m.group(2))


def from_minutes(minutes: int) -> str:
    # spans that run past midnight render as 24:15 etc. and never fit a slot
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def overlaps(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    return max(a_start, b_start) < min(a_end, b_end)


def contains(slot_start: int, slot_end: int, req_start: int, req_end: int) -> bool:
    # whole request inside one slot; adjacent slots are never joined
    return req_start >= slot_start and req_end <= slot_end
