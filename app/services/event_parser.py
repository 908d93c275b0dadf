"""
Event parsing.

Turns raw timetable API events into structured class events.

Raw titles look like:

    "AP152 AP152.EG.108 Software Engineering (VO), Mustermann Max, ..."

The first token is the building, the second the full room code
BUILDING.FLOOR.NUMBER, whose first segment repeats the building. Everything
up to the first comma (cut before any parenthesis) is the short title, the
segment after it the teacher.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Optional
from zoneinfo import ZoneInfo

ROOM_PATTERN = re.compile(r"([A-Z]+\d{3})\s+(\1\.(?:EG|\d{2})\.\d{3})")

UNKNOWN_TEACHER = "Unknown"


@dataclass(frozen=True)
class RoomMatch:
    building: str
    full_code: str
    floor: str
    number: str


@dataclass(frozen=True)
class ParsedEvent:
    external_id: str
    room_code: str
    floor: str
    number: str
    short_title: str
    teacher: str
    class_name: str
    color: str
    start_time: datetime
    end_time: datetime


@dataclass
class ParseResult:
    events: list[ParsedEvent] = field(default_factory=list)
    ignored: int = 0  # belonged to another building
    unmatched: int = 0  # no room code or unusable instants


def match_room(title: str) -> Optional[RoomMatch]:
    """Extract building and room code from an event title, or None."""
    if not title:
        return None
    m = ROOM_PATTERN.search(title)
    if not m:
        return None
    building, full_code = m.group(1), m.group(2)
    _, floor, number = full_code.split(".")
    return RoomMatch(building=building, full_code=full_code, floor=floor, number=number)


def split_title(title: str) -> tuple[str, str]:
    """Return (short_title, teacher)."""
    parts = title.split(",")
    section = parts[0].strip()
    paren = section.find("(")
    short_title = section[:paren].strip() if paren != -1 else section
    teacher = parts[1].strip() if len(parts) > 1 else UNKNOWN_TEACHER
    return short_title, teacher


def to_civil(value: Any, tz: ZoneInfo) -> Optional[datetime]:
    """
    Parse an ISO-8601 instant into naive wall-clock time in tz.
    Naive inputs are taken to already be civil time.
    """
    if not isinstance(value, str) or not value.strip():
        return None
    raw = value.strip().replace("Z", "+00:00")
    try:
        dt = datetime.fromisoformat(raw)
    except ValueError:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(tz).replace(tzinfo=None)
    return dt


def parse_event(raw: dict[str, Any], match: RoomMatch, tz: ZoneInfo) -> Optional[ParsedEvent]:
    start = to_civil(raw.get("start"), tz)
    end = to_civil(raw.get("end"), tz)
    if start is None or end is None or end <= start:
        return None

    short_title, teacher = split_title(str(raw["title"]))
    return ParsedEvent(
        external_id=str(raw.get("id", "")),
        room_code=match.full_code,
        floor=match.floor,
        number=match.number,
        short_title=short_title,
        teacher=teacher,
        class_name=str(raw.get("className") or ""),
        color=str(raw.get("color") or ""),
        start_time=start,
        end_time=end,
    )


def parse_events(raw_events: Iterable[Any], building_code: str, tz: ZoneInfo) -> ParseResult:
    """
    Parse every raw event that belongs to building_code.

    Events with a different building token are counted in `ignored`;
    anything else that cannot be used is counted in `unmatched`.
    """
    result = ParseResult()
    wanted = building_code.strip().upper()

    for raw in raw_events:
        if not isinstance(raw, dict) or not raw.get("title"):
            result.unmatched += 1
            continue

        match = match_room(str(raw["title"]))
        if match is None:
            result.unmatched += 1
            continue

        if match.building != wanted:
            result.ignored += 1
            continue

        event = parse_event(raw, match, tz)
        if event is None:
            result.unmatched += 1
            continue
        result.events.append(event)

    return result
