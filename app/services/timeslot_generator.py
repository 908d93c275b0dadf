import logging
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from app.core.config import Settings, settings as default_settings
from app.db.models.building import Building
from app.db.models.enums import SlotStatus
from app.db.models.room import Room
from app.db.models.schedule import Schedule
from app.services.event_parser import ParsedEvent
from app.services.timetable_fetcher import TimetableFetcher

logger = logging.getLogger(__name__)

FREE_TITLE = "Free Room"
FREE_COLOR = "#28a745"
BUSY_COLOR = "#C00C82"


def date_range(first: date, last: date) -> list[date]:
    days = []
    d = first
    while d <= last:
        days.append(d)
        d += timedelta(days=1)
    return days


def group_events(events: Iterable[ParsedEvent]) -> dict[date, dict[str, list[ParsedEvent]]]:
    """Group events by calendar date, then by room code, keeping input order."""
    grouped: dict[date, dict[str, list[ParsedEvent]]] = defaultdict(lambda: defaultdict(list))
    for ev in events:
        grouped[ev.start_time.date()][ev.room_code].append(ev)
    return grouped


def _slot(room_id: int, start: datetime, end: datetime, status: SlotStatus,
          event: Optional[ParsedEvent] = None) -> Schedule:
    if status == SlotStatus.FREE:
        return Schedule(
            room_id=room_id, start_time=start, end_time=end, status=status,
            title=FREE_TITLE, color=FREE_COLOR,
        )
    return Schedule(
        room_id=room_id,
        start_time=start,
        end_time=end,
        status=status,
        title=event.short_title,
        teacher=event.teacher,
        class_name=event.class_name or None,
        external_id=event.external_id,
        color=BUSY_COLOR,
    )


def build_day_slots(room_id: int, events: list[ParsedEvent],
                    day_start: datetime, day_end: datetime) -> list[Schedule]:
    """
    Fill [day_start, day_end) with FREE/BUSY slots for one room.

    Events that start before the fill pointer (overlaps, or before the
    window) or at/after day_end are skipped; BUSY slots are clipped to
    day_end. Equal starts keep input order, so the first one wins.
    """
    slots: list[Schedule] = []
    pointer = day_start

    for ev in sorted(events, key=lambda e: e.start_time):
        if ev.start_time < pointer or ev.start_time >= day_end:
            continue
        if ev.start_time > pointer:
            slots.append(_slot(room_id, pointer, ev.start_time, SlotStatus.FREE))
        end = min(ev.end_time, day_end)
        slots.append(_slot(room_id, ev.start_time, end, SlotStatus.BUSY, ev))
        pointer = end

    if pointer < day_end:
        slots.append(_slot(room_id, pointer, day_end, SlotStatus.FREE))
    return slots


class TimeslotGenerator:
    """
    Regenerates the complete FREE/BUSY timeline of a building for every day
    between its first and last event.
    """

    def __init__(self, db: Session, config: Optional[Settings] = None,
                 fetcher: Optional[TimetableFetcher] = None):
        self.db = db
        self.config = config or default_settings
        self.fetcher = fetcher or TimetableFetcher(db, self.config)

    def _window(self, day: date) -> tuple[datetime, datetime]:
        return (
            datetime.combine(day, self.config.opening_start),
            datetime.combine(day, self.config.opening_end),
        )

    def generate(self, building_code: str, events: Optional[list[ParsedEvent]] = None) -> int:
        code = building_code.strip().upper()
        if self.db.query(Building.id).filter(Building.code == code).first() is None:
            return 0

        logger.info(f"Generating schedule for {code}")

        if events is None:
            events = self.fetcher.sync(code).events
        if not events:
            logger.info(f"No parsed events available for {code}, timeline left untouched")
            return 0

        grouped = group_events(events)
        days = date_range(min(grouped), max(grouped))
        total = 0

        try:
            # serializes concurrent regenerations of the same building
            building = (
                self.db.query(Building)
                .filter_by(code=code)
                .with_for_update()
                .one()
            )
            rooms = self.db.query(Room).filter(Room.building_id == building.id).all()

            for day in days:
                day_start, day_end = self._window(day)
                next_midnight = datetime.combine(day + timedelta(days=1), datetime.min.time())
                events_by_room = grouped.get(day, {})

                for room in rooms:
                    (
                        self.db.query(Schedule)
                        .filter(
                            Schedule.room_id == room.id,
                            Schedule.start_time >= datetime.combine(day, datetime.min.time()),
                            Schedule.start_time < next_midnight,
                        )
                        .delete(synchronize_session=False)
                    )

                    slots = build_day_slots(room.id, events_by_room.get(room.full_code, []), day_start, day_end)
                    self.db.add_all(slots)
                    total += len(slots)

            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Timeline generation for {code} rolled back: {type(e).__name__}: {e}")
            raise

        logger.info(f"✅ Generated {total} timeslots for {code} over {len(days)} days")
        return total
