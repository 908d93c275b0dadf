import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any, Optional

from sqlalchemy.orm import Session

from app.core.config import Settings, settings as default_settings
from app.db.models.building import Building
from app.db.models.enums import SlotStatus
from app.db.models.room import Room
from app.db.models.schedule import Schedule

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedMoment:
    date: date
    moment: datetime  # aware, in the civil timezone


@dataclass(frozen=True)
class ScheduleRow:
    """One slot joined with its room, as returned by day_schedules()."""
    id: int
    room_id: int
    start_time: datetime
    end_time: datetime
    status: SlotStatus
    title: Optional[str]
    teacher: Optional[str]
    class_name: Optional[str]
    external_id: Optional[str]
    color: Optional[str]
    room_number: str
    floor: str
    full_code: str
    building_code: str


def _minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes from start to end, never negative."""
    return max(0, int((end - start).total_seconds() // 60))


class RoomScheduleService:
    def __init__(self, db: Session, config: Optional[Settings] = None):
        self.db = db
        self.config = config or default_settings

    # ============================================================
    # Query moment
    # ============================================================

    def now(self) -> datetime:
        return datetime.now(self.config.tz)

    def resolve_query_moment(self, date_str: Optional[str], time_str: Optional[str]) -> ResolvedMoment:
        """
        Resolve the moment to query. A date without time means the start of
        the working day. Anything unparseable falls back to now.
        """
        if date_str:
            try:
                day = date.fromisoformat(date_str.strip())
                if time_str:
                    clock = datetime.strptime(
                        time_str.strip(), "%H:%M" if len(time_str.strip()) == 5 else "%H:%M:%S"
                    ).time()
                else:
                    clock = self.config.working_day_start
                moment = datetime.combine(day, clock, tzinfo=self.config.tz)
                return ResolvedMoment(date=moment.date(), moment=moment)
            except ValueError:
                logger.debug(f"Unparseable query moment date={date_str!r} time={time_str!r}, using now")

        moment = self.now()
        return ResolvedMoment(date=moment.date(), moment=moment)

    # ============================================================
    # Day schedule
    # ============================================================

    def day_schedules(self, building: Building, day: date) -> list[ScheduleRow]:
        day_start = datetime.combine(day, time.min)
        q = (
            self.db.query(Schedule, Room)
            .join(Room, Room.id == Schedule.room_id)
            .filter(
                Room.building_id == building.id,
                Schedule.start_time >= day_start,
                Schedule.start_time < day_start + timedelta(days=1),
            )
            .order_by(Room.floor.asc(), Room.number.asc(), Schedule.start_time.asc())
        )
        return [
            ScheduleRow(
                id=slot.id,
                room_id=slot.room_id,
                start_time=slot.start_time,
                end_time=slot.end_time,
                status=SlotStatus(slot.status),
                title=slot.title,
                teacher=slot.teacher,
                class_name=slot.class_name,
                external_id=slot.external_id,
                color=slot.color,
                room_number=room.number,
                floor=room.floor,
                full_code=room.full_code,
                building_code=building.code,
            )
            for slot, room in q.all()
        ]

    # ============================================================
    # Snapshots
    # ============================================================

    def current_snapshots(
        self,
        building: Building,
        moment: datetime,
        day_schedules: Optional[list[ScheduleRow]] = None,
    ) -> list[dict[str, Any]]:
        moment = self._localize(moment)
        rows = day_schedules if day_schedules is not None else self.day_schedules(building, moment.date())

        by_room: dict[int, list[ScheduleRow]] = {}
        for row in rows:
            by_room.setdefault(row.room_id, []).append(row)

        return [
            self._snapshot(row, moment, by_room[row.room_id])
            for row in rows
            if self._contains(row, moment)
        ]

    def _localize(self, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=self.config.tz)
        return value.astimezone(self.config.tz)

    def _contains(self, row: ScheduleRow, moment: datetime) -> bool:
        # half-open: a slot ending exactly at moment is no longer active
        return self._localize(row.start_time) <= moment < self._localize(row.end_time)

    def _first_slot_after(
        self,
        room_rows: list[ScheduleRow],
        after: datetime,
        status: Optional[SlotStatus] = None,
        inclusive: bool = False,
    ) -> Optional[ScheduleRow]:
        candidates = [
            r for r in room_rows
            if (status is None or r.status == status)
            and (self._localize(r.start_time) >= after if inclusive else self._localize(r.start_time) > after)
        ]
        return min(candidates, key=lambda r: r.start_time, default=None)

    def _snapshot(self, row: ScheduleRow, moment: datetime, room_rows: list[ScheduleRow]) -> dict[str, Any]:
        start = self._localize(row.start_time)
        end = self._localize(row.end_time)
        working_end = datetime.combine(moment.date(), self.config.working_day_end, tzinfo=self.config.tz)

        next_slot_free_minutes = None
        is_end_of_day = False

        if row.status == SlotStatus.FREE:
            # inclusive: a BUSY slot starting exactly at this slot's end counts
            next_busy = self._first_slot_after(room_rows, end, SlotStatus.BUSY, inclusive=True)
            target_end = (
                min(self._localize(next_busy.start_time), working_end) if next_busy else working_end
            )
            minutes_left = _minutes_between(moment, target_end)
            is_end_of_day = target_end == working_end
        else:
            target_end = min(end, working_end)
            minutes_left = _minutes_between(moment, end)
            next_slot = self._first_slot_after(room_rows, end)
            if next_slot:
                effective_next = min(self._localize(next_slot.start_time), working_end)
                next_slot_free_minutes = _minutes_between(end, effective_next)
            else:
                next_slot_free_minutes = _minutes_between(end, working_end)

        payload = self.schedule_payload(row)
        payload.update({
            "free_until": target_end.strftime("%H:%M"),
            "minutes_left": minutes_left,
            "next_slot_free_minutes": next_slot_free_minutes,
            "is_end_of_day": is_end_of_day,
        })
        return payload

    def schedule_payload(self, row: ScheduleRow) -> dict[str, Any]:
        busy = row.status == SlotStatus.BUSY
        return {
            "id": row.external_id if busy else f"free_{row.id}",
            "title": row.title if row.title is not None else ("Scheduled" if busy else "Free Room"),
            "teacher": row.teacher,
            "room_id": row.full_code,
            "room": row.room_number,
            "floor": row.floor,
            "building": row.building_code,
            "status": row.status.value,
            "start": self._localize(row.start_time).isoformat(),
            "end": self._localize(row.end_time).isoformat(),
            "type": "class" if busy else "free",
            "className": row.class_name,
        }
