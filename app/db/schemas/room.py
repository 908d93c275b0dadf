from pydantic import BaseModel
from typing import List, Optional


class RoomScheduleOut(BaseModel):
    id: Optional[str] = None
    title: str
    teacher: Optional[str] = None
    room_id: str
    room: str
    floor: str
    building: str
    status: str
    start: str
    end: str
    type: str
    className: Optional[str] = None


class RoomSnapshotOut(RoomScheduleOut):
    free_until: str
    minutes_left: int
    next_slot_free_minutes: Optional[int] = None
    is_end_of_day: bool


class ScheduleMeta(BaseModel):
    building: str
    date: str
    count: int


class SnapshotMeta(ScheduleMeta):
    query_time: str


class RoomScheduleList(BaseModel):
    data: List[RoomScheduleOut]
    meta: ScheduleMeta


class RoomSnapshotList(BaseModel):
    data: List[RoomSnapshotOut]
    meta: SnapshotMeta
