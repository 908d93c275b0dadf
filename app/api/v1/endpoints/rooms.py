from datetime import date as date_type
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_allowed_building, get_db, get_settings
from app.core.config import Settings
from app.db.models.building import Building
from app.db.schemas.room import RoomScheduleList, RoomSnapshotList
from app.services.room_schedule_service import RoomScheduleService

router = APIRouter()

DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"
TIME_PATTERN = r"^\d{2}:\d{2}(:\d{2})?$"


@router.get("/{building}/now", summary="State of every room at a moment", response_model=RoomSnapshotList)
def get_free_rooms_now(
    date: Optional[str] = Query(None, pattern=DATE_PATTERN, description="YYYY-MM-DD"),
    time: Optional[str] = Query(None, pattern=TIME_PATTERN, description="HH:mm or HH:mm:ss"),
    target: Building = Depends(get_allowed_building),
    db: Session = Depends(get_db),
    config: Settings = Depends(get_settings),
):
    service = RoomScheduleService(db, config)
    resolved = service.resolve_query_moment(date, time)
    snapshots = service.current_snapshots(target, resolved.moment)

    return {
        "data": snapshots,
        "meta": {
            "building": target.code,
            "date": resolved.date.isoformat(),
            "query_time": resolved.moment.isoformat(),
            "count": len(snapshots),
        },
    }


@router.get("/{building}/schedule", summary="All slots of one day", response_model=RoomScheduleList)
def get_schedule(
    date: Optional[str] = Query(None, pattern=DATE_PATTERN, description="YYYY-MM-DD"),
    target: Building = Depends(get_allowed_building),
    db: Session = Depends(get_db),
    config: Settings = Depends(get_settings),
):
    service = RoomScheduleService(db, config)
    try:
        day = date_type.fromisoformat(date) if date else service.now().date()
    except ValueError:
        day = service.now().date()

    rows = service.day_schedules(target, day)
    return {
        "data": [service.schedule_payload(r) for r in rows],
        "meta": {
            "building": target.code,
            "date": day.isoformat(),
            "count": len(rows),
        },
    }
