import hashlib
import json
import logging
from dataclasses import dataclass, field
from typing import Optional

import requests
from sqlalchemy.orm import Session

from app.core.config import Settings, settings as default_settings
from app.db.models.building import Building
from app.db.models.raw_data import RawData
from app.db.models.room import Room
from app.services.event_parser import ParsedEvent, parse_events

logger = logging.getLogger(__name__)


@dataclass
class FetchResult:
    building: str
    processed: int = 0
    events: list[ParsedEvent] = field(default_factory=list)
    unchanged: bool = False


def fingerprint(body: str) -> str:
    return hashlib.md5(body.encode("utf-8")).hexdigest()


def get_or_create_building(db: Session, code: str) -> Building:
    b = db.query(Building).filter_by(code=code).first()
    if not b:
        b = Building(code=code)
        db.add(b); db.commit(); db.refresh(b)
    return b


def _get_or_create_room(db: Session, building: Building, event: ParsedEvent) -> Room:
    r = (
        db.query(Room)
        .filter(Room.building_id == building.id, Room.full_code == event.room_code)
        .first()
    )
    if not r:
        r = Room(
            building_id=building.id,
            full_code=event.room_code,
            floor=event.floor,
            number=event.number,
        )
        db.add(r)
        db.flush()
    return r


class TimetableFetcher:
    """
    Downloads the raw timetable of one building, detects changes through
    an MD5 fingerprint of the body and registers the rooms it references.
    """

    def __init__(self, db: Session, config: Optional[Settings] = None):
        self.db = db
        self.config = config or default_settings

    def _request(self, building_code: str) -> Optional[str]:
        base_url = (self.config.TIMETABLE_API_URL or "").strip()
        if not base_url:
            logger.error(f"❌ Timetable sync for {building_code} failed: TIMETABLE_API_URL is not configured")
            return None

        try:
            response = requests.get(
                base_url,
                params={"submit": "Suche", "q": building_code},
                headers={
                    "Accept": "application/json",
                    "User-Agent": self.config.TIMETABLE_USER_AGENT,
                },
                timeout=self.config.TIMETABLE_HTTP_TIMEOUT,
            )
        except requests.Timeout:
            logger.error(f"❌ Timetable API timed out after {self.config.TIMETABLE_HTTP_TIMEOUT}s for {building_code}")
            return None
        except requests.RequestException as e:
            logger.error(f"❌ Sync error for {building_code}: {type(e).__name__}: {e}")
            return None

        if not response.ok:
            logger.warning(f"⚠️ Timetable API responded with {response.status_code} for {building_code}")
            return None

        return response.text

    def sync(self, building_code: str) -> FetchResult:
        code = building_code.strip().upper()
        building = get_or_create_building(self.db, code)
        result = FetchResult(building=code)

        body = self._request(code)
        if body is None:
            return result

        try:
            raw_events = json.loads(body)
        except ValueError as e:
            logger.warning(f"⚠️ Timetable API returned invalid JSON for {code}: {e}")
            return result
        if not isinstance(raw_events, list):
            logger.warning(f"⚠️ Timetable API returned {type(raw_events).__name__} instead of a list for {code}")
            return result

        new_hash = fingerprint(body)
        existing = building.raw_data
        if existing is not None and existing.hash == new_hash:
            logger.info(f"Hash match for {code}. Skipping processing.")
            result.unchanged = True
            return result

        if existing is None:
            building.raw_data = RawData(content=body, hash=new_hash)
        else:
            existing.content = body
            existing.hash = new_hash

        parsed = parse_events(raw_events, code, self.config.tz)
        if parsed.ignored:
            logger.warning(
                f"Ignored {parsed.ignored} events for building {code} because they belonged to other buildings."
            )
        if parsed.unmatched:
            logger.debug(f"Dropped {parsed.unmatched} events without a usable room code for {code}")

        for event in parsed.events:
            _get_or_create_room(self.db, building, event)

        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        result.processed = len(parsed.events)
        result.events = parsed.events
        logger.info(f"✅ Fetched {len(raw_events)} raw events for {code}, {result.processed} parsed")
        return result
