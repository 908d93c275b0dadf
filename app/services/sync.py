import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import Settings, settings as default_settings
from app.db.models.building import Building
from app.db.models.raw_data import RawData
from app.services.timeslot_generator import TimeslotGenerator
from app.services.timetable_fetcher import TimetableFetcher

logger = logging.getLogger(__name__)


@dataclass
class SyncReport:
    building: str
    events: int = 0
    slots: int = 0
    unchanged: bool = False


def _stored_payload(db: Session, code: str) -> Optional[tuple[str, str]]:
    raw = db.query(RawData).join(Building).filter(Building.code == code).first()
    return (raw.content, raw.hash) if raw else None


def _restore_payload(db: Session, code: str, previous: Optional[tuple[str, str]]) -> None:
    # the next sync must see a hash mismatch and regenerate again
    building = db.query(Building).filter(Building.code == code).one()
    if previous is None:
        building.raw_data = None
    else:
        building.raw_data.content, building.raw_data.hash = previous
    db.commit()
    logger.warning(f"⚠️ Restored previous raw data for {code}, the next sync will retry")


def sync_building(db: Session, building_code: str, config: Optional[Settings] = None) -> SyncReport:
    """
    Fetch a building's timetable and, when it changed, regenerate its
    timeline from the freshly parsed events. Safe to call at any frequency.
    """
    config = config or default_settings
    code = building_code.strip().upper()

    previous = _stored_payload(db, code)
    fetcher = TimetableFetcher(db, config)
    fetched = fetcher.sync(code)
    report = SyncReport(building=code, events=fetched.processed, unchanged=fetched.unchanged)

    if fetched.processed == 0:
        logger.info(f"No new events processed for {code}. Data assumed unchanged.")
        return report

    generator = TimeslotGenerator(db, config, fetcher=fetcher)
    try:
        report.slots = generator.generate(code, events=fetched.events)
    except Exception:
        _restore_payload(db, code, previous)
        raise
    return report


def sync_initialized_buildings(db: Session, config: Optional[Settings] = None) -> list[SyncReport]:
    """Periodic sweep: sync every allow-listed building that already has raw data."""
    config = config or default_settings
    logger.info("Starting periodic sync for all buildings...")

    buildings = (
        db.query(Building)
        .filter(Building.code.in_(sorted(config.allowed_buildings)))
        .order_by(Building.code)
        .all()
    )

    reports: list[SyncReport] = []
    for building in buildings:
        if building.raw_data is None:
            continue
        code = building.code
        logger.info(f"-> Syncing {code}...")
        try:
            reports.append(sync_building(db, code, config))
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"❌ Error syncing {code}: {e}")

    logger.info("Periodic sync completed.")
    return reports
