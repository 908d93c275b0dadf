from typing import Generator

from fastapi import Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.config import Settings, settings
from app.db.models.building import Building
from app.db.session import SessionLocal


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_settings() -> Settings:
    return settings


def get_allowed_building(
    building: str,
    db: Session = Depends(get_db),
    config: Settings = Depends(get_settings),
) -> Building:
    """Path dependency: the building must be allow-listed and initialized."""
    code = building.strip().upper()
    if not config.is_allowed_building(code):
        raise HTTPException(status_code=404, detail="Building not supported.")
    obj = db.query(Building).filter_by(code=code).first()
    if not obj or obj.raw_data is None:
        raise HTTPException(status_code=404, detail="Building not initialized.")
    return obj
