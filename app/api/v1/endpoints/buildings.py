import json
import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.api.deps import get_db, get_settings
from app.core.config import Settings
from app.db.models.building import Building
from app.db.schemas.building import BuildingInitialize, BuildingInitializeOut
from app.services.sync import sync_building

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/initialize", response_model=BuildingInitializeOut)
def initialize_building(
    payload: BuildingInitialize,
    db: Session = Depends(get_db),
    config: Settings = Depends(get_settings),
):
    code = payload.buildingCode
    if not config.is_allowed_building(code):
        raise HTTPException(status_code=422, detail="Building not supported.")

    building = db.query(Building).filter_by(code=code).first()
    if not building or not building.raw_data:
        sync_building(db, code, config)
        db.expire_all()
        building = db.query(Building).filter_by(code=code).first()

    if not building or not building.raw_data:
        logger.warning(f"⚠️ Initialization of {code} failed, no raw data available")
        raise HTTPException(status_code=503, detail="Fetch failed")

    return {"status": "synced", "raw_content": json.loads(building.raw_data.content)}
