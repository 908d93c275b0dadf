from fastapi import APIRouter
from app.api.v1.endpoints import buildings, rooms

api_router = APIRouter()
api_router.include_router(buildings.router, prefix="/buildings", tags=["buildings"])
api_router.include_router(rooms.router, prefix="/rooms", tags=["rooms"])
