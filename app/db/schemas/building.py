from pydantic import BaseModel, Field, field_validator
from typing import Any


class BuildingInitialize(BaseModel):
    buildingCode: str = Field(..., min_length=1, max_length=10, pattern=r"^[A-Za-z0-9]+$")

    @field_validator("buildingCode")
    @classmethod
    def normalize(cls, v: str) -> str:
        return v.strip().upper()


class BuildingInitializeOut(BaseModel):
    status: str
    raw_content: Any
