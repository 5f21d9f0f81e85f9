from __future__ import annotations
from pydantic import BaseModel, ConfigDict
from uuid import UUID

class PackPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    slug: str
    name: str
    description: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    radius_km: float | None = None
    area: str | None = None

class PromptPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    text: str
    pack: str
