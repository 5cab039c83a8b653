from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, field_validator


class StoreCreate(BaseModel):
    name: str
    location: Optional[str] = None
    parent_store_id: Optional[UUID] = None

    @field_validator("name")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("field is required")
        return v

    @field_validator("location")
    @classmethod
    def _strip_nullable(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None


class StoreRead(BaseModel):
    id: UUID
    name: str
    location: Optional[str] = None
    parent_store_id: Optional[UUID] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class StoreHierarchy(BaseModel):
    store: Optional[StoreRead] = None
    branches: List[StoreRead]
