"""pydantic request and read models for saves, solar systems and stars.

Update models use pydantic's `model_fields_set` to tell a field that was sent
as null apart from one that was not sent at all, so `notes=None` clears notes
while an absent `notes` leaves them untouched.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, ClassVar, Dict, FrozenSet, Generic, List, Optional, Type, TypeVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from dsptracker.core.paging import Page
from dsptracker.core.time_utils import ensure_aware_utc
from dsptracker.models.database import SpectralClass

T = TypeVar("T")


class _UpdateRequest(BaseModel):
    # Columns that are NOT NULL in the schema; null means "leave unchanged"
    required_columns: ClassVar[FrozenSet[str]] = frozenset()

    def changes(self) -> Dict[str, Any]:
        """Return column -> value for every field explicitly present in the request."""
        out: Dict[str, Any] = {}
        for name in self.model_fields_set:
            value = getattr(self, name)
            if value is None and name in self.required_columns:
                continue
            out[name] = value
        return out


class CreateSaveRequest(BaseModel):
    name: str
    notes: Optional[str] = None
    mining_speed: int


class UpdateSaveRequest(_UpdateRequest):
    required_columns: ClassVar[FrozenSet[str]] = frozenset({"name", "mining_speed"})

    name: Optional[str] = None
    notes: Optional[str] = None
    mining_speed: Optional[int] = None


class CreateSolarSystemRequest(BaseModel):
    name: str
    notes: Optional[str] = None


class UpdateSolarSystemRequest(_UpdateRequest):
    required_columns: ClassVar[FrozenSet[str]] = frozenset({"name"})

    name: Optional[str] = None
    notes: Optional[str] = None


class CreateStarRequest(BaseModel):
    spectral_class: SpectralClass
    luminosity: float
    # The stars table does not check radius (see models.database.Star)
    radius: float = Field(gt=0)


class UpdateStarRequest(_UpdateRequest):
    required_columns: ClassVar[FrozenSet[str]] = frozenset({"spectral_class", "luminosity", "radius"})

    spectral_class: Optional[SpectralClass] = None
    luminosity: Optional[float] = None
    radius: Optional[float] = Field(default=None, gt=0)


class _ReadModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    created_at: datetime
    updated_at: Optional[datetime] = None
    version: int

    @field_validator("created_at", "updated_at")
    @classmethod
    def _utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_aware_utc(value)


class SaveRead(_ReadModel):
    name: str
    notes: Optional[str] = None
    mining_speed: int


class SolarSystemRead(_ReadModel):
    save_id: UUID
    name: str
    notes: Optional[str] = None


class StarRead(_ReadModel):
    solar_system_id: UUID
    spectral_class: SpectralClass
    luminosity: float
    radius: float


class PageMetadataRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_results: int
    total_pages: int
    current_page: int
    next_page: Optional[int] = None
    prev_page: Optional[int] = None


class PageRead(BaseModel, Generic[T]):
    data: List[T]
    metadata: PageMetadataRead

    @classmethod
    def from_page(cls, page: Page[Any], item_model: Type[BaseModel]) -> "PageRead[Any]":
        """Convert a Page of ORM rows, validating each row with item_model."""
        return cls(
            data=[item_model.model_validate(row) for row in page.data],
            metadata=PageMetadataRead.model_validate(page.metadata),
        )


__all__ = [
    "CreateSaveRequest",
    "UpdateSaveRequest",
    "CreateSolarSystemRequest",
    "UpdateSolarSystemRequest",
    "CreateStarRequest",
    "UpdateStarRequest",
    "SaveRead",
    "SolarSystemRead",
    "StarRead",
    "PageMetadataRead",
    "PageRead",
]
