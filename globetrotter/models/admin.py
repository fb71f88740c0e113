from typing import Optional, Literal

from pydantic import BaseModel, Field, field_validator


class RoleUpdate(BaseModel):
    role: Literal["user", "admin"]


class UserStatusUpdate(BaseModel):
    isActive: bool


class DeleteConfirmation(BaseModel):
    confirm: Literal["DELETE"]


class TripFlagUpdate(BaseModel):
    flagged: bool


class DestinationMeta(BaseModel):
    population: Optional[int] = Field(None, ge=0)
    timezone: Optional[str] = None


class DestinationCreate(BaseModel):
    """A reference-catalog city; (name, country) is unique."""
    name: str = Field(..., min_length=2, max_length=100)
    country: str = Field(..., min_length=2, max_length=100)
    region: str = ""
    costIndex: float = Field(50, ge=0, le=100, allow_inf_nan=False)
    popularity: float = Field(50, ge=0, le=100, allow_inf_nan=False)
    image: str = ""
    description: str = Field("", max_length=2000)
    meta: Optional[DestinationMeta] = None

    @field_validator("name", "country", "region", "image", "description", mode="before")
    @classmethod
    def strip_text(cls, v):
        if v is None:
            return ""
        return v.strip() if isinstance(v, str) else v


class DestinationUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    country: Optional[str] = Field(None, min_length=2, max_length=100)
    region: Optional[str] = None
    costIndex: Optional[float] = Field(None, ge=0, le=100, allow_inf_nan=False)
    popularity: Optional[float] = Field(None, ge=0, le=100, allow_inf_nan=False)
    image: Optional[str] = None
    description: Optional[str] = Field(None, max_length=2000)
    meta: Optional[DestinationMeta] = None

    @field_validator("name", "country", "region", "image", "description", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v


class SettingsUpdate(BaseModel):
    maintenance: Optional[bool] = None
    maintenanceMessage: Optional[str] = Field(None, max_length=500)


class MaintenanceToggle(BaseModel):
    enabled: bool
