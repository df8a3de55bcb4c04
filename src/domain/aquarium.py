"""Aquarium and equipment domain models."""

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Aquarium(BaseModel):
    """Aquarium data transfer object. Defines the ownership scope for tasks."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Unique aquarium ID from database")
    user_id: str = Field(..., description="Owning user ID")
    name: str = Field(..., description="Display name")
    type: str = Field(..., description="Aquarium type (freshwater, saltwater, reef, ...)")


class Equipment(BaseModel):
    """Equipment data transfer object."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Unique equipment ID from database")
    aquarium_id: str = Field(..., description="Aquarium the equipment is installed in")
    name: str = Field(default="", description="Display name")
    equipment_type: str = Field(default="", description="Equipment type (Filter, Heater, Dosing Pump, ...)")
    maintenance_interval_days: int | None = Field(default=None, description="Days between maintenance")
    notes: str | None = Field(default=None, description="Free-form notes")

    @field_validator("maintenance_interval_days")
    @classmethod
    def validate_interval_positive(cls, v: int | None) -> int | None:
        """Non-positive intervals are treated as no maintenance schedule."""
        if v is not None and v < 1:
            return None
        return v
