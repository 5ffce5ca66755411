"""
Pydantic schemas for Vehicle.
"""
from pydantic import Field, field_validator
from datetime import datetime
from typing import Optional

from servicebay.schemas.base import CamelModel


def normalize_plate(plate: str) -> str:
    return plate.strip().upper()


class VehicleCreate(CamelModel):
    """Schema for registering a vehicle."""
    make: str = Field(..., min_length=1)
    model: str = Field(..., min_length=1)
    year: int = Field(..., ge=1886, le=2100)
    license_plate: str = Field(..., min_length=1)

    @field_validator("license_plate")
    @classmethod
    def _plate(cls, value: str) -> str:
        return normalize_plate(value)


class VehicleSummary(CamelModel):
    """Vehicle fields embedded in service records."""
    id: int
    make: str
    model: str
    year: Optional[int] = None
    license_plate: str


class Vehicle(VehicleSummary):
    """Schema for vehicle responses."""
    owner_user_id: int
    created_at: datetime
    updated_at: Optional[datetime] = None
