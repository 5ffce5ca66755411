"""
Pydantic schemas for service records.
"""
from pydantic import AliasChoices, Field, field_validator
from datetime import datetime
from typing import List, Optional

from servicebay.models._time import as_utc
from servicebay.models.service import ServiceStatus
from servicebay.schemas.base import CamelModel
from servicebay.schemas.vehicle import VehicleSummary


class Part(CamelModel):
    """A part fitted during a job."""
    part_name: str = Field(..., min_length=1)
    quantity: int = Field(1, ge=1)
    unit_cost: float = Field(0.0, ge=0)


class ServiceCreate(CamelModel):
    """
    Schema for creating a service record.

    Customers book with ``vehicleId``. Operators may instead log a job by
    plate, in which case ``licensePlate``, ``make``, ``model``,
    ``customerName`` and ``customerContact`` are required.
    """
    vehicle_id: Optional[int] = None

    license_plate: Optional[str] = None
    make: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = Field(None, ge=1886, le=2100)
    customer_name: Optional[str] = None
    customer_contact: Optional[str] = None

    status: Optional[str] = Field(None, validation_alias=AliasChoices("status", "type"))
    scheduled_date: Optional[datetime] = Field(
        None, validation_alias=AliasChoices("scheduledDate", "scheduled_date", "date")
    )
    description: Optional[str] = None
    estimated_cost: Optional[float] = Field(
        None, ge=0, validation_alias=AliasChoices("estimatedCost", "estimated_cost", "cost")
    )
    parts_used: List[Part] = []
    total_bill: Optional[float] = Field(None, ge=0)

    @field_validator("scheduled_date")
    @classmethod
    def _scheduled_in_utc(cls, value):
        return as_utc(value)


class ServiceUpdate(CamelModel):
    """Schema for an operator's field update. Only the keys sent are applied."""
    status: Optional[str] = None
    scheduled_date: Optional[datetime] = None
    description: Optional[str] = None
    estimated_cost: Optional[float] = Field(None, ge=0)
    customer_name: Optional[str] = None
    customer_contact: Optional[str] = None
    parts_used: Optional[List[Part]] = None
    total_bill: Optional[float] = Field(None, ge=0)

    @field_validator("scheduled_date")
    @classmethod
    def _scheduled_in_utc(cls, value):
        return as_utc(value)


class ServiceStatusUpdate(CamelModel):
    """Schema for a status-only update."""
    status: str


class OwnerSummary(CamelModel):
    """Owner identity embedded in service records."""
    id: int
    name: str
    email: str


class ServiceRecord(CamelModel):
    """Schema for service record responses and broadcasts."""
    id: str
    owner_user_id: int
    vehicle_id: int
    status: ServiceStatus
    legacy_type: Optional[str] = None
    scheduled_date: datetime
    description: Optional[str] = None
    estimated_cost: float = 0.0
    customer_name: Optional[str] = None
    customer_contact: Optional[str] = None
    parts_used: List[Part] = []
    total_bill: float = 0.0
    created_at: datetime
    updated_at: Optional[datetime] = None

    vehicle: Optional[VehicleSummary] = None
    owner: Optional[OwnerSummary] = None

    @field_validator("status", mode="before")
    @classmethod
    def _fold_legacy(cls, value):
        if isinstance(value, ServiceStatus):
            return value
        return ServiceStatus.parse(value)
