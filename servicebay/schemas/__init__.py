"""
Pydantic schemas for request/response validation.
"""
from servicebay.schemas.vehicle import VehicleCreate, VehicleSummary, Vehicle
from servicebay.schemas.service import (
    Part, OwnerSummary, ServiceCreate, ServiceUpdate, ServiceStatusUpdate, ServiceRecord,
)
from servicebay.schemas.user import UserRegister, LoginRequest, User, Token

__all__ = [
    "VehicleCreate", "VehicleSummary", "Vehicle",
    "Part", "OwnerSummary", "ServiceCreate", "ServiceUpdate", "ServiceStatusUpdate", "ServiceRecord",
    "UserRegister", "LoginRequest", "User", "Token",
]
