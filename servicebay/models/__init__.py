"""
SQLAlchemy database models.
"""
from servicebay.models.user import User
from servicebay.models.vehicle import Vehicle
from servicebay.models.service import ServiceRecord, ServiceStatus

__all__ = ["User", "Vehicle", "ServiceRecord", "ServiceStatus"]
