"""
Service record model for database.
"""
import enum
import uuid

from sqlalchemy import JSON, Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from servicebay.database import Base
from servicebay.models._time import utcnow


# Service types stored in the status column by early clients.
LEGACY_SERVICE_TYPES = frozenset({
    "Oil Change",
    "Tire Rotation",
    "Brake Inspection",
    "Engine Diagnostic",
    "Fluid Check",
    "Other",
})


class ServiceStatus(str, enum.Enum):
    """Service job status enumeration."""
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    READY_FOR_PICKUP = "ready-for-pickup"
    PICKED_UP = "picked-up"
    CANCELLED = "cancelled"
    # Read-only catch-all for stored values outside the lifecycle
    LEGACY = "legacy"

    @classmethod
    def parse(cls, value: str | None) -> "ServiceStatus":
        """Map a stored value to a status, folding unknown values into LEGACY."""
        try:
            return cls(value)
        except ValueError:
            return cls.LEGACY

    @classmethod
    def writable(cls) -> tuple["ServiceStatus", ...]:
        return tuple(s for s in cls if s is not cls.LEGACY)

    @property
    def is_terminal(self) -> bool:
        return self in (ServiceStatus.PICKED_UP, ServiceStatus.CANCELLED)


class ServiceRecord(Base):
    """Service record database model."""

    __tablename__ = "service_records"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    owner_user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    # No foreign key: the vehicle may be removed while its history stays
    vehicle_id = Column(Integer, nullable=False, index=True)
    status = Column(String(64), default=ServiceStatus.PENDING.value, nullable=False, index=True)
    scheduled_date = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    description = Column(Text, nullable=True)
    estimated_cost = Column(Float, default=0.0, nullable=False)
    customer_name = Column(String, nullable=True)
    customer_contact = Column(String, nullable=True)
    parts_used = Column(JSON, default=list, nullable=False)
    total_bill = Column(Float, default=0.0, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    owner = relationship("User")
    vehicle = relationship(
        "Vehicle",
        primaryjoin="foreign(ServiceRecord.vehicle_id) == Vehicle.id",
        viewonly=True,
    )

    @property
    def state(self) -> ServiceStatus:
        return ServiceStatus.parse(self.status)

    @property
    def legacy_type(self) -> str | None:
        """The raw stored value when it is not a lifecycle status."""
        return self.status if self.state is ServiceStatus.LEGACY else None
