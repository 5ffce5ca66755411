"""
Service record storage.

Writes are flushed to the session; committing is left to the caller so that a
record and the vehicle created for it land in the same transaction.
"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, FrozenSet, List, Optional, Union

import pydantic
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from servicebay.exceptions import NotFound, ValidationError
from servicebay.models._time import as_utc, utcnow
from servicebay.models.service import LEGACY_SERVICE_TYPES, ServiceRecord, ServiceStatus
from servicebay.models.vehicle import Vehicle
from servicebay.schemas.service import Part


@dataclass(frozen=True)
class OwnerScope:
    """A customer's own records, optionally for one vehicle."""
    owner_user_id: int
    vehicle_id: Optional[int] = None


@dataclass(frozen=True)
class OperatorScope:
    """Every record, minus the listed statuses."""
    exclude_statuses: FrozenSet[ServiceStatus] = field(default_factory=frozenset)


Scope = Union[OwnerScope, OperatorScope]

# Wire names, used in field-level error details
_FIELD_NAMES = {
    "owner_user_id": "ownerUserId",
    "vehicle_id": "vehicleId",
    "status": "status",
    "scheduled_date": "scheduledDate",
    "description": "description",
    "estimated_cost": "estimatedCost",
    "customer_name": "customerName",
    "customer_contact": "customerContact",
    "parts_used": "partsUsed",
    "total_bill": "totalBill",
}

UPDATABLE_FIELDS = frozenset({
    "status",
    "scheduled_date",
    "description",
    "estimated_cost",
    "customer_name",
    "customer_contact",
    "parts_used",
    "total_bill",
})

NULLABLE_FIELDS = frozenset({"description", "customer_name", "customer_contact"})


def parse_writable_status(value: Any) -> ServiceStatus:
    """Accept only the lifecycle statuses as a write target."""
    raw = value.value if isinstance(value, ServiceStatus) else value
    try:
        status = ServiceStatus(raw)
    except ValueError:
        status = ServiceStatus.LEGACY
    if status is ServiceStatus.LEGACY:
        allowed = ", ".join(s.value for s in ServiceStatus.writable())
        raise ValidationError.for_fields({"status": f"must be one of: {allowed}"})
    return status


def _normalize_parts(parts: Any) -> List[Dict[str, Any]]:
    if not isinstance(parts, (list, tuple)):
        raise ValidationError.for_fields({"partsUsed": "must be a list"})
    normalized = []
    for part in parts:
        try:
            if not isinstance(part, Part):
                part = Part.model_validate(part)
        except pydantic.ValidationError as e:
            raise ValidationError.for_fields({"partsUsed": str(e.errors()[0]["msg"])})
        normalized.append(part.model_dump())
    return normalized


def _check_amount(name: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError.for_fields({_FIELD_NAMES[name]: "must be a number"})
    if value < 0:
        raise ValidationError.for_fields({_FIELD_NAMES[name]: "must not be negative"})
    return float(value)


class ServiceRecordStore:
    """Persistence for service records."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def commit(self) -> None:
        await self.session.commit()

    async def create(
        self,
        owner_user_id: int,
        vehicle_id: int,
        status: Optional[str] = None,
        scheduled_date: Optional[datetime] = None,
        description: Optional[str] = None,
        estimated_cost: Optional[float] = None,
        customer_name: Optional[str] = None,
        customer_contact: Optional[str] = None,
        parts_used: Optional[list] = None,
        total_bill: Optional[float] = None,
    ) -> ServiceRecord:
        missing = {
            _FIELD_NAMES[name]: "is required"
            for name, value in (("owner_user_id", owner_user_id), ("vehicle_id", vehicle_id))
            if value is None
        }
        if missing:
            raise ValidationError.for_fields(missing)

        if status is None:
            stored_status = ServiceStatus.PENDING.value
        elif status in LEGACY_SERVICE_TYPES:
            # Older clients sent the service type in this field
            stored_status = status
        else:
            stored_status = parse_writable_status(status).value

        now = utcnow()
        record = ServiceRecord(
            owner_user_id=owner_user_id,
            vehicle_id=vehicle_id,
            status=stored_status,
            scheduled_date=as_utc(scheduled_date) or now,
            description=description,
            estimated_cost=_check_amount("estimated_cost", estimated_cost or 0),
            customer_name=customer_name,
            customer_contact=customer_contact,
            parts_used=_normalize_parts(parts_used or []),
            total_bill=_check_amount("total_bill", total_bill or 0),
            created_at=now,
            updated_at=now,
        )
        self.session.add(record)
        await self.session.flush()
        return record

    async def get(self, record_id: str) -> ServiceRecord:
        """Load a record with its vehicle and owner, bypassing any stale cached copy."""
        result = await self.session.execute(
            select(ServiceRecord)
            .where(ServiceRecord.id == record_id)
            .options(selectinload(ServiceRecord.vehicle), selectinload(ServiceRecord.owner))
            .execution_options(populate_existing=True)
        )
        record = result.scalar_one_or_none()
        if record is None:
            raise NotFound("Service record not found")
        return record

    async def update_fields(self, record_id: str, patch: Dict[str, Any]) -> ServiceRecord:
        """
        Apply the keys present in ``patch``; absent keys are left alone.
        ``partsUsed`` replaces the stored list outright.
        """
        unknown = set(patch) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError.for_fields(
                {_FIELD_NAMES.get(name, name): "cannot be updated" for name in unknown}
            )

        values: Dict[str, Any] = {}
        for name, value in patch.items():
            if value is None and name not in NULLABLE_FIELDS:
                raise ValidationError.for_fields({_FIELD_NAMES[name]: "must not be null"})
            if name == "status":
                value = parse_writable_status(value).value
            elif name == "parts_used":
                value = _normalize_parts(value)
            elif name == "scheduled_date":
                value = as_utc(value)
            elif name in ("estimated_cost", "total_bill"):
                value = _check_amount(name, value)
            values[name] = value

        record = await self.get(record_id)
        for name, value in values.items():
            setattr(record, name, value)
        record.updated_at = utcnow()
        await self.session.flush()
        return record

    async def set_status(self, record_id: str, status: Union[str, ServiceStatus]) -> ServiceRecord:
        target = parse_writable_status(status)
        record = await self.get(record_id)
        record.status = target.value
        record.updated_at = utcnow()
        await self.session.flush()
        return record

    async def query(self, scope: Scope) -> List[ServiceRecord]:
        """
        List records for ``scope``, newest first. The inner join on vehicles
        drops records whose vehicle has been removed.
        """
        stmt = (
            select(ServiceRecord)
            .join(Vehicle, Vehicle.id == ServiceRecord.vehicle_id)
            .options(selectinload(ServiceRecord.vehicle), selectinload(ServiceRecord.owner))
            .order_by(ServiceRecord.scheduled_date.desc(), ServiceRecord.created_at.desc())
        )
        if isinstance(scope, OwnerScope):
            stmt = stmt.where(ServiceRecord.owner_user_id == scope.owner_user_id)
            if scope.vehicle_id is not None:
                stmt = stmt.where(ServiceRecord.vehicle_id == scope.vehicle_id)
        elif isinstance(scope, OperatorScope):
            if scope.exclude_statuses:
                stmt = stmt.where(ServiceRecord.status.not_in([s.value for s in scope.exclude_statuses]))
        else:
            raise TypeError(f"Unsupported scope: {scope!r}")

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def cancel_stale(self, older_than: timedelta, description: str, now: Optional[datetime] = None) -> List[str]:
        """
        Cancel every pending record scheduled at least ``older_than`` ago in
        one conditional update. Returns the ids that were changed.
        """
        now = as_utc(now) or utcnow()
        cutoff = now - older_than
        stmt = (
            update(ServiceRecord)
            .where(
                ServiceRecord.status == ServiceStatus.PENDING.value,
                func.coalesce(ServiceRecord.scheduled_date, ServiceRecord.created_at) <= cutoff,
            )
            .values(status=ServiceStatus.CANCELLED.value, description=description, updated_at=now)
            .returning(ServiceRecord.id)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
