"""
Request-facing operations on service records.
"""
from datetime import timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from servicebay.auth import Caller
from servicebay.core.broadcast import Broadcaster
from servicebay.core.identity import IdentityStore
from servicebay.core.lifecycle import AUTO_CANCEL_AFTER, StatusTransitionEngine
from servicebay.core.ownership import OwnershipResolver
from servicebay.core.records import OperatorScope, OwnerScope, ServiceRecordStore
from servicebay.core.vehicles import VehicleStore
from servicebay.exceptions import NotFound
from servicebay.models.service import ServiceRecord, ServiceStatus
from servicebay.schemas.service import ServiceCreate


def operator_exclusions(include_picked_up: bool, for_admin_current_view: bool) -> frozenset:
    """Statuses hidden from an operator listing."""
    excluded = set()
    if not include_picked_up:
        excluded.add(ServiceStatus.PICKED_UP)
    if for_admin_current_view:
        excluded.add(ServiceStatus.CANCELLED)
    return frozenset(excluded)


class ServiceDesk:
    """Ties together ownership, storage, transitions and broadcasting for one session."""

    def __init__(
        self,
        session: AsyncSession,
        broadcaster: Broadcaster,
        auto_cancel_after: timedelta = AUTO_CANCEL_AFTER,
    ):
        self.vehicles = VehicleStore(session)
        self.records = ServiceRecordStore(session)
        self.resolver = OwnershipResolver(self.vehicles, IdentityStore(session))
        self.engine = StatusTransitionEngine(self.records, broadcaster, auto_cancel_after)

    async def create(self, caller: Caller, request: ServiceCreate) -> ServiceRecord:
        resolution = await self.resolver.resolve(caller.caller_id, caller.is_operator, request)
        record = await self.records.create(
            owner_user_id=resolution.owner_user_id,
            vehicle_id=resolution.vehicle.id,
            status=request.status,
            scheduled_date=request.scheduled_date,
            description=request.description,
            estimated_cost=request.estimated_cost,
            customer_name=resolution.customer_name,
            customer_contact=resolution.customer_contact,
            parts_used=request.parts_used,
            total_bill=request.total_bill,
        )
        return await self.engine.publish_created(record.id)

    async def update(self, record_id: str, patch: Dict[str, Any]) -> ServiceRecord:
        return await self.engine.update(record_id, patch)

    async def change_status(self, record_id: str, status: Any) -> ServiceRecord:
        return await self.engine.set_status(record_id, status)

    async def list_for(
        self,
        caller: Caller,
        include_picked_up: bool = False,
        for_admin_current_view: bool = False,
        vehicle_id: Optional[int] = None,
    ) -> List[ServiceRecord]:
        if caller.is_operator:
            return await self.records.query(
                OperatorScope(operator_exclusions(include_picked_up, for_admin_current_view))
            )
        if vehicle_id is not None:
            await self.vehicles.find_by_id_and_owner(vehicle_id, caller.caller_id)
        return await self.records.query(OwnerScope(caller.caller_id, vehicle_id))

    async def get_for(self, caller: Caller, record_id: str) -> ServiceRecord:
        record = await self.records.get(record_id)
        if not caller.is_operator and record.owner_user_id != caller.caller_id:
            raise NotFound("Service record not found")
        return record
