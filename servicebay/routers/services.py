"""
Service record routes.
"""
from datetime import timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from servicebay.auth import Caller, get_current_caller, require_operator
from servicebay.core.desk import ServiceDesk
from servicebay.database import get_db
from servicebay.schemas.service import ServiceCreate, ServiceRecord, ServiceStatusUpdate, ServiceUpdate

router = APIRouter(prefix="/services", tags=["services"])


def get_desk(request: Request, db: AsyncSession = Depends(get_db)) -> ServiceDesk:
    settings = request.app.state.settings
    return ServiceDesk(
        db,
        request.app.state.broadcaster,
        auto_cancel_after=timedelta(hours=settings.auto_cancel_after_hours),
    )


@router.post("", response_model=ServiceRecord, status_code=status.HTTP_201_CREATED)
async def create_service(
    payload: ServiceCreate,
    desk: ServiceDesk = Depends(get_desk),
    caller: Caller = Depends(get_current_caller),
):
    """
    Create a service record.

    Customers book their own vehicle by ``vehicleId``. Operators may log a
    job by licence plate; an unknown plate registers a new vehicle.
    """
    return await desk.create(caller, payload)


@router.get("", response_model=List[ServiceRecord])
async def list_services(
    include_picked_up: bool = Query(False, alias="includePickedUp"),
    for_admin_current_view: bool = Query(False, alias="forAdminCurrentView"),
    vehicle_id: Optional[int] = Query(None, alias="vehicleId"),
    desk: ServiceDesk = Depends(get_desk),
    caller: Caller = Depends(get_current_caller),
):
    """
    List service records.

    Customers see their own records. Operators see every record; picked-up
    jobs are hidden unless ``includePickedUp`` is set, and
    ``forAdminCurrentView`` also hides cancelled jobs.
    """
    return await desk.list_for(
        caller,
        include_picked_up=include_picked_up,
        for_admin_current_view=for_admin_current_view,
        vehicle_id=vehicle_id,
    )


@router.get("/{service_id}", response_model=ServiceRecord)
async def get_service(
    service_id: str,
    desk: ServiceDesk = Depends(get_desk),
    caller: Caller = Depends(get_current_caller),
):
    """
    Get a specific service record by ID.
    """
    return await desk.get_for(caller, service_id)


@router.put("/{service_id}", response_model=ServiceRecord)
async def update_service(
    service_id: str,
    service_update: ServiceUpdate,
    desk: ServiceDesk = Depends(get_desk),
    operator: Caller = Depends(require_operator),
):
    """
    Update a service record. Only the fields sent are changed.
    """
    return await desk.update(service_id, service_update.model_dump(exclude_unset=True))


@router.patch("/{service_id}/status", response_model=ServiceRecord)
async def update_service_status(
    service_id: str,
    status_update: ServiceStatusUpdate,
    desk: ServiceDesk = Depends(get_desk),
    operator: Caller = Depends(require_operator),
):
    """
    Change only the status of a service record.
    """
    return await desk.change_status(service_id, status_update.status)
