"""
Vehicle routes.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from servicebay.auth import Caller, get_current_caller
from servicebay.core.vehicles import VehicleStore
from servicebay.database import get_db
from servicebay.exceptions import Conflict, NotFound
from servicebay.schemas.vehicle import Vehicle as VehicleSchema, VehicleCreate

router = APIRouter(prefix="/vehicles", tags=["vehicles"])


@router.get("", response_model=List[VehicleSchema])
async def get_vehicles(
    db: AsyncSession = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
):
    """
    List the caller's vehicles, newest model year first.
    """
    return await VehicleStore(db).list_for_owner(caller.caller_id)


@router.post("", response_model=VehicleSchema, status_code=status.HTTP_201_CREATED)
async def create_vehicle(
    vehicle: VehicleCreate,
    db: AsyncSession = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
):
    """
    Register a vehicle owned by the caller.
    """
    store = VehicleStore(db)
    # Check if license plate already exists
    try:
        await store.find_by_plate(vehicle.license_plate)
    except NotFound:
        pass
    else:
        raise Conflict("Vehicle with this license plate already exists")

    db_vehicle = await store.create(owner_user_id=caller.caller_id, **vehicle.model_dump())
    await db.commit()
    await db.refresh(db_vehicle)

    return db_vehicle


@router.delete("/{vehicle_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_vehicle(
    vehicle_id: int,
    db: AsyncSession = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
):
    """
    Delete one of the caller's vehicles. Its service history is kept.
    """
    await VehicleStore(db).delete(vehicle_id, caller.caller_id)
    await db.commit()

    return None
