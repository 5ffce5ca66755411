"""
Vehicle storage.
"""
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from servicebay.exceptions import Conflict, NotFound
from servicebay.models.vehicle import Vehicle
from servicebay.schemas.vehicle import normalize_plate


class VehicleStore:
    """Vehicle lookups and creation. Writes are flushed, never committed."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_by_id_and_owner(self, vehicle_id: int, owner_user_id: int) -> Vehicle:
        result = await self.session.execute(
            select(Vehicle).where(Vehicle.id == vehicle_id, Vehicle.owner_user_id == owner_user_id)
        )
        vehicle = result.scalar_one_or_none()
        if vehicle is None:
            raise NotFound("Vehicle not found or does not belong to the user")
        return vehicle

    async def find_by_plate(self, license_plate: str) -> Vehicle:
        result = await self.session.execute(
            select(Vehicle).where(Vehicle.license_plate == normalize_plate(license_plate))
        )
        vehicle = result.scalar_one_or_none()
        if vehicle is None:
            raise NotFound(f"No vehicle with plate {license_plate!r}")
        return vehicle

    async def create(
        self,
        owner_user_id: int,
        make: str,
        model: str,
        license_plate: str,
        year: Optional[int] = None,
    ) -> Vehicle:
        vehicle = Vehicle(
            owner_user_id=owner_user_id,
            make=make,
            model=model,
            year=year,
            license_plate=normalize_plate(license_plate),
        )
        self.session.add(vehicle)
        try:
            await self.session.flush()
        except IntegrityError:
            await self.session.rollback()
            raise Conflict("Vehicle with this license plate already exists")
        return vehicle

    async def list_for_owner(self, owner_user_id: int) -> List[Vehicle]:
        result = await self.session.execute(
            select(Vehicle)
            .where(Vehicle.owner_user_id == owner_user_id)
            .order_by(Vehicle.year.desc(), Vehicle.id.desc())
        )
        return list(result.scalars().all())

    async def delete(self, vehicle_id: int, owner_user_id: int) -> None:
        """Remove a vehicle. Its service records are kept and become orphans."""
        vehicle = await self.find_by_id_and_owner(vehicle_id, owner_user_id)
        await self.session.delete(vehicle)
        await self.session.flush()
