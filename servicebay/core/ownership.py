"""
Works out which vehicle a new service record is for and who owns it.

Two kinds of request reach the booking endpoint:

* a customer booking one of their own vehicles by ``vehicleId``;
* an operator logging a job by licence plate, possibly for a vehicle the
  shop has never seen.

The owner of the record is always the owner of the vehicle, never simply the
person submitting the request.
"""
import logging
from dataclasses import dataclass

from servicebay.core.identity import IdentityStore
from servicebay.core.vehicles import VehicleStore
from servicebay.exceptions import NotFound, ValidationError
from servicebay.models.vehicle import Vehicle
from servicebay.schemas.service import ServiceCreate

logger = logging.getLogger("servicebay.ownership")

UNKNOWN_CUSTOMER_NAME = "Unknown User"
UNKNOWN_CUSTOMER_CONTACT = "N/A"

# (attribute, wire name) pairs an operator must supply to log a job by plate
ASSIGNMENT_FIELDS = (
    ("license_plate", "licensePlate"),
    ("make", "make"),
    ("model", "model"),
    ("customer_name", "customerName"),
    ("customer_contact", "customerContact"),
)


@dataclass(frozen=True)
class Resolution:
    vehicle: Vehicle
    owner_user_id: int
    customer_name: str
    customer_contact: str


class OwnershipResolver:
    """Resolves the vehicle, owner and customer snapshot for a booking."""

    def __init__(self, vehicles: VehicleStore, identities: IdentityStore):
        self.vehicles = vehicles
        self.identities = identities

    async def resolve(self, requester_id: int, requester_is_operator: bool, request: ServiceCreate) -> Resolution:
        if request.vehicle_id is not None:
            return await self._self_booking(requester_id, request.vehicle_id)
        if requester_is_operator:
            return await self._assignment(requester_id, request)
        raise ValidationError.for_fields({"vehicleId": "is required"})

    async def _self_booking(self, requester_id: int, vehicle_id: int) -> Resolution:
        vehicle = await self.vehicles.find_by_id_and_owner(vehicle_id, requester_id)

        try:
            identity = await self.identities.find_by_id(requester_id)
            name, contact = identity.name, identity.contact
        except Exception as e:
            # The booking goes ahead without a customer snapshot
            logger.warning("Identity lookup failed for user %s: %s", requester_id, e)
            name, contact = UNKNOWN_CUSTOMER_NAME, UNKNOWN_CUSTOMER_CONTACT

        return Resolution(
            vehicle=vehicle,
            owner_user_id=vehicle.owner_user_id,
            customer_name=name,
            customer_contact=contact,
        )

    async def _assignment(self, operator_id: int, request: ServiceCreate) -> Resolution:
        missing = {
            wire: "is required"
            for attr, wire in ASSIGNMENT_FIELDS
            if not (getattr(request, attr) or "").strip()
        }
        if missing:
            raise ValidationError.for_fields(missing)

        try:
            vehicle = await self.vehicles.find_by_plate(request.license_plate)
        except NotFound:
            # First sighting of this plate: the operator becomes its owner of record
            vehicle = await self.vehicles.create(
                owner_user_id=operator_id,
                make=request.make.strip(),
                model=request.model.strip(),
                year=request.year,
                license_plate=request.license_plate,
            )
            logger.info("Registered vehicle %s (%s) for operator %s", vehicle.id, vehicle.license_plate, operator_id)

        return Resolution(
            vehicle=vehicle,
            owner_user_id=vehicle.owner_user_id,
            customer_name=request.customer_name.strip(),
            customer_contact=request.customer_contact.strip(),
        )

