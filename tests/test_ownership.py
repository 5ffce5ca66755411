import unittest

from sqlalchemy import func, select

from servicebay.core.identity import IdentityStore
from servicebay.core.ownership import OwnershipResolver
from servicebay.core.vehicles import VehicleStore
from servicebay.exceptions import NotFound, ValidationError
from servicebay.models.vehicle import Vehicle
from servicebay.schemas.service import ServiceCreate
from tests.support import DatabaseMixin


class BrokenIdentityStore:
    async def find_by_id(self, user_id):
        raise ConnectionError("identity service unavailable")


def assignment(**overrides):
    fields = {
        "licensePlate": "new 777",
        "make": "Toyota",
        "model": "Corolla",
        "customerName": "Walk-in Customer",
        "customerContact": "555-0100",
    }
    fields.update(overrides)
    return ServiceCreate.model_validate(fields)


class TestOwnershipResolver(DatabaseMixin, unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.resolver = OwnershipResolver(VehicleStore(self.session), IdentityStore(self.session))

    async def vehicle_count(self):
        return (await self.session.execute(select(func.count(Vehicle.id)))).scalar_one()

    async def test_self_booking_uses_requester_as_owner(self):
        owner = await self.add_user("Jane Driver", phone="555-1234")
        vehicle = await self.add_vehicle(owner)

        resolution = await self.resolver.resolve(owner.id, False, ServiceCreate(vehicle_id=vehicle.id))

        self.assertEqual(resolution.vehicle.id, vehicle.id)
        self.assertEqual(resolution.owner_user_id, owner.id)
        self.assertEqual(resolution.customer_name, "Jane Driver")
        self.assertEqual(resolution.customer_contact, "555-1234")

    async def test_self_booking_contact_falls_back_to_email(self):
        owner = await self.add_user("Jane Driver", email="jane@example.com")
        vehicle = await self.add_vehicle(owner)

        resolution = await self.resolver.resolve(owner.id, False, ServiceCreate(vehicle_id=vehicle.id))

        self.assertEqual(resolution.customer_contact, "jane@example.com")

    async def test_self_booking_on_another_users_vehicle_is_not_found(self):
        owner = await self.add_user("Jane Driver")
        stranger = await self.add_user("Sam Stranger")
        vehicle = await self.add_vehicle(owner)

        with self.assertRaises(NotFound):
            await self.resolver.resolve(stranger.id, False, ServiceCreate(vehicle_id=vehicle.id))

    async def test_identity_failure_does_not_block_booking(self):
        owner = await self.add_user("Jane Driver")
        vehicle = await self.add_vehicle(owner)
        resolver = OwnershipResolver(VehicleStore(self.session), BrokenIdentityStore())

        resolution = await resolver.resolve(owner.id, False, ServiceCreate(vehicle_id=vehicle.id))

        self.assertEqual(resolution.owner_user_id, owner.id)
        self.assertEqual(resolution.customer_name, "Unknown User")
        self.assertEqual(resolution.customer_contact, "N/A")

    async def test_customer_without_vehicle_id_is_rejected(self):
        customer = await self.add_user("Jane Driver")

        with self.assertRaises(ValidationError) as ctx:
            await self.resolver.resolve(customer.id, False, assignment())

        self.assertIn("vehicleId", ctx.exception.errors)

    async def test_assignment_with_unseen_plate_creates_one_vehicle_for_operator(self):
        operator = await self.add_user("Olive Operator", is_admin=True)

        resolution = await self.resolver.resolve(operator.id, True, assignment())

        self.assertEqual(await self.vehicle_count(), 1)
        self.assertEqual(resolution.vehicle.owner_user_id, operator.id)
        self.assertEqual(resolution.owner_user_id, resolution.vehicle.owner_user_id)
        self.assertEqual(resolution.vehicle.license_plate, "NEW 777")
        self.assertEqual(resolution.customer_name, "Walk-in Customer")
        self.assertEqual(resolution.customer_contact, "555-0100")

    async def test_assignment_with_known_plate_keeps_vehicle_owner(self):
        operator = await self.add_user("Olive Operator", is_admin=True)
        owner = await self.add_user("Uma Owner")
        vehicle = await self.add_vehicle(owner, plate="KNOWN1")

        resolution = await self.resolver.resolve(operator.id, True, assignment(licensePlate=" known1 "))

        self.assertEqual(resolution.vehicle.id, vehicle.id)
        self.assertEqual(resolution.owner_user_id, owner.id)
        self.assertNotEqual(resolution.owner_user_id, operator.id)
        self.assertEqual(await self.vehicle_count(), 1)

    async def test_assignment_reports_every_missing_field(self):
        operator = await self.add_user("Olive Operator", is_admin=True)

        with self.assertRaises(ValidationError) as ctx:
            await self.resolver.resolve(
                operator.id, True, assignment(make=None, customerName="  ", customerContact=None)
            )

        self.assertEqual(set(ctx.exception.errors), {"make", "customerName", "customerContact"})
        self.assertEqual(await self.vehicle_count(), 0)

    async def test_operator_with_vehicle_id_books_own_vehicle(self):
        operator = await self.add_user("Olive Operator", is_admin=True)
        vehicle = await self.add_vehicle(operator, plate="OPS1")

        resolution = await self.resolver.resolve(operator.id, True, ServiceCreate(vehicle_id=vehicle.id))

        self.assertEqual(resolution.owner_user_id, operator.id)
        self.assertEqual(resolution.customer_name, "Olive Operator")


if __name__ == "__main__":
    unittest.main()
