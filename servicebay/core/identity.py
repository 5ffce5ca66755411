"""
Identity lookups for service paperwork.
"""
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from servicebay.exceptions import NotFound
from servicebay.models.user import User


@dataclass(frozen=True)
class Identity:
    name: str
    contact: str


class IdentityStore:
    """Read-only view over registered users."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_by_id(self, user_id: int) -> Identity:
        user = await self.session.get(User, user_id)
        if user is None:
            raise NotFound(f"User {user_id} not found")
        return Identity(name=user.name, contact=user.contact)
