"""
Password hashing, access tokens and the request-side session verifier.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, Header, Request
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.ext.asyncio import AsyncSession

from servicebay.config import Settings, get_settings
from servicebay.database import get_db
from servicebay.exceptions import Forbidden, Unauthorized
from servicebay.models.user import User

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def create_access_token(user: User, settings: Optional[Settings] = None) -> str:
    """Issue a signed token identifying ``user``."""
    settings = settings or get_settings()
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.access_token_expire_minutes)
    claims = {
        "sub": str(user.id),
        "name": user.name,
        "is_admin": bool(user.is_admin),
        "exp": expire,
    }
    return jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)


@dataclass(frozen=True)
class Caller:
    """The verified identity behind a request."""
    caller_id: int
    is_operator: bool
    name: str = ""


class SessionVerifier:
    """
    Turns a bearer credential into a :class:`Caller`.

    The operator flag is read from the user row rather than the token so a
    promotion or demotion takes effect without re-login.
    """

    def __init__(self, session: AsyncSession, settings: Optional[Settings] = None):
        self.session = session
        self.settings = settings or get_settings()

    async def verify(self, credential: Optional[str]) -> Caller:
        if not credential:
            raise Unauthorized("No token, authorization denied")
        try:
            payload = jwt.decode(credential, self.settings.secret_key, algorithms=[self.settings.algorithm])
            user_id = int(payload.get("sub"))
        except (JWTError, TypeError, ValueError):
            raise Unauthorized("Token is not valid")

        user = await self.session.get(User, user_id)
        if user is None:
            raise Unauthorized("Token is not valid")
        return Caller(caller_id=user.id, is_operator=bool(user.is_admin), name=user.name)


def extract_credential(authorization: Optional[str], legacy_token: Optional[str]) -> Optional[str]:
    """Read the token from ``Authorization: Bearer`` or the older ``x-auth-token`` header."""
    if authorization:
        scheme, _, value = authorization.partition(" ")
        if scheme.lower() == "bearer" and value:
            return value.strip()
    return legacy_token or None


async def get_current_caller(
    request: Request,
    authorization: Optional[str] = Header(None),
    x_auth_token: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
) -> Caller:
    """Dependency resolving the authenticated caller."""
    verifier = SessionVerifier(db, request.app.state.settings)
    return await verifier.verify(extract_credential(authorization, x_auth_token))


async def require_operator(caller: Caller = Depends(get_current_caller)) -> Caller:
    """Dependency admitting operators only."""
    if not caller.is_operator:
        raise Forbidden("Operator access required")
    return caller
