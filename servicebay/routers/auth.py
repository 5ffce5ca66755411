"""
Account routes: registration, login and the caller's profile.
"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from servicebay.auth import Caller, create_access_token, get_current_caller, hash_password, verify_password
from servicebay.database import get_db
from servicebay.exceptions import Conflict, InvalidCredentials, NotFound
from servicebay.models.user import User
from servicebay.schemas.user import LoginRequest, Token, User as UserSchema, UserRegister

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=Token)
async def register(body: UserRegister, request: Request, db: AsyncSession = Depends(get_db)):
    """
    Register a customer account and return an access token.
    """
    result = await db.execute(select(User).where(User.email == body.email))
    if result.scalar_one_or_none():
        raise Conflict("User already exists")

    user = User(
        name=body.name,
        email=body.email,
        phone=body.phone,
        hashed_password=hash_password(body.password),
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise Conflict("User already exists")
    await db.refresh(user)

    return Token(access_token=create_access_token(user, request.app.state.settings), msg="User registered successfully!")


@router.post("/login", response_model=Token)
async def login(body: LoginRequest, request: Request, db: AsyncSession = Depends(get_db)):
    """
    Exchange email and password for an access token.
    """
    result = await db.execute(select(User).where(User.email == body.email))
    user = result.scalar_one_or_none()
    if user is None or not verify_password(body.password, user.hashed_password):
        raise InvalidCredentials("Invalid Credentials")

    return Token(access_token=create_access_token(user, request.app.state.settings), msg="Logged in successfully!")


@router.get("/user", response_model=UserSchema)
async def get_auth_user(caller: Caller = Depends(get_current_caller), db: AsyncSession = Depends(get_db)):
    """
    The authenticated caller's profile.
    """
    user = await db.get(User, caller.caller_id)
    if user is None:
        raise NotFound("User not found")
    return user
