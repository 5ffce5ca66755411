"""
Pydantic schemas for User and Authentication.
"""
from pydantic import BaseModel, EmailStr, Field
from datetime import datetime
from typing import Optional

from servicebay.schemas.base import CamelModel


class UserRegister(CamelModel):
    """Schema for registering a user."""
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=6)
    phone: Optional[str] = None


class LoginRequest(CamelModel):
    """Schema for login request."""
    email: EmailStr
    password: str


class User(CamelModel):
    """Schema for user responses."""
    id: int
    name: str
    email: EmailStr
    phone: Optional[str] = None
    is_admin: bool = False
    created_at: datetime


class Token(BaseModel):
    """Schema for authentication token."""
    access_token: str
    token_type: str = "bearer"
    msg: Optional[str] = None
