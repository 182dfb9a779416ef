"""Pydantic schemas for user API endpoints."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class UserRegisterRequest(BaseModel):
    """Request schema for user registration."""

    email: EmailStr
    password: str = Field(min_length=8)
    name: Optional[str] = None


class UserRegisterResponse(BaseModel):
    """Response schema for user registration."""

    user_id: int
    email: str
    message: str


class UserLoginRequest(BaseModel):
    """Request schema for user login."""

    email: EmailStr
    password: str


class UserResponse(BaseModel):
    """Response schema for user data."""

    id: int
    email: str
    name: Optional[str]
    created_at: datetime


class UserLoginResponse(BaseModel):
    """Response schema for user login."""

    access_token: str
    token_type: str = "bearer"
    user: UserResponse


class UserProfileResponse(BaseModel):
    """Response schema for user profile."""

    id: int
    email: str
    name: Optional[str]
    is_premium: bool
    created_at: datetime
