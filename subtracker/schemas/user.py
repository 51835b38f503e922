import re
from decimal import Decimal
from enum import Enum
from typing import Optional

import pytz
from pydantic import BaseModel, EmailStr, Field, field_validator


class Currency(str, Enum):
    USD = "USD"
    EUR = "EUR"
    GBP = "GBP"
    CAD = "CAD"
    AUD = "AUD"
    JPY = "JPY"
    INR = "INR"


def _validate_password_strength(v: str) -> str:
    if len(v) < 8:
        raise ValueError("Password must be at least 8 characters long")
    if not re.search(r"[A-Z]", v):
        raise ValueError("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", v):
        raise ValueError("Password must contain at least one lowercase letter")
    if not re.search(r"\d", v):
        raise ValueError("Password must contain at least one number")
    if not re.search(r'[!@#$%^&*(),.?":{}|<>]', v):
        raise ValueError("Password must contain at least one special character")
    return v


def _validate_timezone(v: str | None) -> str | None:
    if v is not None and v not in pytz.all_timezones:
        raise ValueError(f"Invalid timezone: {v}")
    return v


class UserCreate(BaseModel):
    email: EmailStr
    password: str
    username: Optional[str] = Field(None, min_length=1, max_length=50)
    monthly_budget: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    location: Optional[str] = Field(None, max_length=100)
    primary_curr: Currency = Currency.USD
    timezone: str = "UTC"

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _validate_password_strength(v)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        return _validate_timezone(v)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class UserResponse(BaseModel):
    id: int
    email: str
    username: str

    class Config:
        from_attributes = True


class UserProfileResponse(BaseModel):
    id: int
    email: str
    username: str
    monthly_budget: Optional[float] = None
    location: Optional[str] = None
    primary_curr: str
    timezone: str

    class Config:
        from_attributes = True


class UserProfileUpdate(BaseModel):
    username: Optional[str] = Field(None, min_length=1, max_length=50)
    monthly_budget: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    location: Optional[str] = Field(None, max_length=100)
    primary_curr: Optional[Currency] = None
    timezone: Optional[str] = None

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str | None) -> str | None:
        return _validate_timezone(v)


class AuthResponse(BaseModel):
    user: UserResponse
    access_token: str
    token_type: str = "bearer"
