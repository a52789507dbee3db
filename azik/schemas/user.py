from pydantic import EmailStr, Field, UUID4, field_validator
from typing import Optional
from datetime import datetime
from enum import Enum
from .base import APIModel

class UserRole(str, Enum):
    COOK = "cook"
    WAITER = "waiter"
    KITCHEN_STAFF = "kitchen_staff"
    MANAGER = "manager"
    ADMIN = "admin"
    OTHER = "other"

class Address(APIModel):
    province: str = Field(..., min_length=1, max_length=100)
    district: str = Field(..., min_length=1, max_length=100)
    neighborhood: str = Field(..., min_length=1, max_length=100)
    full_address: str = Field(..., min_length=1, max_length=300)

class UserCreate(Address):
    role: UserRole
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    phone: str = Field(..., min_length=7, max_length=20)
    # Minimum length is enforced by UserService from settings
    password: str = Field(..., min_length=1, max_length=72)

    @field_validator("role")
    @classmethod
    def role_is_not_admin(cls, v):
        if v == UserRole.ADMIN:
            raise ValueError("The admin role cannot be chosen at registration")
        return v

    @field_validator("password")
    @classmethod
    def fits_bcrypt(cls, v):
        # bcrypt only hashes the first 72 bytes
        if len(v.encode("utf-8")) > 72:
            raise ValueError("Password must be at most 72 bytes")
        return v

class UserResponse(APIModel):
    id: UUID4
    role: UserRole
    first_name: str
    last_name: str
    email: EmailStr
    phone: str
    province: Optional[str] = None
    district: Optional[str] = None
    neighborhood: Optional[str] = None
    full_address: Optional[str] = None
    email_verified: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class RegisterResponse(APIModel):
    message: str
    requires_verification: bool = True
    email_sent: bool
    user: UserResponse

class LoginRequest(APIModel):
    email: EmailStr
    password: str = Field(..., min_length=1)

class Token(APIModel):
    token: str
    token_type: str = "bearer"
    user: UserResponse

class VerificationRequest(APIModel):
    token: str = Field(..., min_length=1)

class ResendVerificationRequest(APIModel):
    email: EmailStr

class PushTokenUpdate(APIModel):
    push_token: str = Field(..., min_length=1, max_length=4096)
