from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List
from datetime import datetime
from decimal import Decimal


# === Auth ===

class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class RegisterRequest(BaseModel):
    name: str = Field(min_length=2, max_length=100)
    email: EmailStr
    password: str = Field(min_length=8)


class VerifyRequest(BaseModel):
    email: EmailStr
    code: str


class UserResponse(BaseModel):
    id: int
    name: Optional[str] = None
    email: str
    phone: Optional[str] = None
    is_verified: bool
    is_active: bool
    total_spent: Decimal
    roles: List[str] = []
    created_at: Optional[datetime] = None


class TokenResponse(BaseModel):
    token: str
    user: UserResponse


# === Users (admin) ===

class UserCreate(BaseModel):
    name: Optional[str] = None
    email: EmailStr
    password: str = Field(min_length=8)
    phone: Optional[str] = None
    role_ids: List[int] = []


class UserUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    password: Optional[str] = Field(default=None, min_length=8)
    is_active: Optional[bool] = None


class RoleAssign(BaseModel):
    role_id: int


# === Roles / permissions ===

class PermissionResponse(BaseModel):
    id: int
    slug: str
    description: Optional[str] = None

    class Config:
        from_attributes = True


class PermissionCreate(BaseModel):
    slug: str = Field(min_length=1, pattern=r"^[a-z0-9_.:-]+$")
    description: Optional[str] = None


class RoleResponse(BaseModel):
    id: int
    name: str
    permissions: List[str] = []


class RoleCreate(BaseModel):
    name: str = Field(min_length=1, pattern=r"^[a-z0-9_]+$")


class RolePermissionsUpdate(BaseModel):
    permission_slugs: List[str]


class RegisterResponse(BaseModel):
    id: int
    email: str
    email_sent: bool
