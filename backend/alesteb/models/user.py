from sqlmodel import SQLModel, Field, Relationship
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
from alesteb.core.timeutils import utc_now, UTCDateTime


class UserRoleLink(SQLModel, table=True):
    __tablename__ = "user_roles"

    user_id: int = Field(foreign_key="users.id", primary_key=True)
    role_id: int = Field(foreign_key="roles.id", primary_key=True)


class RolePermissionLink(SQLModel, table=True):
    __tablename__ = "role_permissions"

    role_id: int = Field(foreign_key="roles.id", primary_key=True)
    permission_id: int = Field(foreign_key="permissions.id", primary_key=True)


class Permission(SQLModel, table=True):
    __tablename__ = "permissions"

    id: Optional[int] = Field(default=None, primary_key=True)
    slug: str = Field(unique=True, index=True)
    description: Optional[str] = None

    # Relationships
    roles: List["Role"] = Relationship(back_populates="permissions", link_model=RolePermissionLink)


class Role(SQLModel, table=True):
    __tablename__ = "roles"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(unique=True, index=True)

    # Relationships
    users: List["User"] = Relationship(back_populates="roles", link_model=UserRoleLink)
    permissions: List[Permission] = Relationship(back_populates="roles", link_model=RolePermissionLink)


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: Optional[str] = None
    email: str = Field(unique=True, index=True)
    phone: Optional[str] = None
    password_hash: str

    is_verified: bool = Field(default=False)
    verification_code: Optional[str] = None
    is_active: bool = Field(default=True)

    total_spent: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)

    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)

    # Relationships
    roles: List[Role] = Relationship(back_populates="users", link_model=UserRoleLink)

    @property
    def role_names(self) -> List[str]:
        return [role.name for role in self.roles]
