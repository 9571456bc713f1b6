from typing import List

from fastapi import Depends, Request
from fastapi_jwt import JwtAccessBearer, JwtAuthorizationCredentials
from pydantic import BaseModel, ValidationError as PydanticValidationError
from sqlmodel import Session, select

from alesteb.core.config import settings
from alesteb.core.errors import UnauthorizedError, ForbiddenError
from alesteb.db.session import get_db
from alesteb.models.user import Role, Permission, RolePermissionLink

SUPER_ADMIN = "super_admin"
ADMIN_ROLES = ("admin", SUPER_ADMIN)
STAFF_ROLES = ("admin", "manager", SUPER_ADMIN)

# JWT in the Authorization: Bearer header
access_security = JwtAccessBearer(
    secret_key=settings.SECRET_KEY,
    auto_error=False,
    access_expires_delta=settings.jwt_expires_delta,
)


class TokenClaims(BaseModel):
    """Claims carried in the token subject"""
    id: int
    roles: List[str] = []

    def has_any_role(self, allowed) -> bool:
        return bool(set(self.roles) & set(allowed))


def create_access_token(user_id: int, roles: List[str]) -> str:
    claims = TokenClaims(id=user_id, roles=roles)
    return access_security.create_access_token(subject=claims.model_dump())


async def get_current_claims(
    request: Request,
    credentials: JwtAuthorizationCredentials = Depends(access_security),
) -> TokenClaims:
    # Missing header, wrong scheme, bad signature and expiry all arrive as None
    if credentials is None:
        raise UnauthorizedError("Not authenticated")

    try:
        claims = TokenClaims.model_validate(credentials.subject)
    except PydanticValidationError:
        raise UnauthorizedError("Invalid token")

    request.state.user_id = claims.id
    return claims


def require_roles(*allowed: str):
    async def dependency(claims: TokenClaims = Depends(get_current_claims)) -> TokenClaims:
        if not claims.has_any_role(allowed):
            raise ForbiddenError("Insufficient role")
        return claims

    return dependency


def require_permission(slug: str):
    def dependency(
        claims: TokenClaims = Depends(get_current_claims),
        db: Session = Depends(get_db),
    ) -> TokenClaims:
        if SUPER_ADMIN in claims.roles:
            return claims

        granted = db.exec(
            select(Permission.id)
            .join(RolePermissionLink, RolePermissionLink.permission_id == Permission.id)
            .join(Role, Role.id == RolePermissionLink.role_id)
            .where(Permission.slug == slug, Role.name.in_(claims.roles))
        ).first()
        if granted is None:
            raise ForbiddenError("You do not have permission to perform this action")
        return claims

    return dependency


admin_required = require_roles(*ADMIN_ROLES)
staff_required = require_roles(*STAFF_ROLES)
