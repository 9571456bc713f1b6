from fastapi import APIRouter, Depends
from sqlmodel import Session, select, col
from typing import List
from alesteb.api.deps import get_db, admin_required, TokenClaims, SUPER_ADMIN
from alesteb.core.errors import NotFoundError, ValidationError, ConflictError
from alesteb.db.session import transaction
from alesteb.models.user import Role, Permission
from alesteb.schemas.user import RoleResponse, RoleCreate, RolePermissionsUpdate

router = APIRouter(prefix="/api/roles", tags=["roles"])


def build_role_response(role: Role) -> RoleResponse:
    return RoleResponse(
        id=role.id,
        name=role.name,
        permissions=sorted(p.slug for p in role.permissions),
    )


@router.get("/", response_model=List[RoleResponse])
def list_roles(
    db: Session = Depends(get_db),
    _: TokenClaims = Depends(admin_required)
):
    """Roles with their permission slugs"""
    return [build_role_response(r) for r in db.exec(select(Role).order_by(Role.name)).all()]


@router.post("/", response_model=RoleResponse, status_code=201)
def create_role(
    data: RoleCreate,
    db: Session = Depends(get_db),
    _: TokenClaims = Depends(admin_required)
):
    if db.exec(select(Role).where(Role.name == data.name)).first():
        raise ConflictError("Role already exists")

    with transaction(db):
        role = Role(name=data.name)
        db.add(role)

    db.refresh(role)
    return build_role_response(role)


@router.put("/{role_id}/permissions", response_model=RoleResponse)
def set_role_permissions(
    role_id: int,
    data: RolePermissionsUpdate,
    db: Session = Depends(get_db),
    _: TokenClaims = Depends(admin_required)
):
    """Replace the permissions granted to a role"""
    role = db.get(Role, role_id)
    if not role:
        raise NotFoundError("Role")

    slugs = set(data.permission_slugs)
    permissions = db.exec(select(Permission).where(col(Permission.slug).in_(slugs))).all() if slugs else []
    missing = slugs - {p.slug for p in permissions}
    if missing:
        raise ValidationError("Unknown permissions", details=sorted(missing))

    with transaction(db):
        role.permissions = list(permissions)
        db.add(role)

    db.refresh(role)
    return build_role_response(role)


@router.delete("/{role_id}")
def delete_role(
    role_id: int,
    db: Session = Depends(get_db),
    _: TokenClaims = Depends(admin_required)
):
    role = db.get(Role, role_id)
    if not role:
        raise NotFoundError("Role")
    if role.name == SUPER_ADMIN:
        raise ValidationError("The super_admin role cannot be deleted")
    if role.users:
        raise ValidationError("Role is assigned to users")

    with transaction(db):
        role.permissions = []
        db.add(role)
        db.flush()
        db.delete(role)
    return {"message": "Role deleted"}
