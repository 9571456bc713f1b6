from fastapi import APIRouter, Depends
from sqlmodel import Session, select
from typing import List
from alesteb.api.deps import get_db, get_current_claims, admin_required, TokenClaims
from alesteb.core.errors import ConflictError
from alesteb.db.session import transaction
from alesteb.models.user import Permission
from alesteb.schemas.user import PermissionResponse, PermissionCreate

router = APIRouter(prefix="/api/permissions", tags=["permissions"])


@router.get("/", response_model=List[PermissionResponse])
def list_permissions(
    db: Session = Depends(get_db),
    _: TokenClaims = Depends(get_current_claims)
):
    return db.exec(select(Permission).order_by(Permission.slug)).all()


@router.post("/", response_model=PermissionResponse, status_code=201)
def create_permission(
    data: PermissionCreate,
    db: Session = Depends(get_db),
    _: TokenClaims = Depends(admin_required)
):
    if db.exec(select(Permission).where(Permission.slug == data.slug)).first():
        raise ConflictError("Permission already exists")

    with transaction(db):
        permission = Permission(**data.model_dump())
        db.add(permission)

    db.refresh(permission)
    return permission
