from fastapi import APIRouter, Depends
from sqlmodel import Session, select, col
from typing import List
from alesteb.api.deps import get_db, admin_required, TokenClaims
from alesteb.core.errors import NotFoundError, ValidationError, ConflictError
from alesteb.core.security import hash_password
from alesteb.db.session import transaction
from alesteb.models.user import User, Role
from alesteb.schemas.user import UserResponse, UserCreate, UserUpdate, RoleAssign

router = APIRouter(prefix="/api/users", tags=["users"])


def build_user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        name=user.name,
        email=user.email,
        phone=user.phone,
        is_verified=user.is_verified,
        is_active=user.is_active,
        total_spent=user.total_spent,
        roles=user.role_names,
        created_at=user.created_at,
    )


def get_user_or_404(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if not user:
        raise NotFoundError("User")
    return user


def ensure_unique_email(db: Session, email: str, exclude_id: int = None) -> None:
    stmt = select(User).where(User.email == email)
    if exclude_id is not None:
        stmt = stmt.where(User.id != exclude_id)
    if db.exec(stmt).first():
        raise ConflictError("Email already registered")


@router.get("/", response_model=List[UserResponse])
def list_users(
    skip: int = 0,
    limit: int = 50,
    db: Session = Depends(get_db),
    _: TokenClaims = Depends(admin_required)
):
    """Users with their roles"""
    users = db.exec(select(User).order_by(User.id).offset(skip).limit(limit)).all()
    return [build_user_response(u) for u in users]


@router.get("/{user_id}", response_model=UserResponse)
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    _: TokenClaims = Depends(admin_required)
):
    return build_user_response(get_user_or_404(db, user_id))


@router.post("/", response_model=UserResponse, status_code=201)
def create_user(
    data: UserCreate,
    db: Session = Depends(get_db),
    _: TokenClaims = Depends(admin_required)
):
    """Staff-created accounts are verified from the start"""
    ensure_unique_email(db, data.email)

    roles = []
    if data.role_ids:
        roles = db.exec(select(Role).where(col(Role.id).in_(data.role_ids))).all()
        if len(roles) != len(set(data.role_ids)):
            raise ValidationError("Unknown role id")

    with transaction(db):
        user = User(
            name=data.name,
            email=data.email,
            phone=data.phone,
            password_hash=hash_password(data.password),
            is_verified=True,
        )
        user.roles = list(roles)
        db.add(user)

    db.refresh(user)
    return build_user_response(user)


@router.put("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: int,
    data: UserUpdate,
    db: Session = Depends(get_db),
    _: TokenClaims = Depends(admin_required)
):
    user = get_user_or_404(db, user_id)

    update_data = data.model_dump(exclude_unset=True)
    if update_data.get("email"):
        ensure_unique_email(db, update_data["email"], exclude_id=user_id)

    password = update_data.pop("password", None)

    with transaction(db):
        for key, value in update_data.items():
            setattr(user, key, value)
        if password:
            user.password_hash = hash_password(password)
        db.add(user)

    db.refresh(user)
    return build_user_response(user)


@router.delete("/{user_id}")
def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    claims: TokenClaims = Depends(admin_required)
):
    if user_id == claims.id:
        raise ValidationError("You cannot delete your own account")

    user = get_user_or_404(db, user_id)
    with transaction(db):
        user.roles = []
        db.add(user)
        db.flush()
        db.delete(user)
    return {"message": "User deleted"}


@router.post("/{user_id}/roles", response_model=UserResponse)
def assign_role(
    user_id: int,
    data: RoleAssign,
    db: Session = Depends(get_db),
    _: TokenClaims = Depends(admin_required)
):
    user = get_user_or_404(db, user_id)
    role = db.get(Role, data.role_id)
    if not role:
        raise NotFoundError("Role")

    if role not in user.roles:
        with transaction(db):
            user.roles.append(role)
            db.add(user)
        db.refresh(user)

    return build_user_response(user)
