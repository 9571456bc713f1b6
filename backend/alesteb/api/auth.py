from fastapi import APIRouter, Depends, Request
from sqlmodel import Session, select
import logging
from alesteb.api.deps import get_db, get_current_claims, create_access_token, TokenClaims
from alesteb.api.users import build_user_response
from alesteb.core.config import settings
from alesteb.core.errors import (
    UnauthorizedError, ForbiddenError, ConflictError, NotFoundError, ValidationError,
    ExternalServiceError
)
from alesteb.core.rate_limit import limiter
from alesteb.core.security import hash_password, verify_password, generate_verification_code
from alesteb.db.session import transaction
from alesteb.models.user import User, Role
from alesteb.schemas.user import (
    LoginRequest, RegisterRequest, RegisterResponse, VerifyRequest, TokenResponse, UserResponse
)
from alesteb.services.email import EmailSender, get_email_sender

router = APIRouter(prefix="/api/auth", tags=["auth"])

logger = logging.getLogger(__name__)

CUSTOMER_ROLE = "customer"


@router.post("/login", response_model=TokenResponse)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
def login(request: Request, data: LoginRequest, db: Session = Depends(get_db)):
    user = db.exec(select(User).where(User.email == data.email)).first()

    if not user or not verify_password(data.password, user.password_hash):
        raise UnauthorizedError("Invalid credentials")

    if not user.is_active:
        raise ForbiddenError("Account is inactive")

    token = create_access_token(user.id, user.role_names)
    logger.info("User %s logged in", user.id)
    return TokenResponse(token=token, user=build_user_response(user))


@router.post("/register", response_model=RegisterResponse, status_code=201)
@limiter.limit(settings.REGISTER_RATE_LIMIT)
def register(
    request: Request,
    data: RegisterRequest,
    db: Session = Depends(get_db),
    email_sender: EmailSender = Depends(get_email_sender)
):
    """Create a customer account and email the verification code"""
    if db.exec(select(User).where(User.email == data.email)).first():
        raise ConflictError("Email already registered")

    code = generate_verification_code()

    with transaction(db):
        role = db.exec(select(Role).where(Role.name == CUSTOMER_ROLE)).first()
        if not role:
            role = Role(name=CUSTOMER_ROLE)
            db.add(role)

        user = User(
            name=data.name,
            email=data.email,
            password_hash=hash_password(data.password),
            verification_code=code,
            is_verified=False,
        )
        user.roles = [role]
        db.add(user)

    db.refresh(user)

    # The account exists either way; the code can be requested again
    email_sent = True
    try:
        email_sender.send([user.email], "Verification code", f"<h1>{code}</h1>")
    except ExternalServiceError as e:
        logger.error("Verification email for user %s not sent: %s", user.id, e)
        email_sent = False

    return RegisterResponse(id=user.id, email=user.email, email_sent=email_sent)


@router.post("/verify")
def verify(data: VerifyRequest, db: Session = Depends(get_db)):
    user = db.exec(select(User).where(User.email == data.email)).first()
    if not user:
        raise NotFoundError("User")

    if user.is_verified:
        return {"message": "Account already verified"}

    if not user.verification_code or user.verification_code != data.code:
        raise ValidationError("Invalid verification code")

    with transaction(db):
        user.is_verified = True
        user.verification_code = None
        db.add(user)

    return {"message": "Account verified"}


@router.get("/me", response_model=UserResponse)
def me(
    db: Session = Depends(get_db),
    claims: TokenClaims = Depends(get_current_claims)
):
    user = db.get(User, claims.id)
    if not user:
        raise UnauthorizedError("User no longer exists")
    return build_user_response(user)
