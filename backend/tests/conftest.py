"""
Shared pytest fixtures: in-memory database, API client with overridden
dependencies, auth headers and sample data.
"""
import os
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from io import BytesIO
from typing import Generator, List

os.environ.setdefault("ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest
from fastapi.testclient import TestClient
from PIL import Image
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine, select

import alesteb.models  # noqa: F401
from alesteb.api.deps import create_access_token
from alesteb.core.errors import ExternalServiceError
from alesteb.core.rate_limit import limiter
from alesteb.core.security import hash_password
from alesteb.db.session import get_db
from alesteb.main import app
from alesteb.models.category import Category
from alesteb.models.discount import Discount, DiscountTarget, DiscountType, TargetType
from alesteb.models.product import Product, ProductImage
from alesteb.models.provider import Provider
from alesteb.models.user import User, Role
from alesteb.scripts.seed_admin import seed_roles
from alesteb.services.email import get_email_sender
from alesteb.services.image_store import LocalImageStore, get_image_store


class FakeEmailSender:
    """Records messages instead of calling Resend"""

    def __init__(self):
        self.sent = []
        self.fail = False

    @property
    def configured(self) -> bool:
        return True

    def send(self, to: List[str], subject: str, html: str) -> str:
        if self.fail:
            raise ExternalServiceError("email", "provider unavailable")
        self.sent.append({"to": to, "subject": subject, "html": html})
        return f"msg-{len(self.sent)}"


def make_image(color=(200, 30, 30), size=(20, 20), fmt="PNG") -> bytes:
    buffer = BytesIO()
    Image.new("RGB", size, color).save(buffer, format=fmt)
    return buffer.getvalue()


def image_file(name: str = "photo.png", color=(200, 30, 30)):
    """Multipart tuple for the images field"""
    return ("images", (name, make_image(color), "image/png"))


def bearer(user_id: int, roles) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user_id, list(roles))}"}


@pytest.fixture
def engine():
    """In-memory SQLite shared by every session of a test"""
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    try:
        yield engine
    finally:
        SQLModel.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture
def db_session(engine) -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session


@pytest.fixture
def image_store(tmp_path) -> LocalImageStore:
    return LocalImageStore(str(tmp_path / "uploads"))


@pytest.fixture
def email_sender() -> FakeEmailSender:
    return FakeEmailSender()


@pytest.fixture
def client(db_session, image_store, email_sender) -> Generator[TestClient, None, None]:
    """API client; the lifespan does not run, resources come from the overrides"""
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_image_store] = lambda: image_store
    app.dependency_overrides[get_email_sender] = lambda: email_sender
    limiter.reset()

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def seeded_roles(db_session):
    """Default roles and permissions"""
    seed_roles(db_session)
    return db_session


def create_user(db: Session, email: str, role_names, password: str = "password123") -> User:
    roles = []
    for name in role_names:
        role = db.exec(select(Role).where(Role.name == name)).first()
        if not role:
            role = Role(name=name)
            db.add(role)
        roles.append(role)

    user = User(
        name=email.split("@")[0].title(),
        email=email,
        password_hash=hash_password(password),
        is_verified=True,
    )
    user.roles = roles
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def admin_user(seeded_roles) -> User:
    return create_user(seeded_roles, "admin@alesteb.com", ["admin"])


@pytest.fixture
def customer_user(seeded_roles) -> User:
    return create_user(seeded_roles, "customer@mail.com", ["customer"])


@pytest.fixture
def admin_headers(admin_user) -> dict:
    return bearer(admin_user.id, admin_user.role_names)


@pytest.fixture
def customer_headers(customer_user) -> dict:
    return bearer(customer_user.id, customer_user.role_names)


@pytest.fixture
def category(db_session) -> Category:
    category = Category(name="Shoes", slug="shoes")
    db_session.add(category)
    db_session.commit()
    db_session.refresh(category)
    return category


@pytest.fixture
def product(db_session, category) -> Product:
    """Product with one main image, stock 10, price 100"""
    product = Product(name="Runner", price=Decimal("100.00"), stock=10, category_id=category.id)
    db_session.add(product)
    db_session.flush()
    db_session.add(ProductImage(
        product_id=product.id,
        url="/uploads/products/seed.jpg",
        storage_key="products/seed.jpg",
        is_main=True,
        sort_order=0,
    ))
    db_session.commit()
    db_session.refresh(product)
    return product


@pytest.fixture
def provider(db_session) -> Provider:
    provider = Provider(name="Acme Supplies", category="footwear")
    db_session.add(provider)
    db_session.commit()
    db_session.refresh(provider)
    return provider


def add_discount(db: Session, discount_type: DiscountType, value: str, target_type: TargetType, target_id: int,
                 starts_at: datetime = None, ends_at: datetime = None, name: str = "Promo") -> Discount:
    now = datetime.now(timezone.utc)
    discount = Discount(
        name=name,
        type=discount_type,
        value=Decimal(value),
        starts_at=starts_at or now - timedelta(days=1),
        ends_at=ends_at or now + timedelta(days=1),
    )
    db.add(discount)
    db.flush()
    db.add(DiscountTarget(discount_id=discount.id, target_type=target_type, target_id=target_id))
    db.commit()
    db.refresh(discount)
    return discount
