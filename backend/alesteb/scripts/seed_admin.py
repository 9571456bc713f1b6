"""
Seed script: tables, default roles and permissions, and the admin from ENV
Run: python -m alesteb.scripts.seed_admin
"""
import logging
from sqlalchemy.engine import Engine
from sqlmodel import Session, select
from alesteb.core.config import settings
from alesteb.core.logging import configure_logging
from alesteb.core.security import hash_password
from alesteb.db.session import create_db_engine, init_db
from alesteb.models.user import User, Role, Permission

logger = logging.getLogger(__name__)

DEFAULT_ROLES = ["super_admin", "admin", "manager", "customer"]

DEFAULT_PERMISSIONS = {
    "manage_providers": "Providers and provider payments",
    "manage_expenses": "Expenses and stock purchases",
    "manage_purchases": "Purchase orders",
}

# Permissions granted to each role; super_admin passes every check
ROLE_PERMISSIONS = {
    "admin": list(DEFAULT_PERMISSIONS),
    "manager": ["manage_providers", "manage_purchases"],
}


def seed_roles(session: Session) -> None:
    """Create missing roles and permissions and link them"""
    permissions = {}
    for slug, description in DEFAULT_PERMISSIONS.items():
        permission = session.exec(select(Permission).where(Permission.slug == slug)).first()
        if not permission:
            permission = Permission(slug=slug, description=description)
            session.add(permission)
            logger.info("Permission created: %s", slug)
        permissions[slug] = permission

    for name in DEFAULT_ROLES:
        role = session.exec(select(Role).where(Role.name == name)).first()
        if not role:
            role = Role(name=name)
            session.add(role)
            logger.info("Role created: %s", name)

        for slug in ROLE_PERMISSIONS.get(name, []):
            if permissions[slug] not in role.permissions:
                role.permissions.append(permissions[slug])

    session.commit()


def seed_admin(session: Session) -> None:
    """Create the super admin if it does not exist"""
    if not settings.ADMIN_PASSWORD:
        logger.warning("ADMIN_PASSWORD not set, skipping admin seed")
        return

    existing = session.exec(select(User).where(User.email == settings.ADMIN_EMAIL)).first()
    if existing:
        logger.info("Admin already exists: %s", existing.email)
        return

    role = session.exec(select(Role).where(Role.name == "super_admin")).one()
    admin = User(
        name="Admin",
        email=settings.ADMIN_EMAIL,
        password_hash=hash_password(settings.ADMIN_PASSWORD),
        is_verified=True,
        is_active=True,
    )
    admin.roles = [role]
    session.add(admin)
    session.commit()
    logger.info("Admin created: %s", settings.ADMIN_EMAIL)


def run(engine: Engine) -> None:
    init_db(engine)
    with Session(engine) as session:
        seed_roles(session)
        seed_admin(session)


def main():
    configure_logging(settings)
    engine = create_db_engine(settings)
    try:
        run(engine)
    finally:
        engine.dispose()
    logger.info("Done!")


if __name__ == "__main__":
    main()
