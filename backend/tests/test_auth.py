"""
Access-control gate and auth endpoints
"""
from datetime import timedelta

from sqlmodel import select

from alesteb.api.deps import access_security
from alesteb.models.user import User
from conftest import bearer, create_user


def expired_token(user_id: int) -> str:
    return access_security.create_access_token(
        subject={"id": user_id, "roles": ["admin"]},
        expires_delta=timedelta(seconds=-60),
    )


class TestGate:
    """Authentication failures are 401, authorization failures 403"""

    def test_missing_header(self, client):
        assert client.get("/api/users/").status_code == 401

    def test_wrong_scheme(self, client, admin_headers):
        token = admin_headers["Authorization"].split(" ", 1)[1]
        response = client.get("/api/users/", headers={"Authorization": f"Basic {token}"})

        assert response.status_code == 401

    def test_tampered_token(self, client, admin_headers):
        token = admin_headers["Authorization"].split(" ", 1)[1]
        header, payload, signature = token.split(".")
        forged = ".".join([header, payload, signature[::-1]])

        response = client.get("/api/users/", headers={"Authorization": f"Bearer {forged}"})

        assert response.status_code == 401

    def test_expired_token(self, client, admin_user):
        headers = {"Authorization": f"Bearer {expired_token(admin_user.id)}"}

        assert client.get("/api/users/", headers=headers).status_code == 401

    def test_claims_without_id(self, client):
        token = access_security.create_access_token(subject={"roles": ["admin"]})

        response = client.get("/api/users/", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid token"

    def test_wrong_role(self, client, customer_headers):
        response = client.get("/api/users/", headers=customer_headers)

        assert response.status_code == 403
        assert response.json()["code"] == "FORBIDDEN"

    def test_any_allowed_role_passes(self, client, admin_user):
        headers = bearer(admin_user.id, ["customer", "super_admin"])

        assert client.get("/api/users/", headers=headers).status_code == 200


class TestPermissions:
    """require_permission: role must carry the permission, super_admin always passes"""

    def test_role_with_permission(self, client, seeded_roles):
        manager = create_user(seeded_roles, "manager@alesteb.com", ["manager"])

        response = client.get("/api/providers/", headers=bearer(manager.id, ["manager"]))

        assert response.status_code == 200

    def test_role_without_permission(self, client, seeded_roles):
        manager = create_user(seeded_roles, "manager@alesteb.com", ["manager"])

        response = client.get("/api/expenses/", headers=bearer(manager.id, ["manager"]))

        assert response.status_code == 403

    def test_super_admin_bypasses_permissions(self, client, seeded_roles):
        root = create_user(seeded_roles, "root@alesteb.com", ["super_admin"])

        response = client.get("/api/expenses/", headers=bearer(root.id, ["super_admin"]))

        assert response.status_code == 200


class TestLogin:

    def test_login_returns_token(self, client, admin_user):
        response = client.post("/api/auth/login", json={"email": "admin@alesteb.com", "password": "password123"})

        assert response.status_code == 200
        body = response.json()
        assert body["user"]["roles"] == ["admin"]

        me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {body['token']}"})
        assert me.status_code == 200
        assert me.json()["email"] == "admin@alesteb.com"

    def test_wrong_password(self, client, admin_user):
        response = client.post("/api/auth/login", json={"email": "admin@alesteb.com", "password": "nope"})

        assert response.status_code == 401

    def test_unknown_email(self, client, seeded_roles):
        response = client.post("/api/auth/login", json={"email": "ghost@alesteb.com", "password": "password123"})

        assert response.status_code == 401

    def test_inactive_account(self, client, db_session, admin_user):
        admin_user.is_active = False
        db_session.add(admin_user)
        db_session.commit()

        response = client.post("/api/auth/login", json={"email": "admin@alesteb.com", "password": "password123"})

        assert response.status_code == 403


class TestRegistration:

    def test_register_sends_code(self, client, db_session, email_sender, seeded_roles):
        response = client.post("/api/auth/register", json={
            "name": "Ana Perez",
            "email": "ana@mail.com",
            "password": "secret-pass",
        })

        assert response.status_code == 201
        assert response.json()["email_sent"] is True

        user = db_session.exec(select(User).where(User.email == "ana@mail.com")).one()
        assert user.role_names == ["customer"]
        assert user.is_verified is False
        assert email_sender.sent[0]["to"] == ["ana@mail.com"]
        assert user.verification_code in email_sender.sent[0]["html"]

    def test_register_survives_email_failure(self, client, email_sender, seeded_roles):
        email_sender.fail = True

        response = client.post("/api/auth/register", json={
            "name": "Ana Perez",
            "email": "ana@mail.com",
            "password": "secret-pass",
        })

        assert response.status_code == 201
        assert response.json()["email_sent"] is False

    def test_duplicate_email(self, client, admin_user):
        response = client.post("/api/auth/register", json={
            "name": "Someone",
            "email": "admin@alesteb.com",
            "password": "secret-pass",
        })

        assert response.status_code == 409
        assert response.json()["code"] == "CONFLICT"

    def test_verify(self, client, db_session, seeded_roles):
        client.post("/api/auth/register", json={
            "name": "Ana Perez",
            "email": "ana@mail.com",
            "password": "secret-pass",
        })
        user = db_session.exec(select(User).where(User.email == "ana@mail.com")).one()

        wrong = client.post("/api/auth/verify", json={"email": "ana@mail.com", "code": "000000x"})
        assert wrong.status_code == 400

        ok = client.post("/api/auth/verify", json={"email": "ana@mail.com", "code": user.verification_code})
        assert ok.status_code == 200

        db_session.refresh(user)
        assert user.is_verified is True
        assert user.verification_code is None


class TestRateLimits:

    def test_login_attempts_are_limited(self, client, admin_user):
        wrong = {"email": "admin@alesteb.com", "password": "nope"}
        statuses = [client.post("/api/auth/login", json=wrong).status_code for _ in range(5)]
        assert statuses == [401] * 5

        response = client.post("/api/auth/login", json={"email": "admin@alesteb.com", "password": "password123"})

        assert response.status_code == 429
        assert response.json() == {
            "status": "error",
            "code": "RATE_LIMITED",
            "message": "Too many requests, try again later",
        }

    def test_registrations_are_limited(self, client, seeded_roles):
        for n in range(3):
            response = client.post("/api/auth/register", json={
                "name": "Ana Perez",
                "email": f"ana{n}@mail.com",
                "password": "secret-pass",
            })
            assert response.status_code == 201

        response = client.post("/api/auth/register", json={
            "name": "Ana Perez",
            "email": "ana3@mail.com",
            "password": "secret-pass",
        })

        assert response.status_code == 429
