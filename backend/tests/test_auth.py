"""
Tests for authentication, the current-user endpoints and the admin API.

Tests cover:
- Registration (201, duplicate email 409, validation 400)
- Login (token issuance, wrong credentials 401)
- Bearer token handling (missing, expired, unknown user)
- Basic-auth protected /health, /version and /admin/users
"""

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

import config
import models
from tests.conftest import basic_auth_headers, create_auth_token


REGISTRATION = {
    "email": "new@test.com",
    "password": "s3cure-password",
    "first_name": "Nina",
    "last_name": "New",
}


# ============== Register ==============


def test_register(client: TestClient):
    response = client.post("/auth/register", json=REGISTRATION)

    assert response.status_code == 201, response.json()
    data = response.json()
    assert data["email"] == "new@test.com"
    assert data["roles"] == ["ROLE_USER"]
    assert "password_hash" not in data
    assert "password" not in data


def test_register_cannot_choose_roles(client: TestClient):
    response = client.post("/auth/register", json={**REGISTRATION, "roles": ["ROLE_MANAGER"]})

    assert response.status_code == 201
    assert response.json()["roles"] == ["ROLE_USER"]


def test_register_duplicate_email(client: TestClient, owner_user):
    response = client.post("/auth/register", json={**REGISTRATION, "email": owner_user.email})

    assert response.status_code == 409
    assert response.json() == {"detail": "Email already exists"}


@pytest.mark.parametrize(
    "override",
    [{"email": "not-an-email"}, {"password": "short"}, {"first_name": ""}],
)
def test_register_validation(client: TestClient, override):
    response = client.post("/auth/register", json={**REGISTRATION, **override})

    assert response.status_code == 400
    assert response.json()["detail"] == "Validation failed"


# ============== Login ==============


def test_login_returns_usable_token(client: TestClient, owner_user):
    response = client.post("/auth/login", json={"email": owner_user.email, "password": "password123"})

    assert response.status_code == 200
    data = response.json()
    assert data["expires_in"].endswith(" seconds")

    me = client.get("/me", headers={"Authorization": f"Bearer {data['token']}"})
    assert me.status_code == 200
    assert me.json()["id"] == owner_user.id


@pytest.mark.parametrize(
    "credentials",
    [
        {"email": "owner@test.com", "password": "wrong-password"},
        {"email": "nobody@test.com", "password": "password123"},
    ],
    ids=["wrong-password", "unknown-email"],
)
def test_login_rejects_bad_credentials(client: TestClient, owner_user, credentials):
    response = client.post("/auth/login", json=credentials)

    assert response.status_code == 401
    assert response.json() == {"detail": "Invalid email/password combination"}


# ============== Current user ==============


@pytest.mark.parametrize("path", ["/me", "/users/me"])
def test_me(client: TestClient, owner_user, owner_headers, path):
    response = client.get(path, headers=owner_headers)

    assert response.status_code == 200
    assert response.json()["email"] == owner_user.email


def test_me_without_token(client: TestClient):
    assert client.get("/me").status_code == 401


def test_expired_token(client: TestClient, owner_user):
    token = create_auth_token(owner_user, expires_delta=timedelta(seconds=-1))

    response = client.get("/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


def test_token_for_deleted_user(client: TestClient, owner_user, test_db):
    token = create_auth_token(owner_user)
    test_db.delete(owner_user)
    test_db.commit()

    response = client.get("/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


# ============== Admin (basic auth) ==============


def test_health(client: TestClient):
    response = client.get("/health", headers=basic_auth_headers())

    assert response.status_code == 200
    assert response.json() == {"status": "OK"}


def test_version(client: TestClient):
    response = client.get("/version", headers=basic_auth_headers())

    assert response.status_code == 200
    assert response.json() == {"version": config.APP_VERSION}


@pytest.mark.parametrize(
    "headers",
    [
        {},
        {"Authorization": "Invalid test-secret"},
        basic_auth_headers(secret="wrong-secret"),
    ],
    ids=["missing", "wrong-scheme", "wrong-secret"],
)
def test_admin_endpoints_require_basic_auth(client: TestClient, headers):
    response = client.get("/health", headers=headers)

    assert response.status_code == 401


def test_jwt_is_not_accepted_for_admin(client: TestClient, owner_headers):
    assert client.get("/health", headers=owner_headers).status_code == 401


def test_admin_creates_manager(client: TestClient, test_db):
    response = client.post(
        "/admin/users",
        json={**REGISTRATION, "roles": ["ROLE_MANAGER"]},
        headers=basic_auth_headers(),
    )

    assert response.status_code == 201, response.json()
    data = response.json()
    assert data["roles"] == ["ROLE_MANAGER"]

    user = test_db.query(models.User).filter(models.User.id == data["id"]).one()
    assert user.roles == ["ROLE_MANAGER"]


def test_admin_create_user_defaults_to_user_role(client: TestClient):
    response = client.post("/admin/users", json=REGISTRATION, headers=basic_auth_headers())

    assert response.status_code == 201
    assert response.json()["roles"] == ["ROLE_USER"]


def test_admin_create_duplicate_user(client: TestClient, owner_user):
    response = client.post(
        "/admin/users",
        json={**REGISTRATION, "email": owner_user.email},
        headers=basic_auth_headers(),
    )

    assert response.status_code == 409


def test_admin_get_user(client: TestClient, manager_user):
    response = client.get(f"/admin/users/{manager_user.id}", headers=basic_auth_headers())

    assert response.status_code == 200
    assert response.json()["roles"] == ["ROLE_MANAGER"]


def test_admin_get_missing_user(client: TestClient):
    response = client.get("/admin/users/9999", headers=basic_auth_headers())

    assert response.status_code == 404
    assert response.json() == {"detail": "User not found"}
