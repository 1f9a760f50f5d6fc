"""Registration, login, bearer tokens and role guards."""

from itsdangerous import URLSafeTimedSerializer

from foodhub.core.config import get_settings
from foodhub.core.security import TOKEN_SALT, decode_access_token
from foodhub.models import ApprovalState, UserRole
from tests.conftest import TEST_PASSWORD, auth_headers


async def test_register_customer_is_accepted(client):
    response = await client.post(
        "/api/register",
        json={"name": "Asha", "email": "Asha@Example.com", "password": "pass1234"},
    )
    assert response.status_code == 201
    body = response.json()
    assert body["user"]["email"] == "asha@example.com"
    assert body["user"]["userType"] == "customer"
    assert body["user"]["approval"] == "accepted"
    assert "passwordHash" not in body["user"]
    assert decode_access_token(body["token"])["userType"] == "customer"


async def test_register_restaurant_is_pending(client):
    response = await client.post(
        "/api/register",
        json={"name": "Owner", "email": "owner@example.com", "password": "pass1234", "userType": "restaurant"},
    )
    assert response.status_code == 201
    assert response.json()["user"]["approval"] == "pending"


async def test_register_duplicate_email(client, customer):
    response = await client.post(
        "/api/register",
        json={"name": "Again", "email": customer.email, "password": "pass1234"},
    )
    assert response.status_code == 400
    assert response.json() == {"message": "User already exists"}


async def test_register_validation_errors_are_400(client):
    response = await client.post("/api/register", json={"name": "X", "email": "not-an-email", "password": "1"})
    assert response.status_code == 400
    assert "message" in response.json()


async def test_login(client, customer):
    response = await client.post("/api/login", json={"email": customer.email, "password": TEST_PASSWORD})
    assert response.status_code == 200
    assert response.json()["user"]["id"] == customer.id


async def test_login_wrong_password(client, customer):
    response = await client.post("/api/login", json={"email": customer.email, "password": "wrong-pass"})
    assert response.status_code == 400
    assert response.json()["message"] == "Invalid Credentials"


async def test_login_pending_account_is_forbidden(client, make_user):
    user = await make_user(UserRole.RESTAURANT, approval=ApprovalState.PENDING)
    response = await client.post("/api/login", json={"email": user.email, "password": TEST_PASSWORD})
    assert response.status_code == 403


async def test_missing_token(client):
    response = await client.get("/api/customer/cart")
    assert response.status_code == 401
    assert response.json()["message"] == "Not authorized, no token"


async def test_tampered_token(client, customer):
    token = auth_headers(customer)["Authorization"] + "x"
    response = await client.get("/api/customer/cart", headers={"Authorization": token})
    assert response.status_code == 401


async def test_token_signed_with_other_key(client, customer):
    forged = URLSafeTimedSerializer("another-key", salt=TOKEN_SALT).dumps({"id": customer.id, "userType": "customer"})
    response = await client.get("/api/customer/cart", headers={"Authorization": f"Bearer {forged}"})
    assert response.status_code == 401


async def test_expired_token(client, customer, monkeypatch):
    headers = auth_headers(customer)
    monkeypatch.setattr(get_settings(), "token_max_age_seconds", -1)
    response = await client.get("/api/customer/cart", headers=headers)
    assert response.status_code == 401
    assert response.json()["message"] == "Not authorized, token expired"


async def test_token_of_deleted_user(client, customer, db):
    headers = auth_headers(customer)
    await db.delete(customer)
    await db.commit()
    response = await client.get("/api/customer/cart", headers=headers)
    assert response.status_code == 401
    assert response.json()["message"] == "Not authorized, user not found"


async def test_pending_account_token_is_forbidden(client, make_user):
    user = await make_user(UserRole.RESTAURANT, approval=ApprovalState.PENDING)
    response = await client.get("/api/restaurant/my-restaurant-id", headers=auth_headers(user))
    assert response.status_code == 403


async def test_role_guard(client, customer, admin, owner):
    response = await client.get("/api/admin/users", headers=auth_headers(customer))
    assert response.status_code == 403
    assert response.json()["message"] == "User role customer is not authorized to access this route"

    assert (await client.get("/api/customer/cart", headers=auth_headers(owner))).status_code == 403
    assert (await client.get("/api/restaurant/my-restaurant-id", headers=auth_headers(admin))).status_code == 403


async def test_profile_update_rejects_taken_email(client, customer, make_user):
    other = await make_user(UserRole.CUSTOMER)
    response = await client.put(
        "/api/customer/profile",
        json={"email": other.email},
        headers=auth_headers(customer),
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Email already registered by another user."


async def test_profile_update(client, customer):
    response = await client.put(
        "/api/customer/profile",
        json={"name": "New Name", "phone": "555-0101"},
        headers=auth_headers(customer),
    )
    assert response.status_code == 200
    user = response.json()["user"]
    assert user["name"] == "New Name"
    assert user["phone"] == "555-0101"


async def test_root(client):
    response = await client.get("/")
    assert response.status_code == 200
    assert "version" in response.json()
