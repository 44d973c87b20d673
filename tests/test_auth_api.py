import jwt
from sqlmodel import Session, select

from storefront.core.roles import Role
from storefront.db.models import User

from tests.helpers import login_user, register_user


def test_register_creates_user_and_hides_password(client):
    resp = register_user(client)
    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    user = body["data"]["user"]
    assert user["phone"] == "09121234567"
    assert user["firstName"] == "Sara"
    assert "password" not in user and "password_hash" not in user


def test_register_normalizes_phone_without_leading_zero(client):
    resp = register_user(client, phone="9121234567")
    assert resp.status_code == 201
    assert resp.json()["data"]["user"]["phone"] == "09121234567"


def test_register_duplicate_phone_is_400(client):
    register_user(client)
    resp = register_user(client, first_name="Other")
    assert resp.status_code == 400
    assert resp.json()["code"] == "DUPLICATE"


def test_register_validation_errors_are_field_level(client):
    resp = client.post("/auth/register", json={"phone": "12345", "password": "123", "firstName": "S", "lastName": "Ahmadi"})
    assert resp.status_code == 400
    body = resp.json()
    assert body["code"] == "VALIDATION_ERROR"
    fields = {e["field"] for e in body["errors"]}
    assert {"phone", "password", "firstName"} <= fields


def test_login_sets_refresh_cookie_and_returns_access_token(client):
    register_user(client)
    resp = login_user(client)
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["accessToken"]
    assert data["user"]["phone"] == "09121234567"

    cookie = resp.headers["set-cookie"]
    assert cookie.startswith("refreshToken=")
    assert "HttpOnly" in cookie
    assert "SameSite=strict" in cookie or "SameSite=Strict" in cookie
    assert "Max-Age=604800" in cookie
    assert "Secure" not in cookie
    assert resp.headers["cache-control"] == "no-store"


def test_login_failures_share_one_message(client):
    register_user(client)
    unknown = login_user(client, phone="09129999999")
    wrong = login_user(client, password="wrong-pass")
    assert unknown.status_code == wrong.status_code == 401
    assert unknown.json()["error"] == wrong.json()["error"]
    assert unknown.json()["code"] == "INVALID_CREDENTIALS"


def test_login_rate_limited_after_five_failures(client):
    register_user(client)
    for _ in range(5):
        assert login_user(client, password="wrong-pass").status_code == 401
    resp = login_user(client)
    assert resp.status_code == 429
    assert resp.json()["code"] == "RATE_LIMITED"
    assert "retry-after" in resp.headers


def test_profile_requires_bearer_token(client):
    resp = client.get("/auth/profile")
    assert resp.status_code == 401
    assert resp.json()["code"] == "MISSING_TOKEN"

    resp = client.get("/auth/profile", headers={"Authorization": "Bearer garbage"})
    assert resp.status_code == 401
    assert resp.json()["code"] == "INVALID_TOKEN"


def test_scenario_register_login_profile(client):
    register_user(client)
    token = login_user(client).json()["data"]["accessToken"]
    resp = client.get("/auth/profile", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["firstName"] == "Sara"
    assert data["role"] == "customer"
    assert data["mobileVerified"] is False


def test_profile_update_changes_names_only(client, engine):
    register_user(client)
    token = login_user(client).json()["data"]["accessToken"]
    resp = client.put(
        "/auth/profile",
        headers={"Authorization": f"Bearer {token}"},
        json={"firstName": "Leila", "phone": "09350000000", "role": "admin", "password": "hacked!"},
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["firstName"] == "Leila"
    assert data["lastName"] == "Ahmadi"
    assert data["phone"] == "09121234567"
    assert data["role"] == "customer"
    # Old password still works
    assert login_user(client).status_code == 200


def test_access_token_expires_after_15_minutes(client, clock):
    register_user(client)
    token = login_user(client).json()["data"]["accessToken"]
    headers = {"Authorization": f"Bearer {token}"}

    clock.advance(minutes=14)
    assert client.get("/auth/profile", headers=headers).status_code == 200

    clock.advance(minutes=2)
    resp = client.get("/auth/profile", headers=headers)
    assert resp.status_code == 401
    assert resp.json()["code"] == "TOKEN_EXPIRED"


def test_refresh_with_cookie_issues_working_access_token(client, clock):
    register_user(client)
    login_user(client)
    clock.advance(minutes=16)

    refreshed_at = clock.now()
    resp = client.post("/auth/refresh")
    assert resp.status_code == 200
    token = resp.json()["data"]["accessToken"]
    headers = {"Authorization": f"Bearer {token}"}
    assert client.get("/auth/profile", headers=headers).status_code == 200

    claims = jwt.decode(token, options={"verify_signature": False})
    assert claims["exp"] == int(refreshed_at.timestamp()) + 15 * 60

    clock.advance(minutes=14)
    assert client.get("/auth/profile", headers=headers).status_code == 200
    clock.advance(minutes=2)
    resp = client.get("/auth/profile", headers=headers)
    assert resp.status_code == 401
    assert resp.json()["code"] == "TOKEN_EXPIRED"


def test_refresh_without_cookie_is_401_and_bad_cookie_is_403(client):
    resp = client.post("/auth/refresh")
    assert resp.status_code == 401
    assert resp.json()["code"] == "MISSING_REFRESH_TOKEN"

    client.cookies.set("refreshToken", "forged")
    resp = client.post("/auth/refresh")
    assert resp.status_code == 403
    assert resp.json()["code"] == "INVALID_REFRESH_TOKEN"


def test_logout_clears_cookie(client):
    register_user(client)
    login_user(client)
    resp = client.post("/auth/logout")
    assert resp.status_code == 200
    assert 'refreshToken=""' in resp.headers["set-cookie"] or "Max-Age=0" in resp.headers["set-cookie"]
    assert client.post("/auth/refresh").status_code == 401


def test_otp_send_and_verify_flow(client, otp_provider):
    register_user(client)
    token = login_user(client).json()["data"]["accessToken"]
    headers = {"Authorization": f"Bearer {token}"}

    resp = client.post("/auth/otp/send", headers=headers, json={"phone": "09121234567"})
    assert resp.status_code == 200
    assert resp.json()["data"] == {"expiresIn": 120, "resendIn": 120}

    again = client.post("/auth/otp/send", headers=headers, json={"phone": "09121234567"})
    assert again.status_code == 429
    assert again.json()["code"] == "OTP_RESEND_THROTTLED"

    bad = client.post("/auth/otp/verify", headers=headers, json={"phone": "09121234567", "code": "12345"})
    assert bad.status_code == 400

    code = otp_provider.last_code("09121234567")
    resp = client.post("/auth/otp/verify", headers=headers, json={"phone": "09121234567", "code": code})
    assert resp.status_code == 200
    assert resp.json()["data"]["mobileVerified"] is True


def test_admin_route_requires_admin_role(client, engine):
    register_user(client)
    token = login_user(client).json()["data"]["accessToken"]
    headers = {"Authorization": f"Bearer {token}"}
    user_id = client.get("/auth/profile", headers=headers).json()["data"]["id"]

    assert client.get(f"/admin/users/{user_id}", headers=headers).status_code == 403

    with Session(engine) as session:
        user = session.exec(select(User).where(User.id == user_id)).one()
        user.role = Role.ADMIN
        session.add(user)
        session.commit()

    resp = client.get(f"/admin/users/{user_id}", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["role"] == "admin"


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] in ("healthy", "degraded")
    assert resp.headers["x-content-type-options"] == "nosniff"


def test_unknown_route_uses_error_envelope(client):
    resp = client.get("/non-existent-route")
    assert resp.status_code == 404
    body = resp.json()
    assert body["success"] is False
    assert body["code"] == "HTTP_ERROR"
