from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from auth import AuthenticationError, issue_token, verify_token
from config import Settings
from main import create_app


def test_issue_and_verify_round_trip(settings):
    token = issue_token({"email": "a@example.com"}, settings)
    payload = verify_token(token, settings)
    assert payload["email"] == "a@example.com"
    assert "exp" in payload


def test_verify_rejects_foreign_signature(settings):
    token = issue_token({"email": "a@example.com"}, Settings(secret_key="someone-else"))
    with pytest.raises(AuthenticationError):
        verify_token(token, settings)


def test_verify_rejects_expired_token(settings):
    token = issue_token({"email": "a@example.com"}, settings, expires_delta=timedelta(seconds=-10))
    with pytest.raises(AuthenticationError):
        verify_token(token, settings)


def test_verify_rejects_garbage(settings):
    with pytest.raises(AuthenticationError):
        verify_token("not-a-jwt", settings)


def test_jwt_sets_http_only_cookie(client, settings):
    res = client.post("/jwt", json={"email": "a@example.com"})
    assert res.status_code == 200
    assert res.json() == {"success": True}
    cookie = res.headers["set-cookie"]
    assert cookie.startswith("token=")
    assert "HttpOnly" in cookie
    assert "SameSite=strict" in cookie
    assert "Secure" not in cookie
    assert "Max-Age=31536000" in cookie
    token = res.cookies["token"]
    assert verify_token(token, settings)["email"] == "a@example.com"


def test_jwt_cookie_flags_in_production(store):
    settings = Settings(secret_key="test-secret", environment="production")
    with TestClient(create_app(settings=settings, store=store)) as c:
        res = c.post("/jwt", json={"email": "a@example.com"})
    cookie = res.headers["set-cookie"]
    assert "Secure" in cookie
    assert "SameSite=none" in cookie


def test_jwt_requires_email(client):
    res = client.post("/jwt", json={"name": "nobody"})
    assert res.status_code == 422


def test_logout_clears_cookie(client):
    res = client.get("/logout")
    assert res.status_code == 200
    assert res.json() == {"success": True}
    cookie = res.headers["set-cookie"]
    assert cookie.startswith("token=")
    assert "Max-Age=0" in cookie


def test_cookie_from_jwt_opens_the_gate(client):
    client.post("/jwt", json={"email": "buyer@example.com"})
    # Past the gate the handler runs: an unknown user cannot request a change.
    res = client.patch("/users/buyer@example.com")
    assert res.status_code == 400


@pytest.mark.parametrize(
    "method,path,body",
    [
        ("post", "/plants", {"name": "Fern", "category": "Indoor", "price": 5, "quantity": 1}),
        ("post", "/order", {"customer": {"email": "b@example.com"}, "plantId": "0" * 24, "quantity": 1, "price": 5}),
        ("patch", "/plants/quantity/" + "0" * 24, {"quantityToUpdate": 1}),
        ("get", "/customar-order/b@example.com", None),
        ("delete", "/orders/" + "0" * 24, None),
        ("patch", "/users/b@example.com", None),
        ("patch", "/users/role/b@example.com", {"role": "seller"}),
    ],
)
def test_guarded_routes_reject_missing_cookie(client, store, method, path, body):
    kwargs = {"json": body} if body is not None else {}
    res = client.request(method.upper(), path, **kwargs)
    assert res.status_code == 401
    assert res.json() == {"detail": "unauthorized access"}
    assert store.plants.count_documents({}) == 0
    assert store.orders.count_documents({}) == 0
    assert store.users.count_documents({}) == 0


def test_tampered_cookie_is_rejected(client, store):
    client.cookies.set("token", issue_token({"email": "b@example.com"}, Settings(secret_key="forged")))
    res = client.post("/plants", json={"name": "Fern", "category": "Indoor", "price": 5, "quantity": 1})
    assert res.status_code == 401
    assert store.plants.count_documents({}) == 0
