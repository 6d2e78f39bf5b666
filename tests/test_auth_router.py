"""
HTTP boundary tests for the auth endpoints (FastAPI TestClient, in-memory store).
"""

from __future__ import annotations

from fastapi.testclient import TestClient

from calldash.container import AppContainer
from calldash.main import create_app

from .conftest import FakeClock

ANN = {
    "firstname": "Ann",
    "lastname": "Lee",
    "email": "Ann@Example.com",
    "password": "secret123",
}


def _signup_and_login(client: TestClient) -> dict:
    assert client.post("/api/signup", json=ANN).status_code == 200
    res = client.post("/api/login", json={"email": "ann@example.com", "password": "secret123"})
    assert res.status_code == 200
    return res.json()


def test_routes_are_registered(client: TestClient):
    routes = {
        (method, route.path)
        for route in client.app.routes
        if hasattr(route, "methods")
        for method in (route.methods or set())
    }
    assert ("POST", "/api/signup") in routes
    assert ("POST", "/api/login") in routes
    assert ("POST", "/api/logout") in routes
    assert ("GET", "/api/profile") in routes
    assert ("PUT", "/api/profile") in routes
    assert ("POST", "/api/validate-token") in routes
    assert ("GET", "/api/data") in routes


def test_root_and_health(client: TestClient):
    assert "API is running" in client.get("/").json()["message"]

    health = client.get("/health").json()
    assert health["status"] == "healthy"
    assert health["databases"] == {"auth": "in-memory", "calls": "in-memory"}


def test_signup_then_duplicate_is_409(client: TestClient):
    res = client.post("/api/signup", json=ANN)
    assert res.status_code == 200
    assert res.json() == {"success": True, "message": "User registered successfully"}
    assert "token" not in res.cookies

    dup = client.post("/api/signup", json={**ANN, "email": "ann@EXAMPLE.com"})
    assert dup.status_code == 409
    assert dup.json() == {"error": "Email already registered"}


def test_signup_validation_errors_are_422(client: TestClient):
    res = client.post("/api/signup", json={"email": "not-an-email", "password": "x"})

    assert res.status_code == 422


def test_login_sets_http_only_cookie(client: TestClient):
    client.post("/api/signup", json=ANN)

    res = client.post("/api/login", json={"email": "ANN@example.com", "password": "secret123"})

    assert res.status_code == 200
    assert res.json() == {
        "success": True,
        "message": "Authenticated",
        "user": {"email": "ann@example.com", "firstname": "Ann"},
    }
    cookie = res.headers["set-cookie"]
    assert cookie.startswith("token=")
    assert "HttpOnly" in cookie
    assert "Max-Age=3600" in cookie
    assert "samesite=lax" in cookie.lower()
    assert "Secure" not in cookie


def test_cookie_is_secure_in_production(container: AppContainer):
    container.settings.app_env = "production"
    with TestClient(create_app(container), base_url="https://testserver") as client:
        client.post("/api/signup", json=ANN)
        res = client.post("/api/login", json={"email": "ann@example.com", "password": "secret123"})

    assert "Secure" in res.headers["set-cookie"]


def test_login_failures_are_identical(client: TestClient):
    client.post("/api/signup", json=ANN)

    unknown = client.post("/api/login", json={"email": "nobody@example.com", "password": "x"})
    wrong = client.post("/api/login", json={"email": "ann@example.com", "password": "wrong"})

    assert unknown.status_code == wrong.status_code == 401
    assert unknown.json() == wrong.json() == {"error": "Invalid credentials"}


def test_profile_requires_cookie(client: TestClient):
    res = client.get("/api/profile")

    assert res.status_code == 401
    assert res.json() == {"error": "Access Denied: No token provided"}


def test_invalid_cookie_is_403(client: TestClient):
    client.cookies.set("token", "tampered.token.value")

    assert client.get("/api/profile").status_code == 403
    assert client.post("/api/validate-token").status_code == 403


def test_expired_cookie_is_403(client: TestClient, clock: FakeClock):
    _signup_and_login(client)
    clock.advance(3601)

    res = client.post("/api/validate-token")

    assert res.status_code == 403
    assert res.json() == {"error": "Token expired"}


def test_get_profile_returns_safe_projection(client: TestClient):
    _signup_and_login(client)

    user = client.get("/api/profile").json()["user"]

    assert user["email"] == "ann@example.com"
    assert user["firstname"] == "Ann"
    assert user["lastname"] == "Lee"
    assert "password" not in user
    assert "password_hash" not in user


def test_update_profile_partial(client: TestClient):
    _signup_and_login(client)

    res = client.put("/api/profile", json={"firstname": "X"})

    assert res.status_code == 200
    body = res.json()
    assert body["success"] is True
    assert body["user"]["firstname"] == "X"
    assert body["user"]["lastname"] == "Lee"
    assert client.get("/api/profile").json()["user"]["firstname"] == "X"


def test_update_password_then_login_with_new_one(client: TestClient):
    _signup_and_login(client)

    assert client.put("/api/profile", json={"password": "n3w-secret"}).status_code == 200
    client.post("/api/logout")

    old = client.post("/api/login", json={"email": "ann@example.com", "password": "secret123"})
    new = client.post("/api/login", json={"email": "ann@example.com", "password": "n3w-secret"})
    assert old.status_code == 401
    assert new.status_code == 200


def test_validate_token_returns_display_claims(client: TestClient):
    _signup_and_login(client)

    res = client.post("/api/validate-token")

    assert res.status_code == 200
    assert res.json() == {"firstname": "Ann", "email": "ann@example.com"}


def test_logout_clears_cookie(client: TestClient):
    _signup_and_login(client)

    res = client.post("/api/logout")

    assert res.status_code == 200
    assert res.json() == {"success": True, "message": "Logged out successfully"}
    cookie = res.headers["set-cookie"]
    assert cookie.startswith("token=")
    assert "Max-Age=0" in cookie
    assert client.get("/api/profile").status_code == 401


def test_request_id_header_is_echoed(client: TestClient):
    res = client.get("/", headers={"X-Request-ID": "req-123"})

    assert res.headers["X-Request-ID"] == "req-123"


def test_metrics_count_requests_and_auth_outcomes(client: TestClient):
    client.post("/api/signup", json=ANN)
    client.post("/api/login", json={"email": "ann@example.com", "password": "wrong"})

    res = client.get("/metrics")

    assert res.status_code == 200
    body = res.text
    assert 'calldash_requests_total{method="POST"' in body
    assert (
        'calldash_auth_outcomes_total{operation="login",outcome="INVALID_CREDENTIALS"}' in body
    )


def test_unhandled_error_is_logged_counted_and_cors_wrapped(container: AppContainer):
    app = create_app(container)

    @app.get("/api/boom")
    async def boom():
        raise RuntimeError("kaboom")

    with TestClient(app) as client:
        res = client.get(
            "/api/boom",
            headers={"Origin": "http://localhost:5173", "X-Request-ID": "req-500"},
        )
        metrics = client.get("/metrics").text

    assert res.status_code == 500
    assert res.json() == {"error": "Internal server error"}
    assert res.headers["X-Request-ID"] == "req-500"
    assert res.headers["access-control-allow-origin"] == "http://localhost:5173"
    assert 'status="500"' in metrics


def test_session_checks_do_not_open_a_store_session(container: AppContainer):
    app = create_app(container)

    with TestClient(app) as client:
        _signup_and_login(client)

        async def no_store():
            raise AssertionError("credential store opened for a token check")
            yield  # pragma: no cover

        app.dependency_overrides[container.get_auth_service] = no_store

        assert client.post("/api/validate-token").status_code == 200
        assert client.get("/api/data").status_code == 200
