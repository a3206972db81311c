from paycore.config import get_settings
from paycore.guard.nonce import nonce_is_valid

ADMIN_REFERER = "http://testserver/admin/settings"


def _admin_nonce(client):
    return client.get("/api/v1/security/nonce", params={"action": "paysafe_validate_credentials"}).json()["nonce"]


def test_nonce_endpoint_issues_action_bound_nonce(client):
    res = client.get("/api/v1/security/nonce", params={"action": "paysafe_tokenize"})
    assert res.status_code == 200
    body = res.json()
    assert body["action"] == "paysafe_tokenize"
    settings = get_settings()
    assert nonce_is_valid(body["nonce"], "paysafe_tokenize", settings.nonce_secret, settings.nonce_max_age)
    assert res.headers["Cache-Control"].startswith("no-store")

def test_nonce_endpoint_rejects_unknown_action(client):
    res = client.get("/api/v1/security/nonce", params={"action": "anything"})
    assert res.status_code == 400
    assert res.json() == {"detail": "Unknown action"}

def test_admin_validates_credentials(client, login, paysafe):
    login("admin", "admin-1")
    paysafe.on("GET", "/cardpayments/monitor", (200, {"status": "READY"}))
    res = client.post(
        "/api/v1/admin/credentials/validate",
        json={"paysafe_nonce": _admin_nonce(client)},
        headers={"Referer": ADMIN_REFERER},
    )
    assert res.status_code == 200
    assert res.json() == {"success": True, "message": "Connection successful. API Status: READY"}

def test_admin_connection_failure_is_reported(client, login, paysafe):
    login("admin", "admin-1")
    paysafe.on("GET", "/cardpayments/monitor", (401, {}))
    res = client.post(
        "/api/v1/admin/credentials/validate",
        json={"paysafe_nonce": _admin_nonce(client)},
        headers={"Referer": ADMIN_REFERER},
    )
    assert res.status_code == 200
    assert res.json()["success"] is False

def test_admin_requires_admin_referer(client, login, paysafe):
    login("admin", "admin-1")
    res = client.post(
        "/api/v1/admin/credentials/validate",
        json={"paysafe_nonce": _admin_nonce(client)},
        headers={"Referer": "https://evil.example/admin"},
    )
    assert res.status_code == 403
    assert res.json()["code"] == "invalid_referer"
    assert paysafe.calls == []

def test_admin_endpoint_forbidden_for_users(client, login):
    login("user", "u-1")
    res = client.post("/api/v1/admin/credentials/validate", json={"paysafe_nonce": _admin_nonce(client)})
    assert res.status_code == 403
    assert res.json() == {"detail": "Accès interdit"}

def test_health(client):
    assert client.get("/health").json() == {"ok": True}

def test_health_cache(client):
    res = client.get("/health/cache")
    assert res.status_code == 200
    data = res.json()
    assert data["enabled"] is True
    assert data["backend"] == "redis"

def test_security_headers(client):
    res = client.get("/health")
    assert res.headers["X-Frame-Options"] == "DENY"
    assert res.headers["X-Content-Type-Options"] == "nosniff"
    assert res.headers["Content-Security-Policy"] == "default-src 'self'; frame-ancestors 'none'; object-src 'none'"
