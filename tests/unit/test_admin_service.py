import pytest

from paycore.admin import service as admin_service
from paycore.config import MERRCO_LIVE_URL, Settings
from paycore.errors import ValidationError
from paycore.gateway.client import ConnectionCheck
from paycore.guard.nonce import issue_nonce
from paycore.guard.service import RequestContext
from paycore.infra.cache import MemoryTTLCache
from paycore.utils.security import capabilities_for

SETTINGS = Settings(nonce_secret="admin-secret", admin_origin="https://shop.example/admin")
ADMIN = {"id": "a1", "role": "admin"}


class FakeClient:
    instances = []

    def __init__(self, base_url, api_username, api_password, timeout=30.0):
        self.base_url = base_url
        self.credentials = (api_username, api_password)
        self.closed = False
        FakeClient.instances.append(self)

    def test_connection(self):
        return ConnectionCheck(True, f"ok {self.base_url}")

    def close(self):
        self.closed = True


def _ctx():
    return RequestContext(
        client_ip="8.8.8.8",
        nonce=issue_nonce(admin_service.VALIDATE_CREDENTIALS_ACTION, SETTINGS.nonce_secret),
        referer="https://shop.example/admin/paysafe",
        user=ADMIN,
        capabilities=capabilities_for(ADMIN),
    )


def test_entered_credentials_are_tested_then_closed(monkeypatch):
    FakeClient.instances = []
    monkeypatch.setattr("paycore.admin.service.PaysafeClient", FakeClient)
    configured = FakeClient("https://configured", "cfg", "cfg")

    data = admin_service.validate_credentials(
        _ctx(),
        {"api_username": "pmle-9", "api_password": "pw", "environment": "live"},
        cache=MemoryTTLCache(),
        client=configured,
        settings=SETTINGS,
    )

    override = FakeClient.instances[-1]
    assert data == {"success": True, "message": f"ok {MERRCO_LIVE_URL}"}
    assert override.credentials == ("pmle-9", "pw")
    assert override.closed is True
    assert configured.closed is False

def test_configured_credentials_used_by_default():
    configured = FakeClient("https://configured", "cfg", "cfg")
    data = admin_service.validate_credentials(_ctx(), {}, cache=MemoryTTLCache(), client=configured, settings=SETTINGS)
    assert data == {"success": True, "message": "ok https://configured"}

@pytest.mark.parametrize(
    "payload, code",
    [({"api_username": "only-user"}, "missing_credentials"), ({"api_username": "u", "api_password": "p", "environment": "prod"}, "invalid_environment")],
)
def test_invalid_entered_credentials(payload, code):
    with pytest.raises(ValidationError) as e:
        admin_service.validate_credentials(_ctx(), payload, cache=MemoryTTLCache(), client=FakeClient("x", "u", "p"), settings=SETTINGS)
    assert e.value.code == code
