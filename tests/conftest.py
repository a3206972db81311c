import os

# Environnement de test posé avant tout import de paycore (get_settings est mis en cache)
os.environ["USE_FAKE_REDIS_FOR_TESTS"] = "1"
os.environ["PAYSAFE_ENVIRONMENT"] = "sandbox"
os.environ["PAYSAFE_API_USERNAME"] = "test-api-user"
os.environ["PAYSAFE_API_PASSWORD"] = "test-api-pass"
os.environ["PAYSAFE_TOKEN_USERNAME"] = "test-token-user"
os.environ["PAYSAFE_TOKEN_PASSWORD"] = "test-token-pass"
os.environ["PAYSAFE_ACCOUNTS"] = "CAD:1001,USD:1002"
os.environ["NONCE_SECRET"] = "test-nonce-secret"
os.environ["ADMIN_ORIGIN"] = "http://testserver/admin"
os.environ["RATE_LIMIT_MAX"] = "5"
os.environ["RATE_LIMIT_WINDOW"] = "60"

import json
from typing import Any, Callable, Dict, Generator, List, Optional, Tuple
from unittest.mock import MagicMock

import httpx
import pytest
from fastapi.testclient import TestClient

from paycore.app_setup.factory import create_app
from paycore.config import get_settings
from paycore.gateway.client import PaysafeClient
from paycore.guard.nonce import issue_nonce
from paycore.utils.security import get_optional_user

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "/tests/unit/" in nodeid or nodeid.startswith("tests/unit/"):
            item.add_marker(pytest.mark.unit)
        elif "/tests/integration/" in nodeid or nodeid.startswith("tests/integration/"):
            item.add_marker(pytest.mark.integration)


class FakePaysafe:
    """
    Faux serveur Paysafe pour httpx.MockTransport.
    - routes: (METHOD, chemin) -> liste de réponses (status, corps) consommées dans l'ordre
      (la dernière est rejouée), ou callable(request) -> (status, corps)
    - calls: requêtes reçues (method, path, json)
    """

    def __init__(self):
        self.routes: Dict[Tuple[str, str], Any] = {}
        self.calls: List[Tuple[str, str, Optional[Dict[str, Any]]]] = []

    def on(self, method: str, path: str, *responses):
        self.routes[(method.upper(), path)] = list(responses)
        return self

    def calls_to(self, method: str, path: str) -> List[Optional[Dict[str, Any]]]:
        return [body for m, p, body in self.calls if m == method.upper() and p == path]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        self.calls.append((request.method, request.url.path, body))
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"error": {"code": "5269", "message": "The ID(s) specified in the URL do not correspond to the values in the system."}})
        if callable(route):
            status, payload = route(request)
        else:
            status, payload = route.pop(0) if len(route) > 1 else route[0]
        if payload is None:
            return httpx.Response(status)
        return httpx.Response(status, json=payload)


@pytest.fixture()
def settings():
    return get_settings()

@pytest.fixture()
def paysafe() -> FakePaysafe:
    return FakePaysafe()

@pytest.fixture()
def gateway(paysafe) -> Generator[PaysafeClient, None, None]:
    client = PaysafeClient(
        "https://api.test.paysafe.com",
        "test-api-user",
        "test-api-pass",
        "test-token-user",
        "test-token-pass",
        transport=httpx.MockTransport(paysafe),
    )
    yield client
    client.close()

@pytest.fixture()
def app():
    return create_app()

@pytest.fixture()
def client(app, gateway) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        # fakeredis partage son serveur entre instances: on repart d'un cache vide
        app.state.cache.client.flushall()
        app.state.gateway.close()
        app.state.gateway = gateway
        yield c

@pytest.fixture()
def nonce(settings) -> Callable[[str], str]:
    return lambda action: issue_nonce(action, settings.nonce_secret)

@pytest.fixture()
def login(app):
    """Connecte un utilisateur fictif (role user ou admin) pour les dépendances d'authentification."""
    def _login(role: str = "user", user_id: str = "test-user") -> Dict[str, Any]:
        user = {
            "id": user_id,
            "email": f"{user_id}@example.com",
            "role": role,
            "first_name": "Test",
            "last_name": "User",
            "phone": "",
            "token": "fake-token",
        }
        app.dependency_overrides[get_optional_user] = lambda: user
        return user
    yield _login
    app.dependency_overrides.clear()

# Aucun test n'atteint Supabase
@pytest.fixture(scope="function", autouse=True)
def mock_db_dependency(monkeypatch):
    monkeypatch.setattr("paycore.infra.supabase_client.get_supabase", lambda: MagicMock())
    monkeypatch.setattr("paycore.infra.supabase_client.get_service_supabase", lambda: MagicMock())
