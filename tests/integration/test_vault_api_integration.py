ROWS = [
    {"user_id": "u-7", "profile_id": "p-7", "card_id": "card-a", "payment_token": "PT_secret_a", "brand": "VI", "last4": "1111", "expiry_month": 12, "expiry_year": 2030, "is_default": True},
    {"user_id": "u-7", "profile_id": "p-7", "card_id": "card-b", "payment_token": "PT_secret_b", "brand": "MC", "last4": "4444", "is_default": False},
]


def _nonce(client):
    return client.get("/api/v1/security/nonce", params={"action": "paysafe_delete_card"}).json()["nonce"]

def _patch_repo(monkeypatch, deleted):
    monkeypatch.setattr("paycore.vault.repository.list_cards", lambda user_id: [r for r in ROWS if r["user_id"] == user_id])
    monkeypatch.setattr(
        "paycore.vault.repository.get_card",
        lambda user_id, card_id: next((r for r in ROWS if r["user_id"] == user_id and r["card_id"] == card_id), None),
    )
    monkeypatch.setattr("paycore.vault.repository.delete_card", lambda user_id, card_id: deleted.append(card_id) or True)


def test_cards_require_login(client):
    assert client.get("/api/v1/vault/cards").status_code == 401

def test_list_cards_without_tokens(client, login, monkeypatch):
    login("user", "u-7")
    _patch_repo(monkeypatch, [])
    res = client.get("/api/v1/vault/cards")
    assert res.status_code == 200
    cards = res.json()["cards"]
    assert [c["card_id"] for c in cards] == ["card-a", "card-b"]
    assert cards[0]["is_default"] is True
    assert "PT_secret" not in res.text
    assert res.headers["Cache-Control"].startswith("no-store")

def test_delete_card(client, login, monkeypatch, paysafe):
    login("user", "u-7")
    deleted = []
    _patch_repo(monkeypatch, deleted)
    paysafe.on("DELETE", "/customervault/v1/profiles/p-7/cards/card-a", (200, None))

    res = client.delete("/api/v1/vault/cards/card-a", headers={"X-Paysafe-Nonce": _nonce(client)})

    assert res.status_code == 200
    assert res.json() == {"success": True}
    assert deleted == ["card-a"]
    assert len(paysafe.calls_to("DELETE", "/customervault/v1/profiles/p-7/cards/card-a")) == 1

def test_delete_card_of_another_user_is_not_found(client, login, monkeypatch, paysafe):
    login("user", "u-8")
    deleted = []
    _patch_repo(monkeypatch, deleted)
    res = client.delete("/api/v1/vault/cards/card-a", headers={"X-Paysafe-Nonce": _nonce(client)})
    assert res.status_code == 404
    assert res.json()["code"] == "card_not_found"
    assert deleted == []
    assert paysafe.calls == []

def test_delete_card_requires_nonce(client, login, monkeypatch):
    login("user", "u-7")
    deleted = []
    _patch_repo(monkeypatch, deleted)
    res = client.delete("/api/v1/vault/cards/card-a")
    assert res.status_code == 403
    assert res.json()["code"] == "missing_nonce"
    assert deleted == []
