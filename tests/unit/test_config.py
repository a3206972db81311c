import pytest

from paycore.config import LIVE_URL, MERRCO_SANDBOX_URL, SANDBOX_URL, Settings, _clean_env, load_settings
from paycore.errors import ConfigurationError


def test_accounts_from_list_and_per_currency_variables(monkeypatch):
    monkeypatch.setenv("PAYSAFE_ACCOUNTS", "cad:1001, usd : 1002,broken")
    monkeypatch.setenv("PAYSAFE_ACCOUNT_ID_EUR", "'1003'")
    settings = load_settings()
    assert settings.accounts == {"CAD": "1001", "USD": "1002", "EUR": "1003"}

def test_error_messages_loaded_from_environment(monkeypatch):
    monkeypatch.setenv("ERROR_MESSAGE_AVS", "Please check your address.")
    monkeypatch.setenv("ERROR_MESSAGE_UNKNOWN_KEY", "ignored")
    settings = load_settings()
    assert settings.error_messages["avs"] == "Please check your address."
    assert "unknown_key" not in settings.error_messages

@pytest.mark.parametrize("name, value", [("PAYSAFE_ENVIRONMENT", "production"), ("RATE_LIMIT_MAX", "0"), ("ADMIN_ORIGIN", "not-a-url")])
def test_invalid_values_raise_configuration_error(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(ConfigurationError) as e:
        load_settings()
    assert e.value.code == "invalid_settings"

def test_base_url_by_environment_and_account_type():
    assert Settings(environment="sandbox").api_base_url == SANDBOX_URL
    assert Settings(environment="LIVE").api_base_url == LIVE_URL
    assert Settings(environment="sandbox", api_username="pmle-12345").api_base_url == MERRCO_SANDBOX_URL

def test_blacklist_outlives_nonce_lifetime():
    assert Settings(nonce_max_age=600).blacklist_ttl == 3600
    assert Settings(nonce_max_age=7200).blacklist_ttl == 7200

def test_admin_origin_and_supabase_url_normalized():
    settings = Settings(admin_origin="https://shop.example/wp-admin/", supabase_url="abc.supabase.co/")
    assert settings.admin_origin == "https://shop.example/wp-admin/"
    assert settings.supabase_url == "https://abc.supabase.co"

def test_clean_env_strips_quotes():
    assert _clean_env(' "value" ') == "value"
    assert _clean_env("`x`") == "x"
    assert _clean_env(None) == ""
