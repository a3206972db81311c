# paycore.config
from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional
import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator

from paycore.errors import ConfigurationError

# Calculer le chemin du projet puis charger .env de manière explicite
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=False)

"""
Configuration centrale de paycore.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env)
- Construit un unique objet Settings typé, validé une seule fois (get_settings)
- Les comptes marchands sont indexés par devise; aucune devise n'a de compte par défaut
"""

SANDBOX_URL = "https://api.test.paysafe.com"
LIVE_URL = "https://api.paysafe.com"
MERRCO_SANDBOX_URL = "https://api.test.netbanx.com"
MERRCO_LIVE_URL = "https://api.netbanx.com"

def api_base_url_for(environment: str, api_username: str) -> str:
    # Les comptes Merrco (identifiants pmle-) passent par les hôtes Netbanx
    if api_username.startswith("pmle-"):
        return MERRCO_LIVE_URL if environment == "live" else MERRCO_SANDBOX_URL
    return LIVE_URL if environment == "live" else SANDBOX_URL

ERROR_MESSAGE_KEYS = (
    "avs",
    "cvv",
    "insufficient_funds",
    "declined",
    "expired",
    "invalid_card",
    "risk_decline",
    "risk_max_attempts",
    "risk_suspicious",
    "risk_geographic",
    "risk_velocity",
    "risk_device",
    "risk_ip",
    "risk_email",
    "risk_phone",
)


def _clean_env(v: Optional[str]) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces et guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")


def _env_flag(name: str, default: str = "false") -> bool:
    return _clean_env(os.getenv(name, default)).lower() in ("1", "true", "yes")


def _parse_accounts(raw: str) -> Dict[str, str]:
    """PAYSAFE_ACCOUNTS="CAD:1001,USD:1002" -> {"CAD": "1001", "USD": "1002"}"""
    accounts: Dict[str, str] = {}
    for chunk in raw.split(","):
        if ":" not in chunk:
            continue
        currency, account_id = chunk.split(":", 1)
        currency, account_id = _clean_env(currency).upper(), _clean_env(account_id)
        if currency and account_id:
            accounts[currency] = account_id
    return accounts


class Settings(BaseModel):
    """Paramètres typés de l'application (une instance par processus)."""

    model_config = {"frozen": True}

    environment: str = "sandbox"
    api_username: str = ""
    api_password: str = ""
    token_username: str = ""
    token_password: str = ""
    accounts: Dict[str, str] = Field(default_factory=dict)
    settle_with_auth: bool = True
    gateway_timeout: float = 30.0

    nonce_secret: str = "replace_me_with_a_long_random_secret"
    nonce_max_age: int = 3600
    rate_limit_max: int = 5
    rate_limit_window: int = 60
    rate_limit_bypass_capability: str = "purchase"
    trust_proxy: bool = False
    admin_origin: str = "http://localhost:8000/admin"

    cache_redis_url: str = "redis://127.0.0.1:6379/0"

    supabase_url: str = ""
    supabase_anon: str = ""
    supabase_service_key: str = ""

    vault_prefix: str = "user_"
    error_messages: Dict[str, str] = Field(default_factory=dict)

    cors_origins: list = Field(default_factory=lambda: ["*"])
    allowed_hosts: list = Field(default_factory=lambda: ["localhost", "127.0.0.1", "testserver"])
    cookie_secure: bool = False

    @field_validator("environment")
    def _environment(cls, v: str) -> str:
        v = (v or "").lower()
        if v not in ("sandbox", "live"):
            raise ValueError("environment must be 'sandbox' or 'live'")
        return v

    @field_validator("accounts")
    def _accounts(cls, v: Dict[str, str]) -> Dict[str, str]:
        return {k.strip().upper(): str(a).strip() for k, a in (v or {}).items() if str(a).strip()}

    @field_validator("rate_limit_max", "rate_limit_window", "nonce_max_age")
    def _positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be strictly positive")
        return v

    @field_validator("admin_origin")
    def _admin_origin(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("admin_origin must be an absolute http(s) URL")
        return v

    @field_validator("supabase_url")
    def _supabase_url(cls, v: str) -> str:
        # SUPABASE_URL peut parfois être sans schéma: on préfixe en https:// si nécessaire
        if v and not v.startswith("http"):
            v = "https://" + v
        return v.rstrip("/")

    @property
    def api_base_url(self) -> str:
        return api_base_url_for(self.environment, self.api_username)

    @property
    def blacklist_ttl(self) -> int:
        return max(3600, self.nonce_max_age)


def load_settings() -> Settings:
    """
    Lit l'environnement et construit Settings.
    - Les variables PAYSAFE_ACCOUNT_ID_<DEVISE> complètent PAYSAFE_ACCOUNTS
    - ERROR_MESSAGE_<CLE> alimente les messages personnalisés du normaliseur d'erreurs
    - Lève ConfigurationError si une valeur est invalide
    """
    accounts = _parse_accounts(_clean_env(os.getenv("PAYSAFE_ACCOUNTS")))
    for key, value in os.environ.items():
        if key.startswith("PAYSAFE_ACCOUNT_ID_") and _clean_env(value):
            accounts[key[len("PAYSAFE_ACCOUNT_ID_"):].upper()] = _clean_env(value)

    error_messages = {}
    for name in ERROR_MESSAGE_KEYS:
        value = _clean_env(os.getenv(f"ERROR_MESSAGE_{name.upper()}"))
        if value:
            error_messages[name] = value

    raw = {
        "environment": _clean_env(os.getenv("PAYSAFE_ENVIRONMENT") or "sandbox"),
        "api_username": _clean_env(os.getenv("PAYSAFE_API_USERNAME")),
        "api_password": _clean_env(os.getenv("PAYSAFE_API_PASSWORD")),
        "token_username": _clean_env(os.getenv("PAYSAFE_TOKEN_USERNAME")),
        "token_password": _clean_env(os.getenv("PAYSAFE_TOKEN_PASSWORD")),
        "accounts": accounts,
        "settle_with_auth": _env_flag("PAYSAFE_SETTLE_WITH_AUTH", "true"),
        "gateway_timeout": _clean_env(os.getenv("GATEWAY_TIMEOUT") or "30"),
        "nonce_secret": _clean_env(os.getenv("NONCE_SECRET") or os.getenv("SESSION_SECRET_KEY") or "replace_me_with_a_long_random_secret"),
        "nonce_max_age": _clean_env(os.getenv("NONCE_MAX_AGE") or "3600"),
        "rate_limit_max": _clean_env(os.getenv("RATE_LIMIT_MAX") or "5"),
        "rate_limit_window": _clean_env(os.getenv("RATE_LIMIT_WINDOW") or "60"),
        "trust_proxy": _env_flag("TRUST_PROXY"),
        "admin_origin": _clean_env(os.getenv("ADMIN_ORIGIN") or "http://localhost:8000/admin"),
        "cache_redis_url": _clean_env(os.getenv("CACHE_REDIS_URL") or "redis://127.0.0.1:6379/0"),
        "supabase_url": _clean_env(os.getenv("SUPABASE_URL") or os.getenv("NEXT_PUBLIC_SUPABASE_URL")),
        "supabase_anon": _clean_env(os.getenv("SUPABASE_ANON_KEY") or os.getenv("SUPABASE_KEY")),
        "supabase_service_key": _clean_env(os.getenv("SUPABASE_SERVICE_KEY")),
        "vault_prefix": _clean_env(os.getenv("VAULT_PREFIX") or "user_"),
        "error_messages": error_messages,
        "cors_origins": [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()],
        "allowed_hosts": [h.strip() for h in os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",") if h.strip()],
        "cookie_secure": _env_flag("COOKIE_SECURE"),
    }
    try:
        return Settings(**raw)
    except PydanticValidationError as e:
        raise ConfigurationError("invalid_settings", str(e)) from e


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
