"""
Masquage des données sensibles avant écriture dans les logs.
"""
from typing import Any

REDACTED = "[REDACTED]"

SENSITIVE_KEYS = {
    "cardnum",
    "cvv",
    "card",
    "password",
    "paymenttoken",
    "singleusetoken",
    "api_key",
    "apikey",
    "api_password",
    "authorization",
    "authcode",
    "merchantcustomerid",
    "profileid",
    "holdername",
    "email",
    "phone",
    "street",
    "zip",
}


def redact(data: Any) -> Any:
    """Copie récursive de `data` où les valeurs des clés sensibles sont remplacées."""
    if isinstance(data, dict):
        return {
            k: (REDACTED if str(k).lower() in SENSITIVE_KEYS else redact(v))
            for k, v in data.items()
        }
    if isinstance(data, list):
        return [redact(v) for v in data]
    return data


def mask_token(value: str) -> str:
    if not value:
        return ""
    return "****" + value[-4:] if len(value) > 8 else "****"
