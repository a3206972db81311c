# module paycore.guard.nonce
import secrets
from typing import Any, Mapping, Optional

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

NONCE_FIELDS = ("paysafe_nonce", "nonce", "_wpnonce")
NONCE_HEADER_NAME = "X-Paysafe-Nonce"


def _serializer(secret: str, action: str) -> URLSafeTimedSerializer:
    # Le sel lie le jeton à l'action: un nonce émis pour une action n'en valide aucune autre
    return URLSafeTimedSerializer(secret, salt=f"paycore.nonce.{action}")


def issue_nonce(action: str, secret: str) -> str:
    """
    Émet un jeton anti-rejeu signé pour `action`.
    Le contenu aléatoire garantit deux jetons distincts pour la même action.
    """
    return _serializer(secret, action).dumps(secrets.token_urlsafe(12))


def nonce_is_valid(token: str, action: str, secret: str, max_age: int) -> bool:
    """Vérifie signature, action et âge maximal (ne consulte pas la liste noire)."""
    try:
        _serializer(secret, action).loads(token, max_age=max_age)
        return True
    except SignatureExpired:
        return False
    except BadSignature:
        return False


def extract_nonce(fields: Optional[Mapping[str, Any]], headers: Mapping[str, str]) -> Optional[str]:
    """
    Cherche le nonce dans le corps (paysafe_nonce, nonce, _wpnonce) puis dans l'en-tête X-Paysafe-Nonce.
    """
    for name in NONCE_FIELDS:
        value = (fields or {}).get(name)
        if value:
            return str(value)
    return headers.get(NONCE_HEADER_NAME) or None
