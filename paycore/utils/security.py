from typing import Any, Dict, FrozenSet, Optional
import logging

from fastapi import Depends, HTTPException, Request

import paycore.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

COOKIE_NAME = "sb_access"

# Capacités accordées par rôle: "purchase" dispense du rate limit, "manage_options" = administration
ROLE_CAPABILITIES: Dict[str, FrozenSet[str]] = {
    "user": frozenset({"purchase"}),
    "admin": frozenset({"purchase", "manage_options"}),
}

def determine_role(metadata: Dict[str, Any] | None) -> str:
    if str((metadata or {}).get("role", "")).lower() == "admin":
        return "admin"
    return "user"

def capabilities_for(user: Optional[Dict[str, Any]]) -> FrozenSet[str]:
    if not user:
        return frozenset()
    return ROLE_CAPABILITIES.get(str(user.get("role") or "user"), frozenset())

def get_user_from_token(access_token: str) -> Dict[str, Any]:
    """Normalise l'utilisateur issu de supabase.auth.get_user(access_token):
    - Retourne {id, email, role, first_name, last_name, phone, token}
    - Le rôle est lu dans user_metadata.role
    """
    res = supabase_client.get_supabase().auth.get_user(access_token)
    user = getattr(res, "user", None) or {}
    if not isinstance(user, dict):
        user = {
            "id": getattr(user, "id", None),
            "email": getattr(user, "email", None),
            "phone": getattr(user, "phone", None),
            "user_metadata": getattr(user, "user_metadata", None),
        }
    metadata = user.get("user_metadata") or {}
    return {
        "id": user.get("id"),
        "email": user.get("email"),
        "role": determine_role(metadata),
        "first_name": metadata.get("first_name") or "",
        "last_name": metadata.get("last_name") or "",
        "phone": user.get("phone") or metadata.get("phone") or "",
        "token": access_token,
    }

def _token_from_request(request: Request) -> Optional[str]:
    # Hybride: priorité au Bearer, fallback cookie
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header[7:].strip()
        if token:
            return token
    return request.cookies.get(COOKIE_NAME)

def get_optional_user(request: Request) -> Optional[Dict[str, Any]]:
    """
    Utilisateur connecté ou None (visiteur).
    Un jeton invalide/expiré est traité comme un visiteur: le paiement invité reste possible.
    """
    token = _token_from_request(request)
    if not token:
        return None
    try:
        user = get_user_from_token(token)
    except Exception:
        logger.warning("security.get_optional_user: invalid session token, continuing as guest")
        return None
    return user if user.get("id") else None

def get_current_user(user: Optional[Dict[str, Any]] = Depends(get_optional_user)) -> Dict[str, Any]:
    if not user:
        raise HTTPException(status_code=401, detail="Non authentifié")
    return user

def require_user(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    return user

def require_admin(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    if "manage_options" not in capabilities_for(user):
        raise HTTPException(status_code=403, detail="Accès interdit")
    return user
