"""
Garde des requêtes de paiement: rate limit, nonce à usage unique, capacités, origine.

verify_request travaille sur un RequestContext déjà construit (aucune session globale):
les vues construisent le contexte via build_context puis appellent verify_request.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Mapping, Optional
import hashlib
import logging
from urllib.parse import urlsplit

from fastapi import Request

from paycore.config import Settings, get_settings
from paycore.errors import ConfigurationError, SecurityError
from paycore.guard.client_ip import resolve_client_ip
from paycore.guard.nonce import extract_nonce, nonce_is_valid
from paycore.guard.rate_limit import check_rate_limit
from paycore.infra.cache import TTLCache
from paycore.utils.security import capabilities_for

logger = logging.getLogger(__name__)

PRIVILEGED_CAPABILITY = "manage_options"

SECURITY_MESSAGES = {
    "rate_limit_exceeded": "Too many requests. Please wait a moment and try again.",
    "missing_nonce": "Security token is missing.",
    "nonce_already_used": "This form has already been submitted. Please refresh the page.",
    "invalid_nonce": "Security check failed. Please refresh the page and try again.",
    "insufficient_permissions": "You do not have permission to perform this action.",
    "invalid_referer": "Invalid request source.",
}


@dataclass(frozen=True)
class RequestContext:
    client_ip: str
    nonce: Optional[str] = None
    referer: str = ""
    user: Optional[Dict[str, Any]] = None
    capabilities: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def user_id(self) -> Optional[str]:
        return (self.user or {}).get("id")


def _deny(code: str) -> SecurityError:
    return SecurityError(code, SECURITY_MESSAGES[code])


def referer_is_admin(referer: str, admin_origin: str) -> bool:
    """Vrai si `referer` a le même schéma et le même hôte que `admin_origin` et un chemin sous le sien."""
    if not referer:
        return False
    ref, admin = urlsplit(referer), urlsplit(admin_origin)
    if ref.scheme.lower() != admin.scheme.lower() or ref.netloc.lower() != admin.netloc.lower():
        return False
    base = admin.path.rstrip("/")
    path = ref.path or "/"
    return not base or path == base or path.startswith(base + "/")


def _blacklist_key(nonce: str) -> str:
    return "nonce:used:" + hashlib.sha256(nonce.encode("utf-8")).hexdigest()


def get_cache(request: Request) -> TTLCache:
    cache = getattr(request.app.state, "cache", None)
    if cache is None:
        raise ConfigurationError("cache_unavailable", "Security store is unavailable.")
    return cache


def build_context(
    request: Request,
    user: Optional[Dict[str, Any]],
    fields: Optional[Mapping[str, Any]] = None,
    settings: Optional[Settings] = None,
) -> RequestContext:
    settings = settings or get_settings()
    peer = request.client.host if request.client else None
    return RequestContext(
        client_ip=resolve_client_ip(peer, request.headers, settings.trust_proxy),
        nonce=extract_nonce(fields, request.headers),
        referer=request.headers.get("referer", ""),
        user=user,
        capabilities=capabilities_for(user),
    )


def verify_request(
    ctx: RequestContext,
    required_action: str,
    required_capability: Optional[str] = None,
    *,
    cache: TTLCache,
    settings: Optional[Settings] = None,
) -> None:
    """
    Vérifie une requête entrante, dans l'ordre:
      1) rate limit (sauf si l'appelant a la capacité de contournement)
      2) nonce présent, non consommé, valide pour required_action
      3) capacité requise
      4) origine d'administration pour l'action privilégiée
    Le nonce est placé en liste noire dès qu'il est reconnu valide.
    Lève SecurityError(code) au premier contrôle en échec.
    """
    settings = settings or get_settings()

    if settings.rate_limit_bypass_capability not in ctx.capabilities:
        try:
            check_rate_limit(cache, ctx.client_ip, settings.rate_limit_max, settings.rate_limit_window)
        except SecurityError:
            logger.warning("guard.verify_request rate limited action=%s", required_action)
            raise _deny("rate_limit_exceeded") from None

    if not ctx.nonce:
        raise _deny("missing_nonce")

    key = _blacklist_key(ctx.nonce)
    if cache.exists(key):
        logger.warning("guard.verify_request replayed nonce action=%s", required_action)
        raise _deny("nonce_already_used")

    if not nonce_is_valid(ctx.nonce, required_action, settings.nonce_secret, settings.nonce_max_age):
        raise _deny("invalid_nonce")

    # Consommation atomique: une seule requête concurrente peut poser la clé
    if not cache.add(key, "1", settings.blacklist_ttl):
        raise _deny("nonce_already_used")

    if required_capability and required_capability not in ctx.capabilities:
        raise _deny("insufficient_permissions")

    if required_capability == PRIVILEGED_CAPABILITY:
        if not referer_is_admin(ctx.referer, settings.admin_origin):
            raise _deny("invalid_referer")

