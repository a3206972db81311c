from typing import Optional, Dict, Any
import hashlib

from fastapi import Request

from paycore.errors import SecurityError
from paycore.infra.cache import TTLCache

def rate_limit_key(client_ip: str) -> str:
    # L'IP n'est jamais stockée en clair
    return "rl:" + hashlib.sha256(client_ip.encode("utf-8")).hexdigest()

def check_rate_limit(cache: TTLCache, client_ip: str, max_requests: int, window: int) -> int:
    """
    Fenêtre fixe: la 1re requête crée le compteur (1, TTL=window), les suivantes l'incrémentent.
    Au-delà de max_requests dans la fenêtre: SecurityError("rate_limit_exceeded").
    Retourne le compteur courant.
    """
    count = cache.incr_window(rate_limit_key(client_ip), window)
    if count > max_requests:
        raise SecurityError("rate_limit_exceeded")
    return count

def rate_limit_health_info(request: Request) -> Dict[str, Any]:
    cache: Optional[TTLCache] = getattr(request.app.state, "cache", None)
    info: Dict[str, Any] = {"enabled": cache is not None, "ready": cache is not None, "backend": None}
    if cache is not None:
        info.update(cache.info())
    return info
