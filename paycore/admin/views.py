from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import JSONResponse

from paycore.admin import service as admin_service
from paycore.gateway.client import PaysafeClient, get_gateway
from paycore.guard.service import build_context, get_cache
from paycore.infra.cache import TTLCache
from paycore.utils.security import require_admin

router = APIRouter(prefix="/api/v1/admin", tags=["Admin"])

# module paycore.admin.views
@router.post("/credentials/validate")
def validate_credentials(
    request: Request,
    payload: Optional[Dict[str, Any]] = Body(None),
    user: Dict[str, Any] = Depends(require_admin),
    cache: TTLCache = Depends(get_cache),
    client: PaysafeClient = Depends(get_gateway),
):
    """
    Teste les identifiants API Paysafe.
    - Entrée JSON: { "paysafe_nonce", "api_username"?, "api_password"?, "environment"? }
    - Sans identifiants saisis: teste ceux de la configuration
    - Sécurité: require_admin + nonce + Referer de l'écran d'administration
    """
    payload = payload or {}
    ctx = build_context(request, user, payload)
    return JSONResponse(admin_service.validate_credentials(ctx, payload, cache=cache, client=client))
