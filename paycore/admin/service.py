"""
Vérification des identifiants Paysafe depuis l'écran d'administration.
Les identifiants saisis (non encore enregistrés) remplacent ceux de la configuration.
"""
from typing import Any, Dict, Mapping, Optional
import logging

from paycore.config import Settings, api_base_url_for, get_settings
from paycore.errors import ValidationError
from paycore.gateway.client import PaysafeClient
from paycore.guard.service import PRIVILEGED_CAPABILITY, RequestContext, verify_request
from paycore.infra.cache import TTLCache

logger = logging.getLogger(__name__)

VALIDATE_CREDENTIALS_ACTION = "paysafe_validate_credentials"


def _override_client(payload: Mapping[str, Any], settings: Settings) -> Optional[PaysafeClient]:
    username = str(payload.get("api_username") or "").strip()
    password = str(payload.get("api_password") or "").strip()
    if not username and not password:
        return None
    if not username or not password:
        raise ValidationError("missing_credentials", "API username and password are both required.")
    environment = str(payload.get("environment") or settings.environment).strip().lower()
    if environment not in ("sandbox", "live"):
        raise ValidationError("invalid_environment", "Environment must be sandbox or live.")
    base_url = api_base_url_for(environment, username)
    return PaysafeClient(base_url, username, password, timeout=settings.gateway_timeout)


def validate_credentials(
    ctx: RequestContext,
    payload: Mapping[str, Any],
    *,
    cache: TTLCache,
    client: PaysafeClient,
    settings: Optional[Settings] = None,
) -> Dict[str, Any]:
    """
    Teste la connexion à l'API (GET /cardpayments/monitor).
    - Garde: nonce paysafe_validate_credentials + capacité manage_options + origine admin
    - Sortie: { success, message }; un échec de connexion n'est pas une erreur HTTP
    """
    settings = settings or get_settings()
    verify_request(ctx, VALIDATE_CREDENTIALS_ACTION, PRIVILEGED_CAPABILITY, cache=cache, settings=settings)

    override = _override_client(payload, settings)
    try:
        check = (override or client).test_connection()
    finally:
        if override is not None:
            override.close()
    logger.info("admin.service.validate_credentials success=%s user_id=%s", check.success, ctx.user_id)
    return {"success": check.success, "message": check.message}
