import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from paycore.errors import PaycoreError
from paycore.gateway.client import PaysafeClient, get_gateway
from paycore.guard.service import build_context, get_cache
from paycore.infra.cache import TTLCache
from paycore.payments import service as payments_service
from paycore.utils.security import get_optional_user
from paycore.vault.service import VaultService, get_vault_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/payments", tags=["Payments API"])

# module paycore.payments.views
@router.post("/token")
def create_token(
    request: Request,
    payload: Dict[str, Any] = Body(...),
    user: Optional[Dict[str, Any]] = Depends(get_optional_user),
    cache: TTLCache = Depends(get_cache),
    client: PaysafeClient = Depends(get_gateway),
):
    """
    Tokenise les champs carte saisis dans le formulaire de paiement.
    - Entrée JSON: { "paysafe_nonce", "card_number", "card_exp_month", "card_exp_year", "card_cvv", "card_holder_name"? }
    - Sécurité: nonce à usage unique (action paysafe_tokenize) + rate limit des visiteurs
    - Sortie: { success, token, last4, brand } (jamais le numéro complet)
    - Erreurs: 400 champs manquants/invalides, 402 refus processeur, 403/429 contrôles de sécurité
    """
    ctx = build_context(request, user, payload)
    try:
        return JSONResponse(payments_service.create_token(ctx, payload, cache=cache, client=client))
    except PaycoreError:
        raise
    except Exception:
        logger.exception("payments.views.create_token failed")
        raise HTTPException(status_code=500, detail="Payment processing error")


@router.post("/process")
def process_payment(
    request: Request,
    payload: Dict[str, Any] = Body(...),
    user: Optional[Dict[str, Any]] = Depends(get_optional_user),
    cache: TTLCache = Depends(get_cache),
    client: PaysafeClient = Depends(get_gateway),
    vault: VaultService = Depends(get_vault_service),
):
    """
    Autorise un paiement par carte.
    - Entrée JSON: nonce, amount (unités majeures), currency, billing_*, card_* ou payment_token, save_card
    - Étapes: garde -> tokenisation (si besoin) -> autorisation avec un repli -> enregistrement de carte (optionnel)
    - Sortie: { success, message, transaction_id, auth_code }
    - Un échec d'enregistrement de carte n'affecte jamais la réponse de paiement
    """
    ctx = build_context(request, user, payload)
    try:
        return JSONResponse(
            payments_service.process_payment(ctx, payload, cache=cache, client=client, vault=vault)
        )
    except PaycoreError:
        raise
    except Exception:
        logger.exception("payments.views.process_payment failed")
        raise HTTPException(status_code=500, detail="Payment processing error")
