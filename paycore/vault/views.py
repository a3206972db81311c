import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request

from paycore.guard.service import build_context, get_cache, verify_request
from paycore.infra.cache import TTLCache
from paycore.utils.security import require_user
from paycore.vault.service import DELETE_CARD_ACTION, VaultService, get_vault_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/vault", tags=["Vault API"])


@router.get("/cards")
def list_cards(user: Dict[str, Any] = Depends(require_user), vault: VaultService = Depends(get_vault_service)):
    """Cartes enregistrées de l'utilisateur (marque, last4, expiration, carte par défaut), sans jeton."""
    return {"cards": [card.public_dict() for card in vault.list_cards(user["id"])]}

@router.delete("/cards/{card_id}")
def delete_card(
    card_id: str,
    request: Request,
    user: Dict[str, Any] = Depends(require_user),
    cache: TTLCache = Depends(get_cache),
    vault: VaultService = Depends(get_vault_service),
):
    """
    Supprime une carte enregistrée.
    - Sécurité: utilisateur connecté + nonce (en-tête X-Paysafe-Nonce, action paysafe_delete_card)
    - La carte distante est supprimée au mieux; la suppression locale a toujours lieu
    - 404 si la carte n'appartient pas à l'utilisateur
    """
    ctx = build_context(request, user)
    verify_request(ctx, DELETE_CARD_ACTION, "purchase", cache=cache)
    vault.delete_card(user["id"], card_id)
    logger.info("vault.views.delete_card ok user_id=%s card_id=%s", user["id"], card_id)
    return {"success": True}
