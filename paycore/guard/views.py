from fastapi import APIRouter, HTTPException, Query

from paycore.admin.service import VALIDATE_CREDENTIALS_ACTION
from paycore.config import get_settings
from paycore.guard.nonce import issue_nonce
from paycore.payments.service import PROCESS_ACTION, TOKENIZE_ACTION
from paycore.vault.service import DELETE_CARD_ACTION

router = APIRouter(prefix="/api/v1/security", tags=["Security"])

KNOWN_ACTIONS = {PROCESS_ACTION, TOKENIZE_ACTION, DELETE_CARD_ACTION, VALIDATE_CREDENTIALS_ACTION}

@router.get("/nonce")
def get_nonce(action: str = Query(...)):
    """Émet un nonce à usage unique pour une action connue (rendu du formulaire)."""
    if action not in KNOWN_ACTIONS:
        raise HTTPException(status_code=400, detail="Unknown action")
    return {"action": action, "nonce": issue_nonce(action, get_settings().nonce_secret)}
