"""
Accès aux données pour la feature 'vault' (tables payment_profiles et vaulted_cards).
"""
from typing import Any, Dict, List, Optional
import logging

import paycore.infra.supabase_client as supabase_client
from paycore.errors import VaultError

logger = logging.getLogger(__name__)

PROFILES_TABLE = "payment_profiles"
CARDS_TABLE = "vaulted_cards"

# module paycore.vault.repository
def get_profile_id(user_id: str) -> Optional[str]:
    """
    Identifiant de profil Paysafe enregistré pour l'utilisateur, ou None s'il n'y en a pas.
    - Erreur de lecture: VaultError("profile_lookup_failed").
    - En cas de plusieurs lignes, la plus ancienne fait foi.
    """
    try:
        res = (
            supabase_client.get_service_supabase()
            .table(PROFILES_TABLE)
            .select("profile_id")
            .eq("user_id", user_id)
            .order("created_at")
            .limit(1)
            .execute()
        )
        rows = res.data or []
        return rows[0].get("profile_id") if rows else None
    except Exception as e:
        logger.exception("vault.repository.get_profile_id failed user_id=%s", user_id)
        # une erreur de lecture n'est pas une absence de profil
        raise VaultError("profile_lookup_failed", "Payment profile lookup failed.") from e

def record_profile(user_id: str, profile_id: str) -> Optional[str]:
    """
    Enregistre le profil s'il n'y en a pas déjà un (user_id unique), puis relit la valeur stockée.
    Retourne l'identifiant effectivement conservé: celui d'une sauvegarde concurrente l'emporte.
    """
    try:
        (
            supabase_client.get_service_supabase()
            .table(PROFILES_TABLE)
            .upsert({"user_id": user_id, "profile_id": profile_id}, on_conflict="user_id", ignore_duplicates=True)
            .execute()
        )
    except Exception:
        logger.exception("vault.repository.record_profile failed user_id=%s", user_id)
        return None
    return get_profile_id(user_id)

def delete_profile(user_id: str, profile_id: str) -> bool:
    try:
        (
            supabase_client.get_service_supabase()
            .table(PROFILES_TABLE)
            .delete()
            .eq("user_id", user_id)
            .eq("profile_id", profile_id)
            .execute()
        )
        return True
    except Exception:
        logger.exception("vault.repository.delete_profile failed user_id=%s", user_id)
        return False

def list_cards(user_id: str) -> List[Dict[str, Any]]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table(CARDS_TABLE)
            .select("*")
            .eq("user_id", user_id)
            .execute()
        )
        return res.data or []
    except Exception:
        logger.exception("vault.repository.list_cards failed user_id=%s", user_id)
        return []

def get_card(user_id: str, card_id: str) -> Optional[Dict[str, Any]]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table(CARDS_TABLE)
            .select("*")
            .eq("user_id", user_id)
            .eq("card_id", card_id)
            .limit(1)
            .execute()
        )
        rows = res.data or []
        return rows[0] if rows else None
    except Exception:
        logger.exception("vault.repository.get_card failed user_id=%s card_id=%s", user_id, card_id)
        return None

def insert_card(row: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table(CARDS_TABLE)
            .upsert(row, on_conflict="user_id,card_id")
            .execute()
        )
        rows = res.data or []
        return rows[0] if rows else row
    except Exception:
        logger.exception("vault.repository.insert_card failed user_id=%s", row.get("user_id"))
        return None

def delete_card(user_id: str, card_id: str) -> bool:
    try:
        (
            supabase_client.get_service_supabase()
            .table(CARDS_TABLE)
            .delete()
            .eq("user_id", user_id)
            .eq("card_id", card_id)
            .execute()
        )
        return True
    except Exception:
        logger.exception("vault.repository.delete_card failed user_id=%s card_id=%s", user_id, card_id)
        return False
