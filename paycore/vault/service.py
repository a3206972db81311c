"""
Cas d'usage 'vault': profil client Paysafe et cartes enregistrées.

save_card suit NoProfile -> ProfileCreated -> CardConverted -> Saved et ne lève jamais:
un paiement déjà accepté n'est pas remis en cause par un échec d'enregistrement.
"""
from typing import Any, Dict, List, Optional
import logging

from fastapi import Request

from paycore.config import Settings, get_settings
from paycore.errors import GatewayError, PaycoreError, VaultError
from paycore.gateway.client import PaysafeClient, get_gateway
from paycore.payments.models import AuthorizationResult, PaymentRequest, TokenizationResult, TokenKind
from paycore.vault import repository
from paycore.vault.models import VaultedCard

logger = logging.getLogger(__name__)

DELETE_CARD_ACTION = "paysafe_delete_card"


class VaultService:
    def __init__(self, client: PaysafeClient, repo=repository, settings: Optional[Settings] = None):
        self.client = client
        self.repo = repo
        self.settings = settings or get_settings()

    # --- profils ---

    def _profile_is_live(self, profile_id: str) -> bool:
        profile = self.client.get_customer_profile(profile_id)
        return bool(profile) and str(profile.get("id")) == profile_id

    def _create_profile(self, user: Dict[str, Any], request: Optional[PaymentRequest]) -> str:
        billing = request.billing if request else None
        try:
            created = self.client.create_customer_profile(
                merchant_customer_id=f"{self.settings.vault_prefix}{user['id']}",
                first_name=(billing.first_name if billing else "") or user.get("first_name", ""),
                last_name=(billing.last_name if billing else "") or user.get("last_name", ""),
                email=(billing.email if billing else "") or user.get("email", "") or "",
                phone=(billing.phone if billing else "") or user.get("phone", "") or "",
            )
        except GatewayError as e:
            raise VaultError("profile_create_failed", e.message) from e
        stored = self.repo.record_profile(user["id"], created)
        if not stored:
            raise VaultError("profile_record_failed")
        if stored != created:
            logger.warning("vault.service profile created concurrently user_id=%s, keeping first recorded", user["id"])
        return stored

    def ensure_profile(self, user: Dict[str, Any], request: Optional[PaymentRequest] = None) -> str:
        """
        Identifiant de profil valide pour l'utilisateur.
        - Un identifiant local qui ne se résout plus côté Paysafe est supprimé puis recréé.
        - Lève VaultError si la lecture locale, la vérification ou la création échoue.
        """
        user_id = user["id"]
        profile_id = self.repo.get_profile_id(user_id)
        if profile_id:
            try:
                if self._profile_is_live(profile_id):
                    return profile_id
            except GatewayError as e:
                raise VaultError("profile_lookup_failed", e.message) from e
            logger.info("vault.service stale profile discarded user_id=%s", user_id)
            self.repo.delete_profile(user_id, profile_id)
        return self._create_profile(user, request)

    # --- cartes ---

    def save_card(
        self,
        user: Dict[str, Any],
        request: PaymentRequest,
        result: AuthorizationResult,
        tokenization: TokenizationResult,
    ) -> Optional[VaultedCard]:
        """
        Enregistre la carte utilisée pour un paiement accepté.
        Retourne la carte enregistrée, ou None (erreur journalisée uniquement).
        """
        # le repli sur paymentToken signifie un jeton déjà permanent: rien à convertir
        if not result.completed or result.token_kind == TokenKind.PERMANENT or tokenization.token.kind != TokenKind.SINGLE_USE:
            return None
        try:
            profile_id = self.ensure_profile(user, request)
            try:
                permanent = self.client.convert_token_to_permanent_card(
                    profile_id, tokenization.token.value.get_secret_value()
                )
            except GatewayError as e:
                raise VaultError("card_convert_failed", e.message) from e

            existing = self.repo.list_cards(user["id"])
            card = VaultedCard(
                user_id=user["id"],
                profile_id=profile_id,
                card_id=permanent.card_id,
                payment_token=permanent.payment_token,
                brand=(permanent.brand or tokenization.brand or "unknown"),
                last4=(permanent.last4 or tokenization.last4),
                expiry_month=permanent.expiry_month,
                expiry_year=permanent.expiry_year,
                is_default=not existing,
            )
            if self.repo.insert_card(card.to_row()) is None:
                raise VaultError("card_record_failed")
            logger.info("vault.service.save_card ok user_id=%s last4=%s duplicate=%s", user["id"], card.last4, permanent.duplicate)
            return card
        except PaycoreError as e:
            logger.error("vault.service.save_card aborted user_id=%s code=%s message=%s", user.get("id"), e.code, e.message)
            return None
        except Exception:
            logger.exception("vault.service.save_card failed user_id=%s", user.get("id"))
            return None

    def list_cards(self, user_id: str) -> List[VaultedCard]:
        return [VaultedCard.from_row(row) for row in self.repo.list_cards(user_id)]

    def delete_card(self, user_id: str, card_id: str) -> None:
        """
        Supprime une carte de l'utilisateur.
        - Suppression distante d'abord (échec journalisé seulement), puis suppression locale inconditionnelle.
        - Carte inconnue pour cet utilisateur: VaultError("card_not_found").
        """
        row = self.repo.get_card(user_id, card_id)
        if not row:
            raise VaultError("card_not_found", "Payment method not found.")
        profile_id = row.get("profile_id")
        if profile_id:
            try:
                self.client.delete_card_from_profile(profile_id, card_id)
            except GatewayError as e:
                logger.error("vault.service.delete_card remote delete failed user_id=%s card_id=%s: %s", user_id, card_id, e.message)
        self.repo.delete_card(user_id, card_id)


def get_vault_service(request: Request) -> VaultService:
    return VaultService(get_gateway(request))
