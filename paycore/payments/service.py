"""
Cas d'usage 'payments': garde -> tokenisation -> autorisation (un seul repli) -> vault optionnel.
"""
from typing import Any, Dict, Mapping, Optional
import logging
import time
from uuid import uuid4

from paycore.config import Settings, get_settings
from paycore.errors import GatewayError, ValidationError
from paycore.gateway.client import PaysafeClient
from paycore.gateway.errors import extract_error
from paycore.guard.service import RequestContext, verify_request
from paycore.infra.cache import TTLCache
from paycore.payments.billing import billing_payload
from paycore.payments.errors import normalize
from paycore.payments.models import AuthorizationResult, CardToken, PaymentRequest, TokenKind
from paycore.payments.tokenizer import resolve_token, tokenize

logger = logging.getLogger(__name__)

PROCESS_ACTION = "paysafe_process_payment"
TOKENIZE_ACTION = "paysafe_tokenize"
SUCCESS_MESSAGE = "Payment processed successfully!"

# Représentation du jeton dans le bloc `card` selon la tentative
TOKEN_FIELDS = {
    TokenKind.SINGLE_USE: "singleUseToken",
    TokenKind.PERMANENT: "paymentToken",
}


def select_account(currency: str, accounts: Mapping[str, str]) -> str:
    account_id = accounts.get((currency or "").upper())
    if not account_id:
        raise ValidationError("no_account_for_currency", f"No payment account is configured for currency {currency}.")
    return account_id


def build_payload(request: PaymentRequest, token: CardToken, kind: TokenKind, settle_with_auth: bool = True) -> Dict[str, Any]:
    ref = request.order_ref or uuid4().hex[:12]
    return {
        "merchantRefNum": f"order_{ref}_{int(time.time())}",
        "amount": request.amount_minor,
        "settleWithAuth": settle_with_auth,
        "billingDetails": billing_payload(request.billing),
        "card": {TOKEN_FIELDS[kind]: token.value.get_secret_value()},
    }


def _attempt(client: PaysafeClient, account_id: str, payload: Dict[str, Any], kind: TokenKind) -> AuthorizationResult:
    try:
        body = client.authorize(account_id, payload)
    except GatewayError as e:
        return AuthorizationResult(status="FAILED", error_code=e.processor_code, error_message=e.message, token_kind=kind)
    status = str(body.get("status") or "")
    if status == "COMPLETED":
        return AuthorizationResult(
            status="COMPLETED",
            transaction_id=str(body.get("id") or ""),
            auth_code=str(body.get("authCode") or ""),
            token_kind=kind,
        )
    code, message = extract_error(body, 402)
    return AuthorizationResult(status="FAILED", error_code=code, error_message=message, token_kind=kind)


def authorize(
    request: PaymentRequest,
    token: CardToken,
    accounts: Optional[Mapping[str, str]] = None,
    *,
    client: PaysafeClient,
    settings: Optional[Settings] = None,
) -> AuthorizationResult:
    """
    Autorise le paiement auprès de Paysafe.
    - Compte choisi selon la devise (aucun compte par défaut)
    - Tentative 1: jeton en singleUseToken; en cas d'échec, une seule reprise en paymentToken
    - Succès uniquement si status == COMPLETED; sinon GatewayError normalisée
    """
    settings = settings or get_settings()
    account_id = select_account(request.currency, accounts if accounts is not None else settings.accounts)

    payload = build_payload(request, token, TokenKind.SINGLE_USE, settings.settle_with_auth)
    result = _attempt(client, account_id, payload, TokenKind.SINGLE_USE)
    if not result.completed:
        logger.info("payments.service.authorize first attempt failed code=%s, retrying with paymentToken", result.error_code)
        fallback = {**payload, "card": {TOKEN_FIELDS[TokenKind.PERMANENT]: token.value.get_secret_value()}}
        result = _attempt(client, account_id, fallback, TokenKind.PERMANENT)

    if result.completed:
        return result

    normalized = normalize(result.error_code, result.error_message, settings.error_messages)
    logger.warning(
        "payments.service.authorize failed currency=%s code=%s category=%s",
        request.currency, result.error_code, normalized.category,
    )
    raise GatewayError(normalized.message, category=normalized.category, processor_code=result.error_code, code="payment_failed")


def _normalized_gateway_call(fn, settings: Settings, *args):
    try:
        return fn(*args)
    except GatewayError as e:
        normalized = normalize(e.processor_code, e.message, settings.error_messages)
        raise GatewayError(
            normalized.message,
            category=normalized.category,
            processor_code=e.processor_code,
            http_status=e.http_status,
            code="tokenization_failed",
        ) from e


def create_token(
    ctx: RequestContext,
    payload: Mapping[str, Any],
    *,
    cache: TTLCache,
    client: PaysafeClient,
    settings: Optional[Settings] = None,
) -> Dict[str, Any]:
    """Tokenise des champs carte bruts pour le formulaire: {success, token, last4, brand}."""
    settings = settings or get_settings()
    verify_request(ctx, TOKENIZE_ACTION, cache=cache, settings=settings)
    card = PaymentRequest.card_from_payload(payload)
    result = _normalized_gateway_call(tokenize, settings, card, client)
    return {
        "success": True,
        "token": result.token.value.get_secret_value(),
        "last4": result.last4,
        "brand": result.brand,
    }


def process_payment(
    ctx: RequestContext,
    payload: Mapping[str, Any],
    *,
    cache: TTLCache,
    client: PaysafeClient,
    vault=None,
    settings: Optional[Settings] = None,
) -> Dict[str, Any]:
    """
    Point d'entrée du paiement par carte.
    Étapes:
      1) verify_request (rate limit, nonce, capacités)
      2) PaymentRequest.from_payload (montant > 0 vérifié avant tout appel réseau)
      3) jeton fourni ou tokenisation
      4) authorize (un repli au plus)
      5) enregistrement de la carte si demandé et utilisateur connecté (best-effort)
    """
    settings = settings or get_settings()
    verify_request(ctx, PROCESS_ACTION, cache=cache, settings=settings)

    request = PaymentRequest.from_payload(payload)
    select_account(request.currency, settings.accounts)
    tokenization = _normalized_gateway_call(resolve_token, settings, request, client)
    result = authorize(request, tokenization.token, client=client, settings=settings)
    logger.info(
        "payments.service.process_payment ok currency=%s amount_minor=%s token=%s",
        request.currency, request.amount_minor, tokenization.token.masked(),
    )

    if request.save_card and ctx.user_id and vault is not None:
        vault.save_card(ctx.user, request, result, tokenization)

    return {
        "success": True,
        "message": SUCCESS_MESSAGE,
        "transaction_id": result.transaction_id,
        "auth_code": result.auth_code,
    }
