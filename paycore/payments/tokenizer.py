"""
Tokenisation des cartes.

- tokenize: champs carte bruts -> jeton à usage unique via le client Paysafe
- resolve_token: accepte un jeton déjà fourni par le navigateur, sinon tokenise
- detect_brand: marque déduite localement du PAN, pour affichage uniquement
Le PAN et le CVV ne sortent jamais d'ici: seuls last4 et la marque accompagnent le jeton.
"""
import logging
import re
from typing import Optional

from paycore.errors import ValidationError
from paycore.gateway.client import PaysafeClient
from paycore.payments.models import CardFields, CardToken, PaymentRequest, TokenKind, TokenizationResult

logger = logging.getLogger(__name__)

BRAND_PATTERNS = (
    ("visa", re.compile(r"^4\d{12,18}$")),
    ("mastercard", re.compile(r"^(?:5[1-5]\d{14}|2(?:2(?:2[1-9]|[3-9]\d)|[3-6]\d{2}|7(?:[01]\d|20))\d{12})$")),
    ("amex", re.compile(r"^3[47]\d{13}$")),
    ("discover", re.compile(r"^6(?:011|5\d{2})\d{12}$")),
    ("jcb", re.compile(r"^(?:(?:2131|1800)\d{11}|35\d{14})$")),
    ("diners", re.compile(r"^3(?:0[0-5]|[68]\d)\d{11}$")),
)


def detect_brand(number: str) -> str:
    digits = re.sub(r"\D+", "", number or "")
    for brand, pattern in BRAND_PATTERNS:
        if pattern.match(digits):
            return brand
    return "unknown"


def tokenize(card: Optional[CardFields], client: PaysafeClient) -> TokenizationResult:
    """
    Demande un jeton à usage unique pour `card`.
    Champ manquant (numéro, mois, année, CVV): ValidationError("missing_card_fields"), aucun appel réseau.
    """
    if card is None or card.missing():
        raise ValidationError("missing_card_fields", "Missing required card information.")

    number = card.number.get_secret_value()
    digits = re.sub(r"\D+", "", number)
    token = client.create_single_use_token(
        number,
        card.exp_month,
        card.exp_year,
        card.cvv.get_secret_value(),
        holder_name=card.holder_name,
    )
    result = TokenizationResult(
        token=CardToken(value=token, kind=TokenKind.SINGLE_USE),
        last4=digits[-4:],
        brand=detect_brand(digits),
    )
    logger.info("payments.tokenizer.tokenize ok brand=%s last4=%s token=%s", result.brand, result.last4, result.token.masked())
    return result


def resolve_token(request: PaymentRequest, client: PaysafeClient) -> TokenizationResult:
    if request.token:
        return TokenizationResult(token=CardToken(value=request.token, kind=TokenKind.SINGLE_USE))
    return tokenize(request.card, client)
