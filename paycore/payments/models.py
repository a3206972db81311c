"""
Types valeur du flux de paiement (immuables, construits une fois par requête).
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from enum import Enum
from typing import Any, Mapping, Optional

from pydantic import BaseModel, SecretStr

from paycore.errors import ValidationError
from paycore.gateway.redaction import mask_token


class TokenKind(str, Enum):
    SINGLE_USE = "single_use"
    PERMANENT = "permanent"


class BillingDetails(BaseModel):
    model_config = {"frozen": True}

    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    street: str = ""
    city: str = ""
    state: str = ""
    country: str = ""
    zip: str = ""


class CardFields(BaseModel):
    """Données carte brutes: number et cvv ne sont jamais affichés (SecretStr)."""

    model_config = {"frozen": True}

    number: SecretStr = SecretStr("")
    exp_month: str = ""
    exp_year: str = ""
    cvv: SecretStr = SecretStr("")
    holder_name: str = ""

    def missing(self) -> list:
        missing = []
        if not self.number.get_secret_value().strip():
            missing.append("number")
        if not self.exp_month.strip():
            missing.append("exp_month")
        if not self.exp_year.strip():
            missing.append("exp_year")
        if not self.cvv.get_secret_value().strip():
            missing.append("cvv")
        return missing


class CardToken(BaseModel):
    model_config = {"frozen": True}

    value: SecretStr
    kind: TokenKind = TokenKind.SINGLE_USE

    def masked(self) -> str:
        return mask_token(self.value.get_secret_value())


class TokenizationResult(BaseModel):
    model_config = {"frozen": True}

    token: CardToken
    last4: str = ""
    brand: str = "unknown"


class AuthorizationResult(BaseModel):
    model_config = {"frozen": True}

    status: str
    transaction_id: str = ""
    auth_code: str = ""
    error_code: str = ""
    error_message: str = ""
    token_kind: Optional[TokenKind] = None

    @property
    def completed(self) -> bool:
        return self.status == "COMPLETED"


def _text(payload: Mapping[str, Any], *names: str) -> str:
    for name in names:
        value = payload.get(name)
        if value not in (None, ""):
            return str(value).strip()
    return ""


class PaymentRequest(BaseModel):
    model_config = {"frozen": True}

    amount: Decimal
    currency: str
    order_ref: str = ""
    billing: BillingDetails = BillingDetails()
    card: Optional[CardFields] = None
    token: Optional[str] = None
    save_card: bool = False

    @property
    def amount_minor(self) -> int:
        return int((self.amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))

    @staticmethod
    def card_from_payload(payload: Mapping[str, Any]) -> Optional[CardFields]:
        if not any(payload.get(k) for k in ("card_number", "card_exp_month", "card_exp_year", "card_cvv")):
            return None
        return CardFields(
            number=SecretStr(_text(payload, "card_number")),
            exp_month=_text(payload, "card_exp_month"),
            exp_year=_text(payload, "card_exp_year"),
            cvv=SecretStr(_text(payload, "card_cvv")),
            holder_name=_text(payload, "card_holder_name"),
        )

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "PaymentRequest":
        """
        Construit la requête normalisée depuis le corps reçu.
        - amount (unités majeures) doit être > 0 une fois converti en centimes, sinon invalid_amount
        - currency: code ISO à 3 lettres, mis en majuscules
        - card_* ou token (jeton fourni par le client)
        """
        try:
            amount = Decimal(str(payload.get("amount", "")).strip())
        except (InvalidOperation, ValueError):
            raise ValidationError("invalid_amount", "Invalid amount.") from None
        if not amount.is_finite() or amount <= 0:
            raise ValidationError("invalid_amount", "Invalid amount.")

        currency = _text(payload, "currency").upper()
        if len(currency) != 3 or not currency.isalpha():
            raise ValidationError("invalid_currency", "Invalid currency.")

        card = cls.card_from_payload(payload)

        request = cls(
            amount=amount,
            currency=currency,
            order_ref=_text(payload, "order_ref", "order_id"),
            billing=BillingDetails(
                first_name=_text(payload, "billing_first_name"),
                last_name=_text(payload, "billing_last_name"),
                email=_text(payload, "billing_email"),
                phone=_text(payload, "billing_phone"),
                street=_text(payload, "billing_address_1", "billing_street"),
                city=_text(payload, "billing_city"),
                state=_text(payload, "billing_state"),
                country=_text(payload, "billing_country").upper(),
                zip=_text(payload, "billing_postcode", "billing_zip"),
            ),
            card=card,
            token=_text(payload, "payment_token", "token") or None,
            save_card=str(payload.get("save_card", "")).lower() in ("1", "true", "yes", "on"),
        )
        if request.amount_minor <= 0:
            raise ValidationError("invalid_amount", "Invalid amount.")
        return request
