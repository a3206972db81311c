"""
Adaptateur HTTP vers l'API REST Paysafe (cardpayments + customervault).

- Authentification Basic; des identifiants distincts servent à la création de jetons à usage unique
- Toute erreur (transport, HTTP >= 400, réponse illisible) lève GatewayError
- Les corps de requête/réponse sont masqués (redact) avant d'être journalisés
"""
from dataclasses import dataclass, replace
from datetime import date
from typing import Any, Dict, Optional
import logging
import re

import httpx
from fastapi import Request

from paycore.config import Settings, get_settings
from paycore.errors import GatewayError, ValidationError
from paycore.gateway.errors import AUTH_CREATING_ERROR_CODES, extract_error
from paycore.gateway.redaction import redact

logger = logging.getLogger(__name__)

DUPLICATE_CARD_CODE = "7503"
_UUID_RE = re.compile(r"([a-f0-9]{8}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{12})", re.I)


@dataclass(frozen=True)
class PermanentCard:
    card_id: str
    payment_token: str
    brand: str = ""
    last4: str = ""
    expiry_month: Optional[int] = None
    expiry_year: Optional[int] = None
    duplicate: bool = False

    @classmethod
    def from_response(cls, data: Dict[str, Any], duplicate: bool = False) -> "PermanentCard":
        expiry = data.get("cardExpiry") or {}
        return cls(
            card_id=str(data["id"]),
            payment_token=str(data["paymentToken"]),
            brand=str(data.get("cardType") or ""),
            last4=str(data.get("lastDigits") or ""),
            expiry_month=expiry.get("month"),
            expiry_year=expiry.get("year"),
            duplicate=duplicate,
        )


@dataclass(frozen=True)
class ConnectionCheck:
    success: bool
    message: str


def normalize_card_fields(number: str, exp_month: Any, exp_year: Any, cvv: str, today: Optional[date] = None) -> Dict[str, Any]:
    """
    Prépare le bloc `card` de /singleusetokens:
    - numéro et CVV réduits aux chiffres, année sur 2 chiffres -> 20YY
    - contrôles: CVV 3-4 chiffres, mois 1-12, année dans [année courante, +25], PAN 13-19 chiffres
    """
    today = today or date.today()
    card_num = re.sub(r"\D+", "", str(number or ""))
    cvv_digits = re.sub(r"\D+", "", str(cvv or ""))
    try:
        month = int(exp_month)
        year = int(exp_year)
    except (TypeError, ValueError):
        raise ValidationError("invalid_card_fields", "Invalid expiry date") from None
    if year < 100:
        year += 2000

    if not re.fullmatch(r"\d{3,4}", cvv_digits):
        raise ValidationError("invalid_card_fields", "Invalid CVV")
    if month < 1 or month > 12:
        raise ValidationError("invalid_card_fields", "Invalid expiry month")
    if year < today.year or year > today.year + 25:
        raise ValidationError("invalid_card_fields", "Invalid expiry year")
    if len(card_num) < 13 or len(card_num) > 19:
        raise ValidationError("invalid_card_fields", "Invalid card number length")

    return {"cardNum": card_num, "cardExpiry": {"month": month, "year": year}, "cvv": cvv_digits}


class PaysafeClient:
    def __init__(
        self,
        base_url: str,
        api_username: str,
        api_password: str,
        token_username: str = "",
        token_password: str = "",
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._api_auth = (api_username, api_password)
        self._token_auth = (token_username, token_password)
        self._http = httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            headers={"Content-Type": "application/json", "Accept": "application/json"},
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, transport: Optional[httpx.BaseTransport] = None) -> "PaysafeClient":
        settings = settings or get_settings()
        return cls(
            settings.api_base_url,
            settings.api_username,
            settings.api_password,
            settings.token_username,
            settings.token_password,
            timeout=settings.gateway_timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._http.close()

    # --- transport ---

    def _request(
        self,
        method: str,
        path: str,
        body: Optional[Dict[str, Any]] = None,
        *,
        token_auth: bool = False,
        return_auth_errors: bool = False,
    ) -> Dict[str, Any]:
        logger.debug("paysafe %s %s body=%s", method, path, redact(body) if body else None)
        try:
            resp = self._http.request(
                method,
                path,
                json=body,
                auth=self._token_auth if token_auth else self._api_auth,
            )
        except httpx.HTTPError as e:
            logger.error("paysafe %s %s connection error: %s", method, path, e)
            raise GatewayError(f"Connection error: {e}", code="gateway_unreachable") from e

        text = resp.text or ""
        if 200 <= resp.status_code < 300 and not text.strip():
            return {}

        try:
            data = resp.json()
        except ValueError:
            data = None
        if data is None and text.strip().lower() == "null" and resp.status_code < 400:
            return {}
        logger.debug("paysafe %s %s status=%s body=%s", method, path, resp.status_code, redact(data))

        if resp.status_code >= 400:
            error = (data or {}).get("error") if isinstance(data, dict) else None
            if (
                return_auth_errors
                and isinstance(error, dict)
                and str(error.get("code")) in AUTH_CREATING_ERROR_CODES
                and data.get("id")
            ):
                # Autorisation créée malgré l'erreur (AVS/CVV/NSF): rendue telle quelle à l'orchestrateur
                return data
            code, message = extract_error(data, resp.status_code)
            logger.error("paysafe %s %s failed status=%s code=%s", method, path, resp.status_code, code)
            raise GatewayError(message, processor_code=code, http_status=resp.status_code, response=redact(data))

        if not isinstance(data, (dict, list)):
            raise GatewayError("Invalid response format from API", http_status=resp.status_code)
        return data if isinstance(data, dict) else {"items": data}

    # --- cardpayments ---

    def authorize(self, account_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """POST /cardpayments/v1/accounts/{id}/auths -> corps brut (status, id, authCode, error?)."""
        return self._request("POST", f"/cardpayments/v1/accounts/{account_id}/auths", payload, return_auth_errors=True)

    def test_connection(self) -> ConnectionCheck:
        try:
            data = self._request("GET", "/cardpayments/monitor")
        except GatewayError as e:
            return ConnectionCheck(False, e.message)
        if data.get("status"):
            message = f"Connection successful. API Status: {data['status']}"
            if "netbanx" in self.base_url:
                message += f" (Using {httpx.URL(self.base_url).host})"
            return ConnectionCheck(True, message)
        return ConnectionCheck(False, "Unexpected response from API")

    # --- customervault ---

    def create_single_use_token(self, number: str, exp_month: Any, exp_year: Any, cvv: str, holder_name: str = "") -> str:
        if not self._token_auth[0] or not self._token_auth[1]:
            raise GatewayError(
                "Single-use token API credentials are not configured.",
                code="gateway_not_configured",
            )
        card = normalize_card_fields(number, exp_month, exp_year, cvv)
        if holder_name:
            card["holderName"] = holder_name
        data = self._request("POST", "/customervault/v1/singleusetokens", {"card": card}, token_auth=True)
        if not data.get("paymentToken"):
            raise GatewayError("Failed to create payment token")
        return str(data["paymentToken"])

    def create_customer_profile(self, merchant_customer_id: str, first_name: str = "", last_name: str = "", email: str = "", phone: str = "") -> str:
        body: Dict[str, Any] = {
            "merchantCustomerId": merchant_customer_id,
            "locale": "en_US",
            "firstName": first_name,
            "lastName": last_name,
            "email": email,
        }
        digits = re.sub(r"[^0-9]", "", phone or "")
        if digits:
            body["phone"] = digits
        data = self._request("POST", "/customervault/v1/profiles", body)
        if not data.get("id"):
            raise GatewayError("Failed to create customer profile - no ID returned")
        return str(data["id"])

    def get_customer_profile(self, profile_id: str) -> Optional[Dict[str, Any]]:
        """Profil distant, ou None s'il n'existe plus (404)."""
        try:
            return self._request("GET", f"/customervault/v1/profiles/{profile_id}")
        except GatewayError as e:
            if e.http_status == 404:
                return None
            raise

    def get_card(self, profile_id: str, card_id: str) -> PermanentCard:
        data = self._request("GET", f"/customervault/v1/profiles/{profile_id}/cards/{card_id}")
        if not data.get("id") or not data.get("paymentToken"):
            raise GatewayError("Card not found in vault")
        return PermanentCard.from_response(data)

    def convert_token_to_permanent_card(self, profile_id: str, single_use_token: str) -> PermanentCard:
        """
        POST /profiles/{id}/cards avec le jeton à usage unique.
        Carte déjà enregistrée (7503 / "already in use"): on relit la carte existante.
        """
        try:
            data = self._request("POST", f"/customervault/v1/profiles/{profile_id}/cards", {"singleUseToken": single_use_token})
        except GatewayError as e:
            duplicate = e.processor_code == DUPLICATE_CARD_CODE or "already in use" in e.message.lower()
            match = _UUID_RE.search(e.message) if duplicate else None
            if not match:
                raise
            logger.info("paysafe card already in vault, reusing existing card")
            existing = self.get_card(profile_id, match.group(1))
            return replace(existing, duplicate=True)
        if not data.get("id") or not data.get("paymentToken"):
            raise GatewayError("Failed to create permanent card from token")
        return PermanentCard.from_response(data)

    def delete_card_from_profile(self, profile_id: str, card_id: str) -> None:
        self._request("DELETE", f"/customervault/v1/profiles/{profile_id}/cards/{card_id}")


def get_gateway(request: Request) -> PaysafeClient:
    """Dépendance FastAPI: client partagé posé par le lifespan (créé à la demande sinon)."""
    client = getattr(request.app.state, "gateway", None)
    if client is None:
        client = PaysafeClient.from_settings()
        request.app.state.gateway = client
    return client
