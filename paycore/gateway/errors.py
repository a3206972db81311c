"""
Extraction du code et du message d'erreur bruts d'une réponse Paysafe.

Le résultat (code, message) est ensuite passé au normaliseur
(paycore.payments.errors.normalize) qui décide du texte affiché.
"""
from typing import Any, Dict, Optional, Tuple

AVS_FAIL_CODES = {"N", "A", "Z", "W", "C", "I", "P"}
CVV_FAIL_CODES = {"N", "P", "S", "U"}

# Codes qui créent une autorisation côté processeur: la réponse complète est rendue à l'appelant
AUTH_CREATING_ERROR_CODES = {"3007", "3009", "3022", "3023", "5014", "5015"}

HTTP_DEFAULT_MESSAGES = {
    401: "Invalid credentials - please check your API username and password",
    403: "Access forbidden - please verify your account ID and API permissions",
    404: "API endpoint not found - please contact support",
    402: "Payment declined",
    429: "Too many requests - API rate limit exceeded",
}
SERVER_ERROR_MESSAGE = "Paysafe server error - please try again later"

_TEXT_HINTS = (
    (("address", "avs"), "AVS_FAILED"),
    (("cvv", "security code", "cvc"), "CVV_FAILED"),
    (("insufficient", "nsf"), "INSUFFICIENT_FUNDS"),
    (("expired",), "EXPIRED_CARD"),
    (("invalid card", "card number"), "INVALID_CARD"),
    (("decline", "risk"), "DECLINED"),
)


def _code_from_text(text: str) -> str:
    lower = (text or "").lower()
    for needles, code in _TEXT_HINTS:
        if any(n in lower for n in needles):
            return code
    return ""


def _risk_detail_code(error: Dict[str, Any]) -> str:
    for detail in error.get("additionalDetails") or []:
        if isinstance(detail, dict) and detail.get("type") == "RISK_RESPONSE" and detail.get("code"):
            return str(detail["code"])
    return ""


def extract_error(body: Optional[Dict[str, Any]], http_status: Optional[int] = None) -> Tuple[str, str]:
    """
    Retourne (code, message) bruts:
      - code de risque détaillé (additionalDetails RISK_RESPONSE) prioritaire
      - avsResponse / cvvVerification en échec -> AVS_FAILED / CVV_FAILED
      - sinon error.code / error.message (+ erreurs de champs), code déduit du texte si absent
      - sinon message par défaut selon le statut HTTP
    """
    body = body if isinstance(body, dict) else {}
    error = body.get("error") if isinstance(body.get("error"), dict) else {}

    risk_code = _risk_detail_code(error)
    if risk_code:
        return risk_code, str(error.get("message") or "Transaction declined")

    if str(body.get("avsResponse") or "").upper() in AVS_FAIL_CODES:
        return "AVS_FAILED", str(error.get("message") or "Address Verification Failed")
    if str(body.get("cvvVerification") or "").upper() in CVV_FAIL_CODES:
        return "CVV_FAILED", str(error.get("message") or "Security Code Invalid")

    if error.get("message"):
        message = str(error["message"])
        code = str(error.get("code") or "")
        if not code:
            code = _code_from_text(message)
        field_errors = []
        for fe in error.get("fieldErrors") or []:
            if isinstance(fe, dict) and fe.get("field") and fe.get("error"):
                field_errors.append(f"{fe['field']}: {fe['error']}")
                if not code:
                    code = _code_from_text(str(fe["error"]))
        if field_errors:
            message += " - " + ", ".join(field_errors)
        return code, message

    code = str(error.get("code") or "")
    if http_status == 402:
        return code or "DECLINED", HTTP_DEFAULT_MESSAGES[402]
    if http_status in HTTP_DEFAULT_MESSAGES:
        return code, HTTP_DEFAULT_MESSAGES[http_status]
    if http_status is not None and http_status >= 500:
        return code, SERVER_ERROR_MESSAGE
    if http_status is not None:
        return code, f"API Error (HTTP {http_status})"
    return code, "Payment failed"
