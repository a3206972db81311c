"""
Exceptions métier de paycore.

Chaque erreur porte un `code` stable (ex: "invalid_nonce") et un `message`
affichable. La conversion en réponse HTTP est faite une seule fois par
paycore.app_setup.exceptions.
"""
from typing import Any, Dict, Optional


class PaycoreError(Exception):
    code = "error"
    default_message = "An error occurred."

    def __init__(self, code: Optional[str] = None, message: Optional[str] = None):
        self.code = code or self.code
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"success": False, "code": self.code, "message": self.message}


class SecurityError(PaycoreError):
    code = "security_error"
    default_message = "Security check failed. Please refresh the page and try again."


class ValidationError(PaycoreError):
    code = "validation_error"
    default_message = "Invalid request."


class ConfigurationError(PaycoreError):
    code = "configuration_error"
    default_message = "Payment gateway is not configured."


class VaultError(PaycoreError):
    code = "vault_error"
    default_message = "Unable to save the payment method."


class GatewayError(PaycoreError):
    """
    Échec côté processeur (transport, HTTP >= 400, statut non COMPLETED).
    - category: catégorie normalisée (AVS_FAILED, DECLINED, GENERIC, ...)
    - processor_code: code brut renvoyé par le processeur (si présent)
    - response: corps JSON brut, jamais renvoyé au client
    """
    code = "gateway_error"
    default_message = "Payment processing error. Please try again or contact support."

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        category: str = "GENERIC",
        processor_code: str = "",
        http_status: Optional[int] = None,
        response: Optional[Dict[str, Any]] = None,
        code: Optional[str] = None,
    ):
        super().__init__(code, message)
        self.category = category
        self.processor_code = processor_code
        self.http_status = http_status
        self.response = response or {}

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["category"] = self.category
        return data
