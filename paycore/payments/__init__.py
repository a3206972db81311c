"""
Module 'payments' (feature-first): point d'entrée public.
Réunit modèles, tokenisation, normalisation des erreurs et orchestration du paiement.
"""

from .models import PaymentRequest, CardToken, TokenKind, TokenizationResult, AuthorizationResult
from .tokenizer import detect_brand, tokenize, resolve_token
from .errors import normalize, NormalizedError
from .service import authorize, create_token, process_payment, select_account

__all__ = [
    # models
    "PaymentRequest",
    "CardToken",
    "TokenKind",
    "TokenizationResult",
    "AuthorizationResult",
    # tokenizer
    "detect_brand",
    "tokenize",
    "resolve_token",
    # errors
    "normalize",
    "NormalizedError",
    # service
    "authorize",
    "create_token",
    "process_payment",
    "select_account",
]
