"""
Gestionnaires d'exceptions utilisés par la factory.
- PaycoreError: corps JSON unique { success: false, code, category?, message }.
- HTTPException: JSON standard { detail } (401/403 des dépendances d'authentification).
"""
import logging
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from paycore.errors import (
    ConfigurationError,
    GatewayError,
    PaycoreError,
    SecurityError,
    ValidationError,
    VaultError,
)

logger = logging.getLogger(__name__)

def status_for(exc: PaycoreError) -> int:
    if isinstance(exc, SecurityError):
        return 429 if exc.code == "rate_limit_exceeded" else 403
    if isinstance(exc, ValidationError):
        return 400
    if isinstance(exc, GatewayError):
        return 402
    if isinstance(exc, VaultError):
        return 404 if exc.code == "card_not_found" else 502
    if isinstance(exc, ConfigurationError):
        return 500
    return 400

def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(PaycoreError)
    async def paycore_error_handler(request: Request, exc: PaycoreError):
        status = status_for(exc)
        if status >= 500:
            logger.error("request failed path=%s code=%s", request.url.path, exc.code)
        return JSONResponse(status_code=status, content=exc.to_dict())

    @app.exception_handler(HTTPException)
    async def http_error_handler(request: Request, exc: HTTPException):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=exc.headers)
