from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from paycore.guard.rate_limit import rate_limit_health_info

router = APIRouter(prefix="/health", tags=["Health"])

@router.get("")
def health_root():
    return {"ok": True}

@router.get("/cache")
def health_cache(request: Request):
    return JSONResponse(rate_limit_health_info(request))
