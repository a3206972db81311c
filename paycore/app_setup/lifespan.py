"""
Lifespan FastAPI: initialisation/arrêt des ressources partagées.
- Initialise le cache TTL (Redis) utilisé par le rate limit et la liste noire des nonces.
- Crée le client Paysafe partagé (pool httpx) et le ferme à l'arrêt.
- Variables d'environnement supportées:
  - USE_FAKE_REDIS_FOR_TESTS=1: utilise fakeredis (tests)
  - LOCAL_CACHE_FALLBACK=1: active un cache local en mémoire si Redis est injoignable
  - CACHE_REDIS_URL: URL Redis (défaut redis://127.0.0.1:6379/0)
"""
import os
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI

from paycore.config import get_settings
from paycore.gateway.client import PaysafeClient
from paycore.infra.cache import MemoryTTLCache, RedisTTLCache, redis_cache_from_url

try:
    import fakeredis  # tests only
except ImportError:
    fakeredis = None

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Configure le cache et le client passerelle.
    - Sans Redis ni fallback, app.state.cache reste None: les requêtes gardées sont refusées (500).
    - Les logs indiquent le backend effectif pour observabilité.
    """
    logger = logging.getLogger("uvicorn.error")
    settings = get_settings()
    app.state.cache = None
    try:
        if os.getenv("USE_FAKE_REDIS_FOR_TESTS") == "1":
            if not fakeredis:
                raise RuntimeError("USE_FAKE_REDIS_FOR_TESTS=1 mais fakeredis n'est pas installé.")
            app.state.cache = RedisTTLCache(fakeredis.FakeRedis(decode_responses=True))
        else:
            cache = redis_cache_from_url(settings.cache_redis_url)
            cache.client.ping()
            app.state.cache = cache
        logger.info("Security cache enabled (redis)")
    except Exception as e:
        if os.getenv("LOCAL_CACHE_FALLBACK") == "1":
            app.state.cache = MemoryTTLCache()
            logger.warning(f"Security cache falling back to local in-memory due to init error: {e}")
        else:
            logger.error(f"Security cache unavailable, guarded requests will be refused: {e}")

    app.state.gateway = PaysafeClient.from_settings(settings)
    try:
        yield
    finally:
        app.state.gateway.close()
