"""
Cache clé/valeur à durée de vie (TTL) partagé entre requêtes.

Deux implémentations:
- RedisTTLCache: Redis (ou fakeredis en tests), incrément atomique via MULTI/EXEC
- MemoryTTLCache: fallback local en mémoire (LOCAL_CACHE_FALLBACK=1), protégé par un verrou

Seuls les compteurs de rate limit et la liste noire des nonces y sont stockés.
"""
import threading
import time
from typing import Any, Dict, Optional, Tuple

import redis


class TTLCache:
    backend = "none"

    def incr_window(self, key: str, window: int) -> int:
        """Crée le compteur à 0 avec expiration `window` s'il n'existe pas, puis l'incrémente."""
        raise NotImplementedError

    def set(self, key: str, value: str, ttl: int) -> None:
        raise NotImplementedError

    def add(self, key: str, value: str, ttl: int) -> bool:
        """Pose la clé seulement si elle est absente; False si elle existait déjà."""
        raise NotImplementedError

    def exists(self, key: str) -> bool:
        raise NotImplementedError

    def info(self) -> Dict[str, Any]:
        return {"backend": self.backend}


class RedisTTLCache(TTLCache):
    backend = "redis"

    def __init__(self, client: "redis.Redis", url: Optional[str] = None):
        self.client = client
        self.url = url

    def incr_window(self, key: str, window: int) -> int:
        # SET NX EX + INCR dans une seule transaction: la fenêtre n'est posée qu'une fois
        pipe = self.client.pipeline(transaction=True)
        pipe.set(key, 0, ex=window, nx=True)
        pipe.incr(key)
        _, count = pipe.execute()
        return int(count)

    def set(self, key: str, value: str, ttl: int) -> None:
        self.client.set(key, value, ex=ttl)

    def add(self, key: str, value: str, ttl: int) -> bool:
        return bool(self.client.set(key, value, ex=ttl, nx=True))

    def exists(self, key: str) -> bool:
        return bool(self.client.exists(key))

    def info(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"backend": self.backend}
        if self.url:
            from urllib.parse import urlparse
            p = urlparse(self.url)
            data["redis"] = {"scheme": p.scheme, "host": p.hostname, "port": p.port}
        return data


class MemoryTTLCache(TTLCache):
    backend = "memory"

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._lock = threading.Lock()
        self._store: Dict[str, Tuple[Any, float]] = {}

    def _live(self, key: str) -> Optional[Tuple[Any, float]]:
        entry = self._store.get(key)
        if entry is None:
            return None
        if entry[1] <= self._clock():
            del self._store[key]
            return None
        return entry

    def incr_window(self, key: str, window: int) -> int:
        with self._lock:
            entry = self._live(key)
            if entry is None:
                entry = (0, self._clock() + window)
            count = int(entry[0]) + 1
            self._store[key] = (count, entry[1])
            return count

    def set(self, key: str, value: str, ttl: int) -> None:
        with self._lock:
            self._store[key] = (value, self._clock() + ttl)

    def add(self, key: str, value: str, ttl: int) -> bool:
        with self._lock:
            if self._live(key) is not None:
                return False
            self._store[key] = (value, self._clock() + ttl)
            return True

    def exists(self, key: str) -> bool:
        with self._lock:
            return self._live(key) is not None


def redis_cache_from_url(url: str) -> RedisTTLCache:
    client = redis.from_url(url, encoding="utf-8", decode_responses=True)
    return RedisTTLCache(client, url=url)
