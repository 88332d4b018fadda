"""
============================================================
TARJETA CRC — app/infrastructure/cache.py
============================================================
Module: Profile Cache (Facade + Backends)

Responsibilities:
  - Cachear vistas de perfil (dict JSON-serializable) por user_id.
  - Expiración por TTL y métricas simples (hits/misses/errors).
  - Seleccionar backend automáticamente:
      - Redis si REDIS_URL está configurado y responde PING
      - In-memory (LRU + TTL) caso contrario
  - Invalidación explícita tras cada mutación de credenciales/perfil.

Collaborators:
  - application/usecases/auth (get/set/invalidate)
  - Redis (opcional) vía redis-py
  - threading.Lock para thread-safety en backend in-memory

Policy / Design Notes:
  - Cache es best-effort: si Redis falla, la operación cuenta como miss.
  - Nunca se cachean campos sensibles: solo la proyección pública.
============================================================
"""

from __future__ import annotations

import json
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from dataclasses import dataclass
from threading import Lock
from typing import Any, Optional
from uuid import UUID

from ..crosscutting.logger import logger


# ============================================================
# Abstracción de backend
# ============================================================
class CacheBackend(ABC):
    @abstractmethod
    def get(self, key: str) -> Optional[dict[str, Any]]:
        raise NotImplementedError

    @abstractmethod
    def set(self, key: str, value: dict[str, Any], ttl_seconds: int) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete(self, key: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def stats(self) -> dict:
        raise NotImplementedError


@dataclass(frozen=True, slots=True)
class CacheEntry:
    value: dict[str, Any]
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


# ============================================================
# In-memory backend (LRU + TTL)
# ============================================================
class InMemoryCacheBackend(CacheBackend):
    """
    Caché en memoria con TTL por entrada y eviction LRU (OrderedDict).

    Nota:
      - NO comparte estado entre procesos (cada worker tiene su caché).
    """

    def __init__(self, *, max_size: int = 1000) -> None:
        if max_size <= 0:
            raise ValueError("max_size must be > 0")
        self._max_size = max_size
        self._cache: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def get(self, key: str) -> Optional[dict[str, Any]]:
        now = time.time()
        with self._lock:
            entry = self._cache.get(key)
            if entry is None or entry.is_expired(now):
                self._cache.pop(key, None)
                self._misses += 1
                return None
            self._cache.move_to_end(key, last=True)
            self._hits += 1
            return dict(entry.value)

    def set(self, key: str, value: dict[str, Any], ttl_seconds: int) -> None:
        entry = CacheEntry(value=dict(value), expires_at=time.time() + ttl_seconds)
        with self._lock:
            if key not in self._cache and len(self._cache) >= self._max_size:
                self._cache.popitem(last=False)
                self._evictions += 1
            self._cache[key] = entry
            self._cache.move_to_end(key, last=True)

    def delete(self, key: str) -> None:
        with self._lock:
            self._cache.pop(key, None)

    def stats(self) -> dict:
        with self._lock:
            return {
                "backend": "in-memory",
                "size": len(self._cache),
                "max_size": self._max_size,
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
            }


# ============================================================
# Redis backend (TTL nativo + namespace)
# ============================================================
class RedisCacheBackend(CacheBackend):
    """Compartible entre workers; TTL nativo por clave (SETEX)."""

    CACHE_PREFIX = "store-rating:profile:"

    def __init__(self, *, redis_url: str) -> None:
        if not redis_url:
            raise ValueError("redis_url is required")

        import redis

        self._client = redis.from_url(redis_url, decode_responses=True)
        self._hits = 0
        self._misses = 0
        self._errors = 0

    def _k(self, key: str) -> str:
        return f"{self.CACHE_PREFIX}{key}"

    def ping(self) -> bool:
        return bool(self._client.ping())

    def get(self, key: str) -> Optional[dict[str, Any]]:
        try:
            data = self._client.get(self._k(key))
            value = json.loads(data) if data is not None else None
        except Exception as exc:
            self._errors += 1
            self._misses += 1
            logger.warning("Redis get falló", extra={"error": str(exc)})
            return None

        if not isinstance(value, dict):
            self._misses += 1
            return None
        self._hits += 1
        return value

    def set(self, key: str, value: dict[str, Any], ttl_seconds: int) -> None:
        try:
            self._client.setex(
                self._k(key), int(ttl_seconds), json.dumps(value, default=str)
            )
        except Exception as exc:
            self._errors += 1
            logger.warning("Redis set falló", extra={"error": str(exc)})

    def delete(self, key: str) -> None:
        try:
            self._client.delete(self._k(key))
        except Exception as exc:
            self._errors += 1
            logger.warning("Redis delete falló", extra={"error": str(exc)})

    def stats(self) -> dict:
        return {
            "backend": "redis",
            "hits": self._hits,
            "misses": self._misses,
            "errors": self._errors,
        }


# ============================================================
# Facade
# ============================================================
class ProfileCache:
    """Implementa el puerto domain.services.ProfileCache."""

    def __init__(self, backend: CacheBackend, *, ttl_seconds: int = 300) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be > 0")
        self._backend = backend
        self._ttl_seconds = ttl_seconds

    @classmethod
    def from_settings(
        cls, *, redis_url: str = "", ttl_seconds: int = 300
    ) -> "ProfileCache":
        """Redis si está configurado y responde; si no, memoria."""
        backend: CacheBackend | None = None
        if redis_url:
            try:
                redis_backend = RedisCacheBackend(redis_url=redis_url)
                redis_backend.ping()
                backend = redis_backend
            except Exception as exc:
                logger.warning(
                    "Redis no disponible: usando caché en memoria",
                    extra={"error": str(exc)},
                )
        return cls(backend or InMemoryCacheBackend(), ttl_seconds=ttl_seconds)

    def get(self, user_id: UUID) -> Optional[dict[str, Any]]:
        return self._backend.get(str(user_id))

    def set(self, user_id: UUID, profile: dict[str, Any]) -> None:
        self._backend.set(str(user_id), profile, self._ttl_seconds)

    def invalidate(self, user_id: UUID) -> None:
        self._backend.delete(str(user_id))

    @property
    def stats(self) -> dict:
        return self._backend.stats()
