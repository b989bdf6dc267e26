from __future__ import annotations

import hashlib
import json
from typing import Any, Dict, Optional

from redis import Redis

from ..core.config import get_settings


def embedding_cache_key(model: str, text: str) -> str:
    signature = hashlib.sha256(f"{model}:{text}".encode("utf-8")).hexdigest()
    return f"embedding:{signature}"


class CacheService:
    """Redis-backed cache service with simple hit/miss metrics."""

    DEFAULT_LAYERS = ["embedding"]

    def __init__(self, redis_client: Optional[Redis] = None, metric_layers: Optional[list[str]] = None):
        if redis_client is not None:
            self.redis = redis_client
        else:
            settings = get_settings()
            self.redis = Redis.from_url(settings.redis_url, decode_responses=True)
        layers = metric_layers or self.DEFAULT_LAYERS
        self.metrics: Dict[str, Dict[str, int]] = {layer: {"hit": 0, "miss": 0} for layer in layers}

    def set(self, key: str, value: str, ttl: int) -> None:
        self.redis.setex(key, ttl, value)

    def get(self, key: str, layer: Optional[str] = None) -> Optional[str]:
        value = self.redis.get(key)
        if value is not None:
            self._record(layer, "hit")
            return value
        self._record(layer, "miss")
        return None

    def get_json(self, key: str, layer: Optional[str] = None) -> Optional[Any]:
        raw = self.get(key, layer=layer)
        if raw is None:
            return None
        return json.loads(raw)

    def set_json(self, key: str, payload: Any, ttl: int) -> None:
        self.set(key, json.dumps(payload), ttl)

    def delete(self, key: str) -> None:
        self.redis.delete(key)

    def _record(self, layer: Optional[str], outcome: str) -> None:
        if layer and layer in self.metrics:
            self.metrics[layer][outcome] += 1
