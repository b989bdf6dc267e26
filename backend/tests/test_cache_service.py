import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

import time

from incident_rag.services.cache_service import CacheService, embedding_cache_key


class FakeRedis:
    def __init__(self):
        self.store = {}

    def setex(self, key, ttl, value):
        expires_at = time.time() + ttl
        self.store[key] = (value, expires_at)

    def get(self, key):
        entry = self.store.get(key)
        if not entry:
            return None
        value, expires_at = entry
        if expires_at < time.time():
            self.store.pop(key, None)
            return None
        return value

    def delete(self, key):
        self.store.pop(key, None)


def test_cache_service_set_and_get():
    cache = CacheService(redis_client=FakeRedis())
    key = embedding_cache_key("text-embedding-3-large", "vpn drops")
    cache.set(key, "result", ttl=1)
    assert cache.get(key, layer="embedding") == "result"
    assert cache.metrics["embedding"]["hit"] == 1

    cache.set_json(key, [0.1, 0.2], ttl=1)
    assert cache.get_json(key, layer="embedding") == [0.1, 0.2]
    assert cache.metrics["embedding"]["hit"] == 2


def test_cache_service_expiry():
    cache = CacheService(redis_client=FakeRedis())
    key = embedding_cache_key("text-embedding-3-large", "dns")
    cache.set(key, "value", ttl=0)
    time.sleep(0.01)
    assert cache.get(key, layer="embedding") is None
    assert cache.metrics["embedding"]["miss"] >= 1


def test_cache_key_depends_on_model_and_text():
    key = embedding_cache_key("model-a", "vpn")
    assert key.startswith("embedding:")
    assert key == embedding_cache_key("model-a", "vpn")
    assert key != embedding_cache_key("model-b", "vpn")
    assert key != embedding_cache_key("model-a", "dns")


def test_delete_and_unknown_layer():
    cache = CacheService(redis_client=FakeRedis())
    cache.set("k", "v", ttl=10)
    cache.delete("k")
    assert cache.get("k", layer="other") is None
    assert "other" not in cache.metrics
