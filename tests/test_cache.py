from servicehub import cache as cache_module
from servicehub.cache import JSONCache


def test_disabled_cache_always_builds():
    calls = []
    cache = JSONCache()
    assert cache.get_or_build("k", lambda: calls.append(1) or "v", ttl=60) == "v"
    assert cache.get_or_build("k", lambda: calls.append(1) or "v", ttl=60) == "v"
    assert len(calls) == 2


def test_knowledge_base_is_built_once(redis_store):
    calls = []

    def build():
        calls.append(1)
        return "services..."

    assert cache_module.cached_knowledge_base(build) == "services..."
    assert cache_module.cached_knowledge_base(build) == "services..."
    assert len(calls) == 1
    assert "servicehub:assistant:knowledge_base" in redis_store

    cache_module.invalidate_knowledge_base_cache()
    cache_module.cached_knowledge_base(build)
    assert len(calls) == 2


def test_webhook_ids(redis_store):
    assert cache_module.is_webhook_processed("msg_1") is False
    cache_module.mark_webhook_processed("msg_1")
    assert cache_module.is_webhook_processed("msg_1") is True


def test_redis_failure_reads_as_miss(monkeypatch):
    def unavailable():
        raise ConnectionError("redis down")

    monkeypatch.setattr(cache_module, "CACHE_ENABLED", True)
    monkeypatch.setattr(cache_module, "get_redis_client", unavailable)
    assert JSONCache().get("anything") is None
