import importlib

import platemorph.settings as project_settings


def test_job_progress_cache_is_shared_redis_by_default(monkeypatch):
    monkeypatch.delenv("REDIS_CACHE_URL", raising=False)
    fresh = importlib.reload(project_settings)

    default = fresh.CACHES["default"]
    assert default["BACKEND"] == "django_redis.cache.RedisCache"
    assert default["LOCATION"] == "redis://redis:6379/1"


def test_redis_location_from_env(monkeypatch):
    monkeypatch.setenv("REDIS_CACHE_URL", "redis://cache.internal:6380/3")
    fresh = importlib.reload(project_settings)
    assert fresh.CACHES["default"]["LOCATION"] == "redis://cache.internal:6380/3"
