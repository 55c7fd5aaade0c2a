from django.conf import settings
from django.core.cache import cache

KEY_PREFIX = "plates:job:"


class JobProgressStore:
    """Latest progress message of a background generation, kept in the cache."""

    def __init__(self, job_id: str, ttl: int | None = None):
        self.job_id = job_id
        self._ttl = ttl if ttl is not None else settings.PLATE_JOB_TTL

    @property
    def key(self) -> str:
        return f"{KEY_PREFIX}{self.job_id}"

    def push(self, status: str) -> None:
        cache.set(self.key, status, timeout=self._ttl)

    def latest(self) -> str | None:
        return cache.get(self.key)
