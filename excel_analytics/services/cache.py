"""Redis caching helpers for parsed row records."""

import json

import redis

from excel_analytics.config import settings

_client = redis.Redis.from_url(settings.REDIS_URL, decode_responses=True)


def _key(file_id: int) -> str:
    return f"records:{file_id}"


def cache_records(file_id: int, records: list[dict]) -> None:
    """Serialise records to JSON and store in Redis."""
    _client.setex(_key(file_id), settings.CACHE_TTL_SECONDS, json.dumps(records, default=str))


def get_cached_records(file_id: int) -> list[dict] | None:
    """Return cached records or None if missing / expired."""
    raw = _client.get(_key(file_id))
    if raw is None:
        return None
    return json.loads(raw)


def delete_cached_records(file_id: int) -> None:
    """Remove cached records."""
    _client.delete(_key(file_id))
