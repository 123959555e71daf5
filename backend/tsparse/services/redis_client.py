"""Simple Redis client helper (sync) used for shared rate-limit counters."""
from typing import Any

import redis


_clients: dict[str, Any] = {}


def get_redis(url: str) -> Any:
    client = _clients.get(url)
    if client is None:
        client = redis.from_url(url)
        _clients[url] = client
    return client
