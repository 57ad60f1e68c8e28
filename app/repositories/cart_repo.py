# app/repositories/cart_repo.py
import json
import logging
from typing import Any

from pydantic import ValidationError as PydanticValidationError
from redis import Redis

from app.models.cart import CartItem

logger = logging.getLogger(__name__)


def _dump(items: list[CartItem]) -> str:
    return json.dumps({"items": [it.model_dump(mode="json") for it in items]})


def _parse(raw: str, key: str) -> list[CartItem] | None:
    """Decode stored cart state; unreadable state counts as absent."""
    try:
        data = json.loads(raw)
        return [CartItem.model_validate(it) for it in data["items"]]
    except (json.JSONDecodeError, KeyError, TypeError, PydanticValidationError):
        logger.warning("Discarding unreadable cart state under %s", key)
        return None


class CartRepository:
    """
    Durable cart state, one full-state value per storage key.

    This base implementation keeps state in process memory, which is what
    tests and local development use. RedisCartRepository survives restarts.

    - load(key) -> list of items, or None if nothing is stored
    - save(key, items) overwrites the whole value
    """

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def load(self, key: str) -> list[CartItem] | None:
        raw = self._data.get(key)
        if raw is None:
            return None
        return _parse(raw, key)

    def save(self, key: str, items: list[CartItem]) -> None:
        self._data[key] = _dump(items)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class RedisCartRepository(CartRepository):
    """
    Redis-backed cart state: one JSON string per cart session key.
    """

    def __init__(self, client: Any, ttl_seconds: int | None = None) -> None:
        self.client = client
        self.ttl_seconds = ttl_seconds

    @classmethod
    def from_url(cls, url: str, ttl_seconds: int | None = None) -> "RedisCartRepository":
        return cls(Redis.from_url(url, decode_responses=True), ttl_seconds)

    def load(self, key: str) -> list[CartItem] | None:
        raw = self.client.get(key)
        if raw is None:
            return None
        return _parse(raw, key)

    def save(self, key: str, items: list[CartItem]) -> None:
        self.client.set(key, _dump(items), ex=self.ttl_seconds)

    def delete(self, key: str) -> None:
        self.client.delete(key)
