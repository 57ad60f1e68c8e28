"""Fake adapters for tests."""
from sqlalchemy.exc import SQLAlchemyError

from app.repositories.order_repo import OrderRepository


class FakeStorage:
    """In-memory object storage with switchable failures."""

    def __init__(self, fail_uploads: bool = False, fail_removes: bool = False):
        self.fail_uploads = fail_uploads
        self.fail_removes = fail_removes
        self.objects: dict[str, tuple[bytes, str]] = {}
        self.removed: list[str] = []
        self.signed: list[tuple[str, int]] = []

    def upload(self, path: str, data: bytes, content_type: str) -> str:
        if self.fail_uploads:
            raise RuntimeError("storage unavailable")
        self.objects[path] = (data, content_type)
        return path

    def create_signed_url(self, path: str, expires_in: int) -> str:
        self.signed.append((path, expires_in))
        return f"https://storage.test/signed/{path}?expires_in={expires_in}"

    def remove(self, path: str) -> None:
        if self.fail_removes:
            raise RuntimeError("storage unavailable")
        self.objects.pop(path, None)
        self.removed.append(path)


class FailingOrderRepository(OrderRepository):
    """Order insert fails."""

    def create_order(self, session, order):
        raise SQLAlchemyError("insert into orders failed")


class FailingItemsRepository(OrderRepository):
    """Order insert succeeds, order_items insert fails."""

    def create_items(self, session, items):
        raise SQLAlchemyError("insert into order_items failed")


class StubRedis:
    """The subset of the redis client used by RedisCartRepository."""

    def __init__(self):
        self.values: dict[str, str] = {}
        self.expiry: dict[str, int | None] = {}

    def get(self, key):
        return self.values.get(key)

    def set(self, key, value, ex=None):
        self.values[key] = value
        self.expiry[key] = ex

    def delete(self, key):
        self.values.pop(key, None)
