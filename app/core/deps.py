# app/core/deps.py
"""
Composition root: FastAPI dependencies that build the cart store and
the checkout/order services. Tests replace these via
`app.dependency_overrides`.
"""
import logging
from functools import lru_cache

from fastapi import Depends, Header, HTTPException, status

from app.core.auth import Principal, get_current_principal
from app.core.config import get_settings
from app.core.storage_utils import ObjectStorage, SupabaseStorage
from app.repositories.cart_repo import CartRepository, RedisCartRepository
from app.repositories.order_repo import OrderRepository
from app.services.cart_store import CartStore
from app.services.checkout_service import OrderSubmitter, SubmissionGuard
from app.services.order_service import OrderService

logger = logging.getLogger(__name__)


@lru_cache
def get_cart_repository() -> CartRepository:
    settings = get_settings()
    if settings.CART_REDIS_URL:
        return RedisCartRepository.from_url(settings.CART_REDIS_URL, settings.CART_TTL_SECONDS)
    logger.warning("CART_REDIS_URL is not set; carts are kept in process memory")
    return CartRepository()


@lru_cache
def get_receipt_storage() -> ObjectStorage:
    return SupabaseStorage(get_settings().RECEIPTS_BUCKET)


@lru_cache
def get_submission_guard() -> SubmissionGuard:
    return SubmissionGuard()


def get_cart_session_key(
    principal: Principal | None = Depends(get_current_principal),
    x_cart_session: str | None = Header(default=None),
) -> str:
    """
    Which cart this request works on.

    - X-Cart-Session header (browser-scoped cart, also for guests) -> "guest:<header>"
    - else the authenticated principal id -> "user:<id>"

    The prefixes keep the two key spaces apart: a header value can never
    name a signed-in user's cart.
    """
    if x_cart_session and x_cart_session.strip():
        return f"guest:{x_cart_session.strip()}"
    if principal is not None:
        return f"user:{principal.id}"
    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail="Missing X-Cart-Session header",
    )


def get_cart(
    session_key: str = Depends(get_cart_session_key),
    repo: CartRepository = Depends(get_cart_repository),
) -> CartStore:
    """A CartStore for this request, hydrated from cart storage."""
    return CartStore(session_key, repo, namespace=get_settings().CART_STORAGE_KEY).load()


def get_order_submitter(
    storage: ObjectStorage = Depends(get_receipt_storage),
    guard: SubmissionGuard = Depends(get_submission_guard),
) -> OrderSubmitter:
    settings = get_settings()
    return OrderSubmitter(
        OrderRepository(),
        storage,
        guard,
        receipt_max_bytes=settings.RECEIPT_MAX_BYTES,
        compensate_on_failure=settings.CHECKOUT_COMPENSATE_ON_FAILURE,
    )


def get_order_service(
    storage: ObjectStorage = Depends(get_receipt_storage),
) -> OrderService:
    settings = get_settings()
    return OrderService(
        OrderRepository(),
        storage,
        receipt_max_bytes=settings.RECEIPT_MAX_BYTES,
        receipt_url_ttl=settings.RECEIPT_URL_TTL_SECONDS,
    )
