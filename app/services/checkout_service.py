# app/services/checkout_service.py
import logging
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Callable, Iterator

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from app.core.errors import (
    PersistenceError,
    SubmissionInProgressError,
    UploadError,
    ValidationError,
)
from app.core.storage_utils import (
    ObjectStorage,
    ReceiptFile,
    checkout_receipt_path,
    validate_receipt,
)
from app.models.order import Order, OrderItem
from app.repositories.order_repo import OrderRepository
from app.services.cart_store import CartStore

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SubmissionGuard:
    """
    At most one in-flight checkout per cart session key (per process).
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._in_flight: set[str] = set()

    def is_held(self, key: str) -> bool:
        with self._lock:
            return key in self._in_flight

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._lock:
            if key in self._in_flight:
                raise SubmissionInProgressError(
                    "An order is already being placed for this cart"
                )
            self._in_flight.add(key)
        try:
            yield
        finally:
            with self._lock:
                self._in_flight.discard(key)


class OrderSubmitter:
    """
    Turns a cart into an order.

    Steps (each gates the next, each commits on its own):
      1. Upload the receipt, if one was supplied.
      2. Insert the order (status 'payment_uploaded' with a receipt,
         'pending' otherwise; total = cart total at submission).
      3. Insert one order item per cart line.
      4. Clear the cart and store the cleared state.

    The cart is reloaded from cart storage once the submission guard is
    held and saved before it is released, so a second submission for the
    same cart session sees the cleared cart.

    Failures surface as UploadError / PersistenceError. Without
    compensation, earlier writes stay behind: an uploaded blob with no
    order, or an order row with zero items. With `compensate_on_failure`
    those writes are removed before the error is raised.
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        storage: ObjectStorage,
        guard: SubmissionGuard,
        receipt_max_bytes: int,
        compensate_on_failure: bool = False,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.order_repo = order_repo
        self.storage = storage
        self.guard = guard
        self.receipt_max_bytes = receipt_max_bytes
        self.compensate_on_failure = compensate_on_failure
        self.clock = clock

    def submit(
        self,
        session: Session,
        principal_id: uuid.UUID | None,
        cart: CartStore,
        receipt: ReceiptFile | None = None,
    ) -> tuple[Order, list[OrderItem]]:
        if principal_id is None:
            raise ValidationError("Sign in to place an order")
        if receipt is not None:
            validate_receipt(receipt, self.receipt_max_bytes)

        with self.guard.hold(cart.session_key):
            # Re-read under the guard: a copy loaded before an earlier
            # submission finished is stale.
            cart.load()
            if cart.is_empty():
                raise ValidationError("Cart is empty")
            order, items = self._run(session, principal_id, cart, receipt)
            cart.save()
            return order, items

    # -------- steps --------

    def _run(
        self,
        session: Session,
        principal_id: uuid.UUID,
        cart: CartStore,
        receipt: ReceiptFile | None,
    ) -> tuple[Order, list[OrderItem]]:
        lines = cart.snapshot()
        total_amount = cart.get_total_amount()

        receipt_path: str | None = None
        if receipt is not None:
            receipt_path = self._upload_receipt(principal_id, receipt)

        order = self._create_order(session, principal_id, total_amount, receipt_path)
        log_prefix = f"[Order: {order.id}]"
        logger.info("%s Created with status %s", log_prefix, order.status)

        items = [
            OrderItem(
                order_id=order.id,
                product_id=line.product_id,
                product_name=line.product_name,
                quantity=line.quantity,
                color=line.color,
                size=line.size,
                unit_price=line.unit_price,
            )
            for line in lines
        ]
        try:
            items = self.order_repo.create_items(session, items)
        except SQLAlchemyError as exc:
            session.rollback()
            if self.compensate_on_failure:
                self._discard_order(session, order, log_prefix)
                self._discard_blob(receipt_path, log_prefix)
            else:
                logger.warning("%s Persisted without items: %s", log_prefix, exc)
            raise PersistenceError("Failed to save order items") from exc

        logger.info("%s Saved %d item(s)", log_prefix, len(items))
        cart.clear_cart()
        return order, items

    def _upload_receipt(self, principal_id: uuid.UUID, receipt: ReceiptFile) -> str:
        path = checkout_receipt_path(principal_id, receipt.filename, self.clock())
        try:
            path = self.storage.upload(path, receipt.data, receipt.content_type)
        except Exception as exc:
            logger.error("Receipt upload to %s failed: %s", path, exc)
            raise UploadError(f"Failed to upload receipt: {exc}") from exc
        logger.info("Receipt uploaded to %s", path)
        return path

    def _create_order(
        self,
        session: Session,
        principal_id: uuid.UUID,
        total_amount: float,
        receipt_path: str | None,
    ) -> Order:
        order = Order(
            user_id=principal_id,
            total_amount=total_amount,
            status="payment_uploaded" if receipt_path else "pending",
            receipt_url=receipt_path,
        )
        try:
            return self.order_repo.create_order(session, order)
        except SQLAlchemyError as exc:
            session.rollback()
            if self.compensate_on_failure:
                self._discard_blob(receipt_path, "[Order: -]")
            elif receipt_path:
                logger.warning("Receipt %s left without an order", receipt_path)
            raise PersistenceError("Failed to create order") from exc

    # -------- compensation --------

    def _discard_order(self, session: Session, order: Order, log_prefix: str) -> None:
        try:
            self.order_repo.delete_order(session, order)
            logger.info("%s Compensation: order row removed", log_prefix)
        except SQLAlchemyError as exc:
            session.rollback()
            logger.critical("%s COMPENSATION FAILED, order row remains: %s", log_prefix, exc)

    def _discard_blob(self, path: str | None, log_prefix: str) -> None:
        if not path:
            return
        try:
            self.storage.remove(path)
            logger.info("%s Compensation: receipt %s removed", log_prefix, path)
        except Exception as exc:
            logger.critical("%s COMPENSATION FAILED, receipt %s remains: %s", log_prefix, path, exc)
