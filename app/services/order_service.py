# app/services/order_service.py
import logging
import uuid
from datetime import datetime, timezone
from typing import Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from app.core.errors import OrderNotFoundError, PersistenceError, UploadError
from app.core.storage_utils import (
    ObjectStorage,
    ReceiptFile,
    order_receipt_path,
    validate_receipt,
)
from app.models.order import Order, OrderItem
from app.repositories.order_repo import OrderRepository
from app.schemas.order import (
    OrderItemRead,
    OrderRead,
    OrderWithItemsRead,
    validate_transition,
)

logger = logging.getLogger(__name__)


class OrderService:
    """
    Business logic for existing orders.

    Responsibilities:
      - list / fetch orders with their items (customer and admin views)
      - receipt upload for an existing order (pending -> payment_uploaded)
      - signed URLs for receipt review
      - admin status changes validated against the order state machine
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        storage: ObjectStorage,
        receipt_max_bytes: int,
        receipt_url_ttl: int,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.order_repo = order_repo
        self.storage = storage
        self.receipt_max_bytes = receipt_max_bytes
        self.receipt_url_ttl = receipt_url_ttl
        self.clock = clock

    # -------- User-facing operations --------

    def list_user_orders(
        self,
        session: Session,
        user_id: uuid.UUID,
        skip: int = 0,
        limit: int = 50,
    ) -> list[OrderWithItemsRead]:
        """
        List orders for the given user, newest first, with items.
        """
        orders = self.order_repo.list_for_user(session, user_id, skip, limit)
        return self._with_items(session, orders)

    def get_user_order(
        self,
        session: Session,
        user_id: uuid.UUID,
        order_id: uuid.UUID,
    ) -> OrderWithItemsRead:
        """
        404 if order not found or does not belong to this user.
        """
        order = self._get_owned(session, user_id, order_id)
        items = self.order_repo.list_items_for_order(session, order.id)
        return build_order_with_items(order, items)

    def upload_receipt(
        self,
        session: Session,
        user_id: uuid.UUID,
        order_id: uuid.UUID,
        receipt: ReceiptFile,
    ) -> OrderRead:
        """
        Attach a payment receipt to an existing order.

        Steps:
          1. Validate the file.
          2. Ensure the order exists and belongs to the user.
          3. Upload to <user_id>/<order_id>-<epoch_ms>.<ext>.
          4. Store the path; a pending order becomes payment_uploaded.
        """
        validate_receipt(receipt, self.receipt_max_bytes)
        order = self._get_owned(session, user_id, order_id)

        path = order_receipt_path(user_id, order.id, receipt.filename, self.clock())
        try:
            path = self.storage.upload(path, receipt.data, receipt.content_type)
        except Exception as exc:
            raise UploadError(f"Failed to upload receipt: {exc}") from exc

        order.receipt_url = path
        if order.status == "pending":
            order.status = "payment_uploaded"

        try:
            order = self.order_repo.update_order(session, order)
        except SQLAlchemyError as exc:
            session.rollback()
            logger.warning("[Order: %s] Receipt %s uploaded but not linked", order_id, path)
            raise PersistenceError("Failed to attach receipt to order") from exc

        logger.info("[Order: %s] Receipt attached, status %s", order.id, order.status)
        return OrderRead.model_validate(order)

    # -------- Admin operations --------

    def list_all_orders(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
        year: int | None = None,
        month: int | None = None,
    ) -> list[OrderWithItemsRead]:
        """
        List all orders (admin only), optionally for one calendar month.
        """
        orders = self.order_repo.list_all(session, skip, limit, year=year, month=month)
        return self._with_items(session, orders)

    def get_order_admin(
        self,
        session: Session,
        order_id: uuid.UUID,
    ) -> OrderWithItemsRead:
        order = self._get(session, order_id)
        items = self.order_repo.list_items_for_order(session, order.id)
        return build_order_with_items(order, items)

    def set_status(
        self,
        session: Session,
        order_id: uuid.UUID,
        new_status: str,
        admin_notes: str | None = None,
        force: bool = False,
    ) -> OrderRead:
        """
        Admin-only status update.

          pending          -> payment_uploaded, cancelled
          payment_uploaded -> confirmed, cancelled
          confirmed        -> shipped, cancelled
          shipped          -> delivered, cancelled
          delivered        -> (terminal)
          cancelled        -> (terminal)

        Any other edge raises InvalidTransitionError unless `force` is set.
        """
        order = self._get(session, order_id)

        if not force:
            validate_transition(order.status, new_status)
        elif order.status != new_status:
            logger.warning(
                "[Order: %s] Forced status change %s -> %s",
                order.id, order.status, new_status,
            )

        order.status = new_status
        if admin_notes is not None:
            order.admin_notes = admin_notes

        try:
            order = self.order_repo.update_order(session, order)
        except SQLAlchemyError as exc:
            session.rollback()
            raise PersistenceError("Failed to update order") from exc
        return OrderRead.model_validate(order)

    def get_receipt_view_url(self, path: str) -> str:
        """
        Signed URL for a stored receipt, valid for `receipt_url_ttl` seconds.
        """
        return self.storage.create_signed_url(path, self.receipt_url_ttl)

    # -------- helpers --------

    def _get(self, session: Session, order_id: uuid.UUID) -> Order:
        order = self.order_repo.get_by_id(session, order_id)
        if not order:
            raise OrderNotFoundError()
        return order

    def _get_owned(self, session: Session, user_id: uuid.UUID, order_id: uuid.UUID) -> Order:
        order = self.order_repo.get_by_id(session, order_id)
        if not order or order.user_id != user_id:
            raise OrderNotFoundError()
        return order

    def _with_items(self, session: Session, orders: list[Order]) -> list[OrderWithItemsRead]:
        grouped = self.order_repo.list_items_for_orders(session, [o.id for o in orders])
        return [build_order_with_items(o, grouped[o.id]) for o in orders]


def build_order_with_items(order: Order, items: list[OrderItem]) -> OrderWithItemsRead:
    """
    Compose OrderWithItemsRead from ORM models.
    """
    item_dtos = [
        OrderItemRead(
            id=it.id,
            order_id=it.order_id,
            product_id=it.product_id,
            product_name=it.product_name,
            quantity=it.quantity,
            color=it.color,
            size=it.size,
            unit_price=it.unit_price,
            line_total=it.quantity * it.unit_price,
        )
        for it in items
    ]
    return OrderWithItemsRead(
        id=order.id,
        user_id=order.user_id,
        total_amount=order.total_amount,
        status=order.status,
        receipt_url=order.receipt_url,
        admin_notes=order.admin_notes,
        created_at=order.created_at,
        items=item_dtos,
    )
