# app/schemas/order.py
import uuid
from datetime import datetime
from typing import Literal, get_args

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel

from app.core.errors import InvalidTransitionError

OrderStatus = Literal[
    "pending",
    "payment_uploaded",
    "confirmed",
    "shipped",
    "delivered",
    "cancelled",
]

ORDER_STATUSES: tuple[str, ...] = get_args(OrderStatus)

# pending -> payment_uploaded -> confirmed -> shipped -> delivered,
# cancelled from any non-terminal state.
ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    "pending": frozenset({"payment_uploaded", "cancelled"}),
    "payment_uploaded": frozenset({"confirmed", "cancelled"}),
    "confirmed": frozenset({"shipped", "cancelled"}),
    "shipped": frozenset({"delivered", "cancelled"}),
    "delivered": frozenset(),
    "cancelled": frozenset(),
}

TERMINAL_STATUSES: frozenset[str] = frozenset(
    s for s, targets in ALLOWED_TRANSITIONS.items() if not targets
)


def validate_transition(current: str, new: str) -> None:
    """
    Raise InvalidTransitionError unless `current -> new` is an edge of the
    order state machine. Re-writing the current status is accepted.
    """
    if current == new:
        return
    if new not in ALLOWED_TRANSITIONS.get(current, frozenset()):
        raise InvalidTransitionError(current, new)


class OrderRead(SQLModel):
    """
    Lightweight representation of an order (without items).
    """

    id: uuid.UUID
    user_id: uuid.UUID
    total_amount: float
    status: OrderStatus
    receipt_url: str | None
    admin_notes: str | None
    created_at: datetime


class OrderItemRead(SQLModel):
    """
    Representation of a single order line item.
    """

    id: uuid.UUID
    order_id: uuid.UUID
    product_id: uuid.UUID
    product_name: str
    quantity: int
    color: str | None
    size: str | None
    unit_price: float
    line_total: float


class OrderWithItemsRead(OrderRead):
    """
    Full order view including items.
    """

    items: list[OrderItemRead]


class OrderStatusUpdate(SQLModel):
    """
    Admin payload to change order status and/or notes.

    `force` skips state machine validation (explicit admin override).
    """

    model_config = ConfigDict(extra="forbid")

    status: OrderStatus
    admin_notes: str | None = None
    force: bool = False

    @field_validator("admin_notes")
    @classmethod
    def normalize_notes(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return v.strip()


class ReceiptUrlRead(SQLModel):
    signed_url: str
    expires_in: int
