# app/models/order.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Order(SQLModel, table=True):
    """
    Customer order created from a submitted cart.

    Columns:
      - id, user_id, total_amount, status, receipt_url,
        admin_notes, created_at

    `receipt_url` holds the storage path of the uploaded receipt
    (private bucket; read back through a signed URL).
    """

    __tablename__ = "orders"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    # Supabase auth.users.id (JWT "sub")
    user_id: uuid.UUID = Field(index=True)

    # Cart total at submission time; never recomputed from items
    total_amount: float = Field(
        description="Cart total at the moment the order was submitted",
    )

    # pending | payment_uploaded | confirmed | shipped | delivered | cancelled
    status: str = Field(
        default="pending",
        index=True,
        description="Order status lifecycle",
    )

    receipt_url: str | None = Field(
        default=None,
        description="Storage path of the payment receipt",
    )

    admin_notes: str | None = Field(
        default=None,
        description="Internal notes written by admins",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        index=True,
        description="Creation timestamp (UTC)",
    )


class OrderItem(SQLModel, table=True):
    """
    Line item inside an order. One per cart line at submission time.

    Columns:
      - id, order_id, product_id, product_name, quantity,
        color, size, unit_price
    """

    __tablename__ = "order_items"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_id: uuid.UUID = Field(
        foreign_key="orders.id",
        index=True,
    )

    product_id: uuid.UUID = Field(index=True)

    product_name: str

    quantity: int = Field(description="Quantity ordered")

    color: str | None = None
    size: str | None = None

    unit_price: float = Field(
        description="Unit price stored on the cart line",
    )
