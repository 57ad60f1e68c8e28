# app/models/cart.py
import uuid

from sqlmodel import SQLModel


CartKey = tuple[uuid.UUID, str | None, str | None]


class CartItem(SQLModel):
    """
    A single cart line.

    Not a table: the cart lives in session-scoped cart storage
    (see app/repositories/cart_repo.py) until it is submitted as an order.

    Identity is the (product_id, color, size) triple. A missing color/size
    only matches another missing color/size.

    No validation here; payload schemas enforce quantity >= 1 and price >= 0.
    """

    product_id: uuid.UUID
    product_name: str
    quantity: int
    unit_price: float
    color: str | None = None
    size: str | None = None
    image_url: str | None = None

    @property
    def key(self) -> CartKey:
        return (self.product_id, self.color, self.size)
