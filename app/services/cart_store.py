# app/services/cart_store.py
import uuid

from app.models.cart import CartItem
from app.repositories.cart_repo import CartRepository
from app.schemas.cart import CartItemRead, CartSummary


class CartStore:
    """
    In-memory cart for one cart session, backed by a CartRepository.

    Responsibilities:
      - merge lines that share (product_id, color, size)
      - keep insertion order; updates never reorder
      - compute totals from the unit prices stored on each line

    Mutators never validate and never persist. The owner calls `load()`
    before use and `save()` after mutating.
    """

    def __init__(self, session_key: str, repo: CartRepository, namespace: str = "cart-storage"):
        self.session_key = session_key
        self.storage_key = f"{namespace}:{session_key}"
        self._repo = repo
        self._items: list[CartItem] = []

    # ---- lifecycle ----

    def load(self) -> "CartStore":
        """Hydrate from storage, or start empty if nothing is stored."""
        self._items = self._repo.load(self.storage_key) or []
        return self

    def save(self) -> None:
        """Write the full cart state."""
        self._repo.save(self.storage_key, list(self._items))

    # ---- reads ----

    @property
    def items(self) -> tuple[CartItem, ...]:
        return tuple(self._items)

    def is_empty(self) -> bool:
        return not self._items

    def snapshot(self) -> tuple[CartItem, ...]:
        """Copies of the current lines; later mutations do not affect them."""
        return tuple(it.model_copy() for it in self._items)

    def get_total_amount(self) -> float:
        return sum((it.unit_price * it.quantity for it in self._items), 0.0)

    def get_total_items(self) -> int:
        return sum(it.quantity for it in self._items)

    def summary(self) -> CartSummary:
        return CartSummary(
            items=[
                CartItemRead(
                    **it.model_dump(),
                    line_total=it.unit_price * it.quantity,
                )
                for it in self._items
            ],
            total_quantity=self.get_total_items(),
            total_price=self.get_total_amount(),
        )

    # ---- mutations ----

    def _find(
        self,
        product_id: uuid.UUID,
        color: str | None,
        size: str | None,
    ) -> int | None:
        key = (product_id, color, size)
        for idx, it in enumerate(self._items):
            if it.key == key:
                return idx
        return None

    def add_item(self, item: CartItem) -> None:
        idx = self._find(item.product_id, item.color, item.size)
        if idx is not None:
            self._items[idx].quantity += item.quantity
        else:
            self._items.append(item.model_copy())

    def remove_item(
        self,
        product_id: uuid.UUID,
        color: str | None = None,
        size: str | None = None,
    ) -> None:
        idx = self._find(product_id, color, size)
        if idx is not None:
            del self._items[idx]

    def update_quantity(
        self,
        product_id: uuid.UUID,
        quantity: int,
        color: str | None = None,
        size: str | None = None,
    ) -> None:
        """
        Replace the quantity of a line. Does not reject quantity < 1;
        callers route those to `remove_item`.
        """
        idx = self._find(product_id, color, size)
        if idx is not None:
            self._items[idx].quantity = quantity

    def clear_cart(self) -> None:
        self._items = []
