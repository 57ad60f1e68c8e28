# app/routers/cart.py
import uuid

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from sqlmodel import Session

from app.core.deps import get_cart
from app.database import get_session
from app.models.cart import CartItem
from app.models.product import Product
from app.repositories.product_repo import ProductRepository
from app.schemas.cart import CartItemCreate, CartItemUpdate, CartSummary, blank_to_none
from app.services.cart_store import CartStore

router = APIRouter(prefix="/cart", tags=["Cart"])

product_repo = ProductRepository()


def _get_valid_product(session: Session, payload: CartItemCreate) -> Product:
    product = product_repo.get_by_id(session, payload.product_id)
    if not product or not product.is_active:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Product not found",
        )
    if payload.color is not None and payload.color not in product.available_colors:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Color '{payload.color}' is not available for this product",
        )
    if payload.size is not None and payload.size not in product.sizes:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Size '{payload.size}' is not available for this product",
        )
    return product


@router.get("", response_model=CartSummary)
def get_my_cart(cart: CartStore = Depends(get_cart)):
    """
    Get the cart summary for this cart session.

    Cart session:
      - X-Cart-Session header, or the authenticated user's id.
    """
    return cart.summary()


@router.post("/items", response_model=CartSummary)
def add_to_cart(
    payload: CartItemCreate,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    cart: CartStore = Depends(get_cart),
):
    """
    Add a product to the cart.

    - Name, unit price and image are copied from the catalog now;
      later price changes do not affect this line.
    - Adding the same product/color/size again increases its quantity.
    """
    product = _get_valid_product(session, payload)
    cart.add_item(
        CartItem(
            product_id=product.id,
            product_name=product.name,
            quantity=payload.quantity,
            unit_price=product.price,
            color=payload.color,
            size=payload.size,
            image_url=product.image_url,
        )
    )
    background_tasks.add_task(cart.save)
    return cart.summary()


@router.patch("/items/{product_id}", response_model=CartSummary)
def update_cart_item(
    product_id: uuid.UUID,
    payload: CartItemUpdate,
    background_tasks: BackgroundTasks,
    cart: CartStore = Depends(get_cart),
):
    """
    Set the quantity of a cart line.

    A quantity below 1 removes the line.
    """
    if payload.quantity < 1:
        cart.remove_item(product_id, payload.color, payload.size)
    else:
        cart.update_quantity(product_id, payload.quantity, payload.color, payload.size)
    background_tasks.add_task(cart.save)
    return cart.summary()


@router.delete("/items/{product_id}", response_model=CartSummary)
def remove_cart_item(
    product_id: uuid.UUID,
    background_tasks: BackgroundTasks,
    color: str | None = None,
    size: str | None = None,
    cart: CartStore = Depends(get_cart),
):
    """
    Remove the line matching product/color/size (no-op if absent).

    Blank color/size match a line without that variant, as in PATCH.
    """
    cart.remove_item(product_id, blank_to_none(color), blank_to_none(size))
    background_tasks.add_task(cart.save)
    return cart.summary()


@router.delete("", response_model=CartSummary)
def clear_cart(
    background_tasks: BackgroundTasks,
    cart: CartStore = Depends(get_cart),
):
    """
    Clear the entire cart.
    """
    cart.clear_cart()
    background_tasks.add_task(cart.save)
    return cart.summary()
