# app/schemas/cart.py
import uuid

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field


def blank_to_none(v: str | None) -> str | None:
    if v is None:
        return v
    v = v.strip()
    return v or None


class CartItemCreate(SQLModel):
    """
    Payload for adding to cart.

    Name, price and image are snapshotted from the catalog by the router.
    """

    model_config = ConfigDict(extra="forbid")

    product_id: uuid.UUID
    quantity: int = Field(default=1, ge=1)
    color: str | None = None
    size: str | None = None

    @field_validator("color", "size")
    @classmethod
    def normalize_variant(cls, v: str | None) -> str | None:
        return blank_to_none(v)


class CartItemUpdate(SQLModel):
    """
    Payload for setting the quantity of a cart line.

    A quantity below 1 removes the line.
    """

    model_config = ConfigDict(extra="forbid")

    quantity: int
    color: str | None = None
    size: str | None = None

    @field_validator("color", "size")
    @classmethod
    def normalize_variant(cls, v: str | None) -> str | None:
        return blank_to_none(v)


class CartItemRead(SQLModel):
    """
    Read model for a single cart line, including line_total.
    """

    product_id: uuid.UUID
    product_name: str
    quantity: int
    unit_price: float
    color: str | None = None
    size: str | None = None
    image_url: str | None = None
    line_total: float


class CartSummary(SQLModel):
    """
    Full cart response model with totals.
    """

    items: list[CartItemRead]
    total_quantity: int
    total_price: float
