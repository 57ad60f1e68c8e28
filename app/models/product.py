# app/models/product.py
import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Column
from sqlmodel import SQLModel, Field


class Product(SQLModel, table=True):
    """
    Product catalog entry.

    Managed by the admin catalog tooling; this service only reads it
    to price cart lines.

    Columns:
      - id, name, description, category, price, image_url,
        available_colors, sizes, stock, is_active, created_at
    """

    __tablename__ = "products"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    name: str = Field(index=True)

    description: str | None = None

    category: str | None = Field(default=None, index=True)

    price: float = Field(ge=0, description="Unit price")

    image_url: str | None = None

    available_colors: list[str] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False),
    )

    sizes: list[str] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False),
    )

    stock: int = Field(default=0, ge=0)

    is_active: bool = Field(
        default=True,
        index=True,
        description="Whether this product is visible on the storefront",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
