# app/repositories/product_repo.py
import uuid

from sqlmodel import Session

from app.models.product import Product


class ProductRepository:
    """
    Read-only catalog lookups used to price cart lines.
    """

    def get_by_id(self, session: Session, product_id: uuid.UUID) -> Product | None:
        return session.get(Product, product_id)
