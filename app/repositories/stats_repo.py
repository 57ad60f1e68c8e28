# app/repositories/stats_repo.py
from sqlalchemy import func
from sqlmodel import Session, col, select

from app.models.order import Order
from app.models.product import Product
from app.repositories.order_repo import month_bounds

# Orders an admin still has to act on
AWAITING_REVIEW_STATUSES = ("pending", "payment_uploaded")


class StatsRepository:
    """
    Read-only aggregated queries for the admin dashboard.

    Order figures can be narrowed to one calendar month of `created_at`.
    """

    def _in_month(self, stmt, year: int | None, month: int | None):
        if year is None or month is None:
            return stmt
        start, end = month_bounds(year, month)
        return stmt.where(Order.created_at >= start, Order.created_at < end)

    def count_orders(
        self,
        session: Session,
        year: int | None = None,
        month: int | None = None,
    ) -> int:
        stmt = self._in_month(select(func.count()).select_from(Order), year, month)
        value = session.exec(stmt).one()
        return int(value or 0)

    def total_revenue(
        self,
        session: Session,
        year: int | None = None,
        month: int | None = None,
    ) -> float:
        """
        Sum of total_amount over all orders, whatever their status.
        """
        stmt = self._in_month(
            select(func.coalesce(func.sum(Order.total_amount), 0.0)), year, month
        )
        value = session.exec(stmt).one()
        return float(value or 0.0)

    def count_awaiting_review(
        self,
        session: Session,
        year: int | None = None,
        month: int | None = None,
    ) -> int:
        stmt = (
            select(func.count())
            .select_from(Order)
            .where(col(Order.status).in_(AWAITING_REVIEW_STATUSES))
        )
        value = session.exec(self._in_month(stmt, year, month)).one()
        return int(value or 0)

    def count_products(self, session: Session) -> int:
        stmt = select(func.count()).select_from(Product)
        value = session.exec(stmt).one()
        return int(value or 0)
