# app/services/stats_service.py
from sqlmodel import Session

from app.core.errors import ValidationError
from app.repositories.stats_repo import StatsRepository
from app.schemas.stats import AdminDashboardStats


class StatsService:
    """
    Orchestrates aggregated admin dashboard statistics.
    """

    def __init__(self, repo: StatsRepository):
        self.repo = repo

    def get_admin_dashboard_stats(
        self,
        session: Session,
        year: int | None = None,
        month: int | None = None,
    ) -> AdminDashboardStats:
        if (year is None) != (month is None):
            raise ValidationError("year and month must be given together")
        if month is not None and not 1 <= month <= 12:
            raise ValidationError("month must be between 1 and 12")

        return AdminDashboardStats(
            year=year,
            month=month,
            total_orders=self.repo.count_orders(session, year, month),
            total_revenue=self.repo.total_revenue(session, year, month),
            pending_orders=self.repo.count_awaiting_review(session, year, month),
            total_products=self.repo.count_products(session),
        )
