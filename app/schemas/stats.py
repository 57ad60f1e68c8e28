from pydantic import ConfigDict
from sqlmodel import SQLModel


class AdminDashboardStats(SQLModel):
    """
    Headline figures for the admin dashboard.

    `year`/`month` echo the filter applied to the order figures
    (both None for all time). `total_products` is never filtered.
    """
    model_config = ConfigDict(extra="forbid")

    year: int | None
    month: int | None
    total_orders: int
    total_revenue: float
    pending_orders: int
    total_products: int
