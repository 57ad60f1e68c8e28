# app/models/store_setting.py
from typing import Any

from sqlalchemy import JSON, Column
from sqlmodel import SQLModel, Field


class StoreSetting(SQLModel, table=True):
    """
    Key/value store settings.

    Known keys:
      - "bank_details": account shown to customers paying by bank transfer
    """

    __tablename__ = "store_settings"

    key: str = Field(primary_key=True)

    value: dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSON, nullable=False),
    )
