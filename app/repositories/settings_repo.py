# app/repositories/settings_repo.py
from typing import Any

from sqlmodel import Session

from app.models.store_setting import StoreSetting


class StoreSettingsRepository:

    def get_value(self, session: Session, key: str) -> dict[str, Any] | None:
        row = session.get(StoreSetting, key)
        if row is None:
            return None
        return row.value
