# app/services/settings_service.py
from sqlmodel import Session

from app.repositories.settings_repo import StoreSettingsRepository
from app.schemas.store import BankDetails

BANK_DETAILS_KEY = "bank_details"


class StoreSettingsService:
    """
    Read-only access to store settings shown at checkout.
    """

    def __init__(self, repo: StoreSettingsRepository):
        self.repo = repo

    def get_bank_details(self, session: Session) -> BankDetails | None:
        value = self.repo.get_value(session, BANK_DETAILS_KEY)
        if value is None:
            return None
        return BankDetails.model_validate(value)
