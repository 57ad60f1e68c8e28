# app/routers/store.py
from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session

from app.database import get_session
from app.repositories.settings_repo import StoreSettingsRepository
from app.schemas.store import BankDetails
from app.services.settings_service import StoreSettingsService

router = APIRouter(prefix="/store", tags=["Store"])

repo = StoreSettingsRepository()
service = StoreSettingsService(repo)


@router.get("/bank-details", response_model=BankDetails)
def get_bank_details(session: Session = Depends(get_session)):
    """
    Bank account to pay into before uploading a receipt (public).
    """
    details = service.get_bank_details(session)
    if details is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Bank details are not configured",
        )
    return details
