# app/schemas/store.py
from sqlmodel import SQLModel


class BankDetails(SQLModel):
    """
    Bank account customers transfer to before uploading a receipt.
    """

    account_name: str = ""
    account_number: str = ""
    bank_name: str = ""
    branch: str = ""
    swift_code: str | None = None
