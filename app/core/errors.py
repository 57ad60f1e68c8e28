# app/core/errors.py
"""
Error taxonomy for cart checkout and order administration.

Services raise these; `app/main.py` renders them as `{"detail": message}`
with the class' HTTP status code.
"""
from fastapi import status


class CheckoutError(Exception):
    """Base class. Carries a human-readable message for the caller."""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(CheckoutError):
    """Rejected before any external call (empty cart, missing identity, bad file)."""

    status_code = status.HTTP_400_BAD_REQUEST


class UploadError(CheckoutError):
    """Object storage write failed; no records were changed."""

    status_code = status.HTTP_502_BAD_GATEWAY


class PersistenceError(CheckoutError):
    """A record create/update failed. Earlier steps may have persisted."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class InvalidTransitionError(CheckoutError):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, current: str, new: str):
        super().__init__(f"Invalid status transition: {current} -> {new}")
        self.current = current
        self.new = new


class SubmissionInProgressError(CheckoutError):
    status_code = status.HTTP_409_CONFLICT


class OrderNotFoundError(CheckoutError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, message: str = "Order not found"):
        super().__init__(message)
