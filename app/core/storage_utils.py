# app/core/storage_utils.py
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Protocol

from supabase import Client

from app.core.errors import ValidationError
from app.core.supabase_client import supabase_admin


# Receipts: photos or PDFs of a bank transfer
ALLOWED_RECEIPT_CONTENT_TYPES: frozenset[str] = frozenset(
    {
        "image/jpeg",
        "image/png",
        "image/webp",
        "application/pdf",
    }
)


@dataclass(frozen=True)
class ReceiptFile:
    """An uploaded receipt as received from the client."""

    filename: str
    content_type: str
    data: bytes


class ObjectStorage(Protocol):
    def upload(self, path: str, data: bytes, content_type: str) -> str: ...

    def create_signed_url(self, path: str, expires_in: int) -> str: ...

    def remove(self, path: str) -> None: ...


class SupabaseStorage:
    """
    One Supabase Storage bucket, addressed by opaque object paths.

    The client is resolved on first use so importing this module never
    needs credentials.
    """

    def __init__(self, bucket: str, client_factory: Callable[[], Client] = supabase_admin):
        self.bucket = bucket
        self._client_factory = client_factory

    def _bucket(self):
        return self._client_factory().storage.from_(self.bucket)

    def upload(self, path: str, data: bytes, content_type: str) -> str:
        """
        Upload raw bytes and return the object path.

        Paths are unique per upload, so no upsert.

        Raises:
            Any exception raised by Supabase client if upload fails.
        """
        self._bucket().upload(path, data, {"content-type": content_type})
        return path

    def create_signed_url(self, path: str, expires_in: int) -> str:
        """
        Time-limited read URL for a private object.
        """
        result = self._bucket().create_signed_url(path, expires_in)
        # storage3 has returned both spellings across releases
        url = result.get("signedURL") or result.get("signedUrl")
        if not url:
            raise RuntimeError(f"Storage returned no signed URL for {path!r}")
        return url

    def remove(self, path: str) -> None:
        # Supabase Python client expects a list of paths.
        self._bucket().remove([path])


def file_extension(filename: str) -> str:
    """
    Text after the last '.' of a file name.

    A name without a dot is returned whole.
    """
    return filename.rsplit(".", 1)[-1]


def epoch_millis(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def checkout_receipt_path(principal_id: uuid.UUID, filename: str, moment: datetime) -> str:
    """
    Path pattern:
        <principal_id>/<epoch_ms>.<ext>
    """
    return f"{principal_id}/{epoch_millis(moment)}.{file_extension(filename)}"


def order_receipt_path(
    principal_id: uuid.UUID,
    order_id: uuid.UUID,
    filename: str,
    moment: datetime,
) -> str:
    """
    Path pattern for receipts uploaded after the order exists:
        <principal_id>/<order_id>-<epoch_ms>.<ext>
    """
    return f"{principal_id}/{order_id}-{epoch_millis(moment)}.{file_extension(filename)}"


def validate_receipt(receipt: ReceiptFile, max_bytes: int) -> None:
    """
    Reject unsupported or oversized receipts before anything is uploaded.
    """
    if receipt.content_type not in ALLOWED_RECEIPT_CONTENT_TYPES:
        raise ValidationError("Unsupported receipt type. Allowed: JPEG, PNG, WEBP, PDF.")
    if not receipt.data:
        raise ValidationError("Receipt file is empty.")
    if len(receipt.data) > max_bytes:
        raise ValidationError(f"Receipt too large (max {max_bytes // (1024 * 1024)}MB).")
