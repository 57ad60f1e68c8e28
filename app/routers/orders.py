# app/routers/orders.py
import uuid

from fastapi import (
    APIRouter,
    Depends,
    File,
    HTTPException,
    Query,
    UploadFile,
    status,
)
from sqlmodel import Session

from app.core.auth import Principal, require_admin, require_auth
from app.core.config import get_settings
from app.core.deps import get_cart, get_order_service, get_order_submitter
from app.core.storage_utils import ReceiptFile
from app.database import get_session
from app.schemas.order import (
    OrderRead,
    OrderStatusUpdate,
    OrderWithItemsRead,
    ReceiptUrlRead,
)
from app.services.cart_store import CartStore
from app.services.checkout_service import OrderSubmitter
from app.services.order_service import OrderService, build_order_with_items

router = APIRouter(prefix="/orders", tags=["Orders"])


def _read_receipt(upload: UploadFile) -> ReceiptFile:
    if not upload.content_type:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing content-type for uploaded file",
        )
    return ReceiptFile(
        filename=upload.filename or "receipt",
        content_type=upload.content_type,
        # One byte past the limit is enough for validation to reject it
        data=upload.file.read(get_settings().RECEIPT_MAX_BYTES + 1),
    )


# -------- User-facing endpoints --------


@router.post(
    "/checkout",
    response_model=OrderWithItemsRead,
    status_code=status.HTTP_201_CREATED,
)
def checkout(
    receipt: UploadFile | None = File(default=None),
    session: Session = Depends(get_session),
    principal: Principal = Depends(require_auth),
    cart: CartStore = Depends(get_cart),
    submitter: OrderSubmitter = Depends(get_order_submitter),
):
    """
    Place an order from the current cart.

    - Optional `receipt` file (JPEG, PNG, WEBP, PDF): order starts as
      payment_uploaded instead of pending.
    - On success the cart is emptied and the empty cart is stored
      before the response is sent.
    """
    receipt_file = _read_receipt(receipt) if receipt is not None and receipt.filename else None
    order, items = submitter.submit(session, principal.id, cart, receipt_file)
    return build_order_with_items(order, items)


@router.get(
    "/me",
    response_model=list[OrderWithItemsRead],
)
def list_my_orders(
    session: Session = Depends(get_session),
    principal: Principal = Depends(require_auth),
    service: OrderService = Depends(get_order_service),
    skip: int = 0,
    limit: int = 50,
):
    """
    List the authenticated user's orders, newest first.
    """
    return service.list_user_orders(session, principal.id, skip, limit)


@router.get(
    "/me/{order_id}",
    response_model=OrderWithItemsRead,
)
def get_my_order(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    principal: Principal = Depends(require_auth),
    service: OrderService = Depends(get_order_service),
):
    """
    Get a single order (with items) belonging to the current user.
    """
    return service.get_user_order(session, principal.id, order_id)


@router.post(
    "/me/{order_id}/receipt",
    response_model=OrderRead,
)
def upload_my_receipt(
    order_id: uuid.UUID,
    receipt: UploadFile = File(...),
    session: Session = Depends(get_session),
    principal: Principal = Depends(require_auth),
    service: OrderService = Depends(get_order_service),
):
    """
    Upload a payment receipt for an existing order.

    A pending order moves to payment_uploaded.
    """
    return service.upload_receipt(session, principal.id, order_id, _read_receipt(receipt))


# -------- Admin endpoints --------


@router.get(
    "",
    response_model=list[OrderWithItemsRead],
    dependencies=[Depends(require_admin)],
)
def list_all_orders(
    session: Session = Depends(get_session),
    service: OrderService = Depends(get_order_service),
    year: int | None = None,
    month: int | None = Query(default=None, ge=1, le=12),
    skip: int = 0,
    limit: int = 50,
):
    """
    List all orders (admin only).

    Query params (optional):
      - year + month: only orders created in that month
    """
    if (year is None) != (month is None):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="year and month must be given together",
        )
    return service.list_all_orders(session, skip, limit, year=year, month=month)


@router.get(
    "/{order_id}",
    response_model=OrderWithItemsRead,
    dependencies=[Depends(require_admin)],
)
def get_order_admin(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    service: OrderService = Depends(get_order_service),
):
    """
    Get any order with items (admin only).
    """
    return service.get_order_admin(session, order_id)


@router.patch(
    "/{order_id}/status",
    response_model=OrderRead,
    dependencies=[Depends(require_admin)],
)
def update_order_status(
    order_id: uuid.UUID,
    payload: OrderStatusUpdate,
    session: Session = Depends(get_session),
    service: OrderService = Depends(get_order_service),
):
    """
    Update order status and/or admin notes (admin only).

      pending          -> payment_uploaded, cancelled

      payment_uploaded -> confirmed, cancelled

      confirmed        -> shipped, cancelled

      shipped          -> delivered, cancelled

    `force=true` writes the status without checking the transition.
    """
    return service.set_status(
        session,
        order_id,
        payload.status,
        admin_notes=payload.admin_notes,
        force=payload.force,
    )


@router.get(
    "/{order_id}/receipt-url",
    response_model=ReceiptUrlRead,
    dependencies=[Depends(require_admin)],
)
def get_receipt_url(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    service: OrderService = Depends(get_order_service),
):
    """
    Time-limited link to the order's payment receipt (admin only).
    """
    order = service.get_order_admin(session, order_id)
    if not order.receipt_url:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Order has no receipt",
        )
    return ReceiptUrlRead(
        signed_url=service.get_receipt_view_url(order.receipt_url),
        expires_in=service.receipt_url_ttl,
    )
