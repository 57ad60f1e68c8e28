"""OrderSubmitter: success paths, failure paths and the double-submit guard."""
import logging
import uuid
from datetime import datetime, timezone

import pytest
from sqlmodel import select

from app.core.errors import (
    PersistenceError,
    SubmissionInProgressError,
    UploadError,
    ValidationError,
)
from app.core.storage_utils import ReceiptFile
from app.models.cart import CartItem
from app.models.order import Order, OrderItem
from app.repositories.cart_repo import CartRepository
from app.repositories.order_repo import OrderRepository
from app.services.cart_store import CartStore
from app.services.checkout_service import OrderSubmitter, SubmissionGuard
from fakes import FailingItemsRepository, FailingOrderRepository, FakeStorage

FIXED_NOW = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)
FIXED_MS = int(FIXED_NOW.timestamp() * 1000)
MAX_BYTES = 1024

SHIRT = uuid.UUID("11111111-1111-1111-1111-111111111111")
CAP = uuid.UUID("22222222-2222-2222-2222-222222222222")


def _png(data: bytes = b"\x89PNG fake") -> ReceiptFile:
    return ReceiptFile(filename="transfer.png", content_type="image/png", data=data)


def _submitter(repo=None, storage=None, guard=None, compensate=False):
    return OrderSubmitter(
        repo or OrderRepository(),
        storage if storage is not None else FakeStorage(),
        guard or SubmissionGuard(),
        receipt_max_bytes=MAX_BYTES,
        compensate_on_failure=compensate,
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture()
def cart(cart_repo):
    cart = CartStore("browser-1", cart_repo)
    cart.add_item(
        CartItem(
            product_id=SHIRT,
            product_name="Linen shirt",
            quantity=2,
            unit_price=10.0,
            color="White",
            size="M",
        )
    )
    cart.add_item(CartItem(product_id=CAP, product_name="Cap", quantity=1, unit_price=5.0))
    cart.save()
    return cart


def _orders(session):
    return list(session.exec(select(Order)).all())


def _items(session):
    return list(session.exec(select(OrderItem)).all())


class TestSubmitSuccess:
    def test_without_receipt_order_is_pending(self, session, cart, user_id):
        order, items = _submitter().submit(session, user_id, cart)

        assert order.status == "pending"
        assert order.receipt_url is None
        assert order.user_id == user_id
        assert order.total_amount == pytest.approx(25.0)
        assert len(items) == 2

    def test_with_receipt_order_is_payment_uploaded(self, session, cart, user_id, storage):
        order, _ = _submitter(storage=storage).submit(session, user_id, cart, _png())

        expected_path = f"{user_id}/{FIXED_MS}.png"
        assert order.status == "payment_uploaded"
        assert order.receipt_url == expected_path
        assert storage.objects[expected_path] == (b"\x89PNG fake", "image/png")

    def test_items_copy_cart_lines(self, session, cart, user_id):
        order, _ = _submitter().submit(session, user_id, cart)

        rows = {it.product_id: it for it in _items(session)}
        assert set(rows) == {SHIRT, CAP}
        shirt = rows[SHIRT]
        assert (shirt.order_id, shirt.product_name, shirt.quantity) == (order.id, "Linen shirt", 2)
        assert (shirt.color, shirt.size, shirt.unit_price) == ("White", "M", 10.0)
        assert rows[CAP].color is None

    def test_cart_is_emptied(self, session, cart, user_id):
        _submitter().submit(session, user_id, cart)

        assert cart.get_total_items() == 0
        assert cart.is_empty()

    def test_total_is_cart_total_not_recomputed(self, session, user_id):
        cart = CartStore("browser-2", CartRepository())
        cart.add_item(CartItem(product_id=SHIRT, product_name="Shirt", quantity=3, unit_price=0.1))
        cart.save()

        order, _ = _submitter().submit(session, user_id, cart)

        assert order.total_amount == pytest.approx(0.3)
        assert _orders(session)[0].total_amount == pytest.approx(0.3)


class TestSubmitRejected:
    def test_empty_cart(self, session, user_id, storage):
        empty = CartStore("browser-1", CartRepository())

        with pytest.raises(ValidationError, match="Cart is empty"):
            _submitter(storage=storage).submit(session, user_id, empty, _png())

        assert _orders(session) == []
        assert storage.objects == {}

    def test_no_principal(self, session, cart):
        with pytest.raises(ValidationError):
            _submitter().submit(session, None, cart)

        assert _orders(session) == []
        assert cart.get_total_items() == 3

    @pytest.mark.parametrize(
        "receipt",
        [
            ReceiptFile("notes.txt", "text/plain", b"hello"),
            ReceiptFile("empty.png", "image/png", b""),
            ReceiptFile("huge.pdf", "application/pdf", b"x" * (MAX_BYTES + 1)),
        ],
    )
    def test_bad_receipt_is_rejected_before_upload(self, session, cart, user_id, storage, receipt):
        with pytest.raises(ValidationError):
            _submitter(storage=storage).submit(session, user_id, cart, receipt)

        assert storage.objects == {}
        assert _orders(session) == []


class TestPartialFailures:
    def test_upload_failure_writes_nothing(self, session, cart, user_id):
        storage = FakeStorage(fail_uploads=True)

        with pytest.raises(UploadError):
            _submitter(storage=storage).submit(session, user_id, cart, _png())

        assert _orders(session) == []
        assert cart.get_total_items() == 3

    def test_order_insert_failure_leaves_receipt_behind(self, session, cart, user_id, storage):
        submitter = _submitter(repo=FailingOrderRepository(), storage=storage)

        with pytest.raises(PersistenceError, match="Failed to create order"):
            submitter.submit(session, user_id, cart, _png())

        assert list(storage.objects) == [f"{user_id}/{FIXED_MS}.png"]
        assert _orders(session) == []
        assert cart.get_total_items() == 3

    def test_items_failure_leaves_order_without_items(self, session, cart, user_id, caplog):
        submitter = _submitter(repo=FailingItemsRepository())

        with caplog.at_level(logging.WARNING, logger="app.services.checkout_service"):
            with pytest.raises(PersistenceError, match="Failed to save order items"):
                submitter.submit(session, user_id, cart)

        orders = _orders(session)
        assert len(orders) == 1
        assert orders[0].status == "pending"
        assert _items(session) == []
        assert cart.get_total_items() == 3
        assert "Persisted without items" in caplog.text


class TestCompensation:
    def test_order_insert_failure_removes_receipt(self, session, cart, user_id, storage):
        submitter = _submitter(repo=FailingOrderRepository(), storage=storage, compensate=True)

        with pytest.raises(PersistenceError):
            submitter.submit(session, user_id, cart, _png())

        assert storage.objects == {}
        assert storage.removed == [f"{user_id}/{FIXED_MS}.png"]

    def test_items_failure_removes_order_and_receipt(self, session, cart, user_id, storage):
        submitter = _submitter(repo=FailingItemsRepository(), storage=storage, compensate=True)

        with pytest.raises(PersistenceError):
            submitter.submit(session, user_id, cart, _png())

        assert _orders(session) == []
        assert storage.objects == {}

    def test_failed_compensation_still_raises_original_error(self, session, cart, user_id, caplog):
        storage = FakeStorage(fail_removes=True)
        submitter = _submitter(repo=FailingOrderRepository(), storage=storage, compensate=True)

        with pytest.raises(PersistenceError):
            submitter.submit(session, user_id, cart, _png())

        assert len(storage.objects) == 1
        assert "COMPENSATION FAILED" in caplog.text


class TestSubmissionGuard:
    def test_second_submit_for_same_cart_is_rejected(self, session, cart, user_id, guard):
        submitter = _submitter(guard=guard)

        with guard.hold(cart.session_key):
            with pytest.raises(SubmissionInProgressError):
                submitter.submit(session, user_id, cart)

        assert _orders(session) == []

    def test_other_carts_are_not_blocked(self, session, cart, user_id, guard):
        submitter = _submitter(guard=guard)

        with guard.hold("another-browser"):
            order, _ = submitter.submit(session, user_id, cart)

        assert order.status == "pending"

    def test_guard_released_after_failure(self, session, cart, user_id, guard):
        failing = _submitter(storage=FakeStorage(fail_uploads=True), guard=guard)

        with pytest.raises(UploadError):
            failing.submit(session, user_id, cart, _png())

        assert not guard.is_held(cart.session_key)
        order, _ = _submitter(guard=guard).submit(session, user_id, cart)
        assert order.status == "pending"

    def test_guard_released_after_success(self, session, cart, user_id, guard):
        _submitter(guard=guard).submit(session, user_id, cart)

        assert not guard.is_held(cart.session_key)

    def test_stale_copy_of_a_submitted_cart_places_no_second_order(
        self, session, cart, cart_repo, user_id, guard
    ):
        # Two requests loaded the same cart before either submitted
        first = CartStore(cart.session_key, cart_repo).load()
        second = CartStore(cart.session_key, cart_repo).load()
        submitter = _submitter(guard=guard)

        submitter.submit(session, user_id, first)
        with pytest.raises(ValidationError, match="Cart is empty"):
            submitter.submit(session, user_id, second)

        assert len(_orders(session)) == 1
        assert CartStore(cart.session_key, cart_repo).load().is_empty()


def test_submission_stores_the_cleared_cart(session, cart, cart_repo, user_id):
    _submitter().submit(session, user_id, cart)

    assert cart_repo.load(cart.storage_key) == []


def test_submission_uses_stored_cart_state(session, user_id):
    repo = CartRepository()
    stored = CartStore("browser-3", repo)
    stored.add_item(CartItem(product_id=CAP, product_name="Cap", quantity=4, unit_price=5.0))
    stored.save()
    unsaved = CartStore("browser-3", repo).load()
    unsaved.add_item(CartItem(product_id=SHIRT, product_name="Shirt", quantity=1, unit_price=10.0))

    order, items = _submitter().submit(session, user_id, unsaved)

    assert order.total_amount == pytest.approx(20.0)
    assert [it.product_id for it in items] == [CAP]
