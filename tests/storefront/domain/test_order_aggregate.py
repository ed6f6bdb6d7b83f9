"""Tests for the Order aggregate: creation, payment and tracking."""

import pytest
from protean.exceptions import ValidationError
from storefront.order.events import OrderPaid, OrderPlaced, TrackingStatusChanged
from storefront.order.order import Order, PaymentMethod, ReturnStatus, TrackingStatus

ADDRESS = {"address": "1 Park St", "city": "Kolkata", "postal_code": "700016", "country": "India"}


def _make_order(payment_method="COD", items=None):
    return Order.create(
        customer_id="cust-001",
        items_data=items or [{"product_id": "prod-001", "name": "Cake", "quantity": 2, "price": 450.0}],
        shipping_address=ADDRESS,
        payment_method=payment_method,
        pricing={"items_price": 900.0, "shipping_price": 50.0, "total_price": 950.0},
    )


class TestOrderCreation:
    def test_defaults(self):
        order = _make_order()
        assert order.tracking_status == TrackingStatus.PENDING.value
        assert order.return_status == ReturnStatus.NONE.value
        assert order.is_paid is False
        assert order.is_delivered is False
        assert order.pricing.total_price == 950.0
        assert len(order.items) == 1
        assert order.items[0].quantity == 2

    def test_empty_items_rejected(self):
        with pytest.raises(ValidationError) as exc:
            Order.create(
                customer_id="cust-001",
                items_data=[],
                shipping_address=ADDRESS,
                payment_method="COD",
                pricing={},
            )
        assert "No order items" in exc.value.messages["items"]

    def test_raises_order_placed(self):
        order = _make_order()
        assert len(order._events) == 1
        event = order._events[0]
        assert isinstance(event, OrderPlaced)
        assert event.payment_method == PaymentMethod.COD.value
        assert event.item_count == 1

    def test_short_ref_is_last_eight_characters(self):
        order = _make_order()
        assert order.short_ref == str(order.id)[-8:]

    def test_owner_check(self):
        order = _make_order()
        assert order.is_owned_by("cust-001")
        assert not order.is_owned_by("cust-002")


class TestPaymentMethod:
    @pytest.mark.parametrize("value", ["online", "Online", "razorpay", "RAZORPAY"])
    def test_online_variants(self, value):
        assert PaymentMethod.parse(value) == PaymentMethod.ONLINE

    @pytest.mark.parametrize("value", ["COD", "cod", "cash_on_delivery"])
    def test_cod_variants(self, value):
        assert PaymentMethod.parse(value) == PaymentMethod.COD

    def test_unknown_rejected(self):
        with pytest.raises(ValidationError):
            PaymentMethod.parse("barter")

    def test_online_order(self):
        order = _make_order(payment_method="razorpay")
        assert order.payment_method == PaymentMethod.ONLINE.value
        assert order.is_online_payment


class TestPayment:
    def test_mark_paid(self):
        order = _make_order()
        order._events.clear()
        order.mark_paid(payment_id="pay_1", status="COMPLETED", email_address="a@example.com")

        assert order.is_paid is True
        assert order.paid_at is not None
        assert order.payment_result.payment_id == "pay_1"
        assert order.payment_result.email_address == "a@example.com"
        assert isinstance(order._events[0], OrderPaid)

    def test_verified_payment_stamps_receipt_and_history(self):
        order = _make_order(payment_method="Online")
        assert order.record_verified_payment("pay_1", "order_1") is True

        assert order.is_paid is True
        assert order.payment_result.status == "completed"
        assert order.payment_result.payment_method == "razorpay"
        assert order.payment_result.provider_order_id == "order_1"
        entry = order.tracking_history[-1]
        assert entry.status == TrackingStatus.PENDING.value
        assert entry.message == "Order placed and payment received"
        assert entry.location == "Online"

    def test_verified_payment_is_idempotent(self):
        order = _make_order(payment_method="Online")
        order.record_verified_payment("pay_1", "order_1")
        history = len(order.tracking_history)

        assert order.record_verified_payment("pay_2", "order_1") is False
        assert order.payment_result.payment_id == "pay_1"
        assert len(order.tracking_history) == history

    def test_captured_payment_confirms_order(self):
        order = _make_order(payment_method="Online")
        assert order.record_captured_payment("pay_1", "order_1") is True

        assert order.is_paid is True
        assert order.tracking_status == TrackingStatus.CONFIRMED.value
        assert order.tracking_history[-1].message == "Order confirmed via Webhook"

    def test_captured_payment_on_paid_order_is_noop(self):
        order = _make_order(payment_method="Online")
        order.record_captured_payment("pay_1", "order_1")
        order._events.clear()

        assert order.record_captured_payment("pay_1", "order_1") is False
        assert len(order.tracking_history) == 1
        assert len(order._events) == 0


class TestTracking:
    def test_advance_forward(self):
        order = _make_order()
        order._events.clear()
        order.advance_tracking("processing", message="Packed", location="Warehouse")

        assert order.tracking_status == TrackingStatus.PROCESSING.value
        assert order.tracking_history[-1].message == "Packed"
        assert isinstance(order._events[0], TrackingStatusChanged)
        assert order._events[0].previous_status == "pending"

    def test_advance_backwards_rejected(self):
        order = _make_order()
        order.advance_tracking("shipped")
        with pytest.raises(ValidationError):
            order.advance_tracking("confirmed")
        assert order.tracking_status == TrackingStatus.SHIPPED.value

    def test_advance_to_delivered_marks_delivery(self):
        order = _make_order()
        order.advance_tracking("out_for_delivery")
        order.advance_tracking("delivered")
        assert order.is_delivered is True
        assert order.delivered_at is not None

    def test_cannot_advance_cancelled_order(self):
        order = _make_order()
        order.cancel()
        with pytest.raises(ValidationError):
            order.advance_tracking("processing")

    def test_unknown_status_rejected(self):
        order = _make_order()
        with pytest.raises(ValidationError):
            order.advance_tracking("teleported")

    def test_mark_delivered(self):
        order = _make_order()
        order.mark_delivered(updated_by="admin-1")
        assert order.tracking_status == TrackingStatus.DELIVERED.value
        assert order.is_delivered is True
        assert order.tracking_history[-1].status == TrackingStatus.DELIVERED.value


class TestBulkStatus:
    def test_delivered(self):
        order = _make_order()
        assert order.apply_bulk_status("delivered") is True
        assert order.is_delivered is True
        assert order.tracking_status == TrackingStatus.DELIVERED.value

    def test_paid(self):
        order = _make_order()
        assert order.apply_bulk_status("paid") is True
        assert order.is_paid is True
        assert order.paid_at is not None

    def test_tracking_target(self):
        order = _make_order()
        assert order.apply_bulk_status("shipped") is True
        assert order.tracking_status == TrackingStatus.SHIPPED.value

    def test_same_status_is_not_a_change(self):
        order = _make_order()
        assert order.apply_bulk_status("pending") is False

    def test_unknown_status_is_not_a_change(self):
        order = _make_order()
        assert order.apply_bulk_status("lost") is False
        assert order.tracking_status == TrackingStatus.PENDING.value
