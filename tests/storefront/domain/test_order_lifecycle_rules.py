"""Tests for cancellation, abandonment and the return window."""

from datetime import UTC, datetime, timedelta

import pytest
from protean.exceptions import ValidationError
from storefront.order.events import OrderCancelled, ReturnRequested, ReturnStatusChanged
from storefront.order.order import Order, ReturnStatus, TrackingStatus


def _make_order():
    return Order.create(
        customer_id="cust-001",
        items_data=[{"product_id": "prod-001", "name": "Cake", "quantity": 1, "price": 450.0}],
        shipping_address={"address": "1 Park St", "city": "Kolkata", "postal_code": "700016", "country": "India"},
        payment_method="COD",
        pricing={"total_price": 450.0},
    )


def _delivered_order(days_ago=0):
    order = _make_order()
    order.mark_delivered()
    order.delivered_at = datetime.now(UTC) - timedelta(days=days_ago)
    return order


class TestCancellation:
    def test_cancel_pending_order(self):
        order = _make_order()
        order._events.clear()
        order.cancel(cancelled_by="cust-001")

        assert order.tracking_status == TrackingStatus.CANCELLED.value
        entry = order.tracking_history[-1]
        assert entry.status == TrackingStatus.CANCELLED.value
        assert entry.message == "Order cancelled by user"
        assert isinstance(order._events[-1], OrderCancelled)
        assert order._events[-1].refund_pending is False

    @pytest.mark.parametrize("status", ["confirmed", "processing", "out_for_delivery"])
    def test_cancel_allowed_from_non_terminal_states(self, status):
        order = _make_order()
        order.tracking_status = status
        order.cancel()
        assert order.tracking_status == TrackingStatus.CANCELLED.value

    @pytest.mark.parametrize("status", ["delivered", "shipped", "cancelled"])
    def test_cancel_rejected_from_terminal_states(self, status):
        order = _make_order()
        order.tracking_status = status
        history = len(order.tracking_history)

        with pytest.raises(ValidationError) as exc:
            order.cancel()

        assert f"Cannot cancel order that is {status}" in exc.value.messages["tracking_status"]
        assert order.tracking_status == status
        assert len(order.tracking_history) == history

    def test_cancel_paid_order_flags_refund(self):
        order = _make_order()
        order.mark_paid(payment_id="pay_1", status="completed")
        order.cancel()

        assert order.payment_result.status == "refund_pending"
        assert order.payment_result.payment_id == "pay_1"
        assert order.tracking_history[-1].message == (
            "Order cancelled. Refund initiated to original payment source."
        )
        assert order._events[-1].refund_pending is True

    def test_paid_order_cannot_be_abandoned(self):
        order = _make_order()
        order.mark_paid(payment_id="pay_1", status="completed")
        with pytest.raises(ValidationError):
            order.assert_can_be_abandoned()

    def test_cancelled_order_cannot_be_abandoned(self):
        order = _make_order()
        order.cancel(cancelled_by="user-1")
        with pytest.raises(ValidationError) as exc:
            order.assert_can_be_abandoned()
        assert exc.value.messages == {"tracking_status": ["Cancelled orders cannot be abandoned"]}

    def test_unpaid_order_can_be_abandoned(self):
        _make_order().assert_can_be_abandoned()


class TestReturnWindow:
    def test_return_on_delivery_day(self):
        order = _delivered_order(days_ago=0)
        order._events.clear()
        order.request_return("Damaged box")

        assert order.return_status == ReturnStatus.REQUESTED.value
        assert order.return_reason == "Damaged box"
        assert isinstance(order._events[0], ReturnRequested)

    def test_return_at_exactly_seven_days(self):
        order = _make_order()
        order.mark_delivered()
        delivered_at = datetime(2024, 3, 1, 10, 0, tzinfo=UTC)
        order.delivered_at = delivered_at

        order.request_return("Wrong flavour", now=delivered_at + timedelta(days=7))
        assert order.return_status == ReturnStatus.REQUESTED.value

    def test_return_after_eight_days_rejected(self):
        order = _make_order()
        order.mark_delivered()
        delivered_at = datetime(2024, 3, 1, 10, 0, tzinfo=UTC)
        order.delivered_at = delivered_at

        with pytest.raises(ValidationError) as exc:
            order.request_return("Too late", now=delivered_at + timedelta(days=8))

        assert "Return request can only be submitted within 7 days of delivery" in exc.value.messages["delivered_at"]
        assert order.return_status == ReturnStatus.NONE.value

    def test_return_requires_delivery(self):
        order = _make_order()
        with pytest.raises(ValidationError) as exc:
            order.request_return("Changed mind")
        assert "Return can only be requested for delivered orders" in exc.value.messages["tracking_status"]

    def test_second_return_request_rejected(self):
        order = _delivered_order()
        order.request_return("Damaged box")
        with pytest.raises(ValidationError) as exc:
            order.request_return("Again")
        assert "Return request already exists for this order" in exc.value.messages["return_status"]


class TestReturnStatus:
    def test_approve(self):
        order = _delivered_order()
        order.request_return("Damaged box")
        order._events.clear()
        order.update_return_status("Approved", admin_note="Pickup on Monday")

        assert order.return_status == ReturnStatus.APPROVED.value
        assert order.return_admin_note == "Pickup on Monday"
        assert order.tracking_status == TrackingStatus.DELIVERED.value
        assert isinstance(order._events[0], ReturnStatusChanged)

    def test_completed_return_marks_order_returned(self):
        order = _delivered_order()
        order.request_return("Damaged box")
        order.update_return_status("Completed")
        assert order.tracking_status == TrackingStatus.RETURNED.value

    def test_reason_overwritten_only_when_given(self):
        order = _delivered_order()
        order.request_return("Damaged box")
        order.update_return_status("Rejected")
        assert order.return_reason == "Damaged box"
        order.update_return_status("Rejected", reason="Outside policy")
        assert order.return_reason == "Outside policy"

    def test_unknown_return_status_rejected(self):
        order = _delivered_order()
        with pytest.raises(ValidationError):
            order.update_return_status("Lost")
