"""Order aggregate — the order document and every transition applied to it.

An order embeds its line items and an append-only tracking history. Two
independent status axes live on the document: ``tracking_status`` for the
fulfillment stage and ``return_status`` for the after-sales return flow.
Payment state (``is_paid``, ``paid_at``, ``payment_result``) is stamped by
payment reconciliation.

Tracking State Machine:
    pending → confirmed → processing → shipped → out_for_delivery → delivered
    pending/confirmed/processing/out_for_delivery → cancelled
    delivered → returned (only through the return flow)
"""

import math
from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from storefront.domain import storefront
from storefront.order.events import (
    OrderCancelled,
    OrderPaid,
    OrderPlaced,
    ReturnRequested,
    ReturnStatusChanged,
    TrackingStatusChanged,
)

RETURN_WINDOW_DAYS = 7


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class TrackingStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    RETURNED = "returned"


class ReturnStatus(Enum):
    NONE = "None"
    REQUESTED = "Requested"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    COMPLETED = "Completed"


class PaymentMethod(Enum):
    COD = "COD"
    ONLINE = "Online"

    @classmethod
    def parse(cls, value):
        """Map the checkout's payment method string onto the enumeration."""
        normalized = (value or "").strip().lower()
        if normalized in ("online", "razorpay"):
            return cls.ONLINE
        if normalized in ("cod", "cash_on_delivery"):
            return cls.COD
        raise ValidationError({"payment_method": [f"Unsupported payment method: {value}"]})


# Linear fulfillment progression
_PROGRESSION = [
    TrackingStatus.PENDING,
    TrackingStatus.CONFIRMED,
    TrackingStatus.PROCESSING,
    TrackingStatus.SHIPPED,
    TrackingStatus.OUT_FOR_DELIVERY,
    TrackingStatus.DELIVERED,
]

# States from which cancellation is refused
_NON_CANCELLABLE_STATES = {
    TrackingStatus.DELIVERED,
    TrackingStatus.SHIPPED,
    TrackingStatus.CANCELLED,
}

# States that no longer move along the progression
_TERMINAL_STATES = {
    TrackingStatus.DELIVERED,
    TrackingStatus.CANCELLED,
    TrackingStatus.RETURNED,
}

# Bulk update targets that only move the tracking status
_BULK_TRACKING_TARGETS = {
    TrackingStatus.PENDING.value,
    TrackingStatus.CONFIRMED.value,
    TrackingStatus.PROCESSING.value,
    TrackingStatus.SHIPPED.value,
    TrackingStatus.OUT_FOR_DELIVERY.value,
}

# Every target a bulk update understands
BULK_STATUS_TARGETS = _BULK_TRACKING_TARGETS | {TrackingStatus.DELIVERED.value, "paid"}


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@storefront.value_object(part_of="Order")
class ShippingAddress:
    """Where the order ships, captured at checkout and never edited."""

    address = String(required=True, max_length=255)
    city = String(required=True, max_length=100)
    postal_code = String(required=True, max_length=20)
    country = String(required=True, max_length=100)


@storefront.value_object(part_of="Order")
class OrderPricing:
    """Price breakdown as submitted at checkout."""

    items_price = Float(default=0.0)
    tax_price = Float(default=0.0)
    shipping_price = Float(default=0.0)
    total_price = Float(default=0.0)


@storefront.value_object(part_of="Order")
class PaymentResult:
    """Opaque receipt from the payment provider."""

    payment_id = String(max_length=255)
    status = String(max_length=50)
    update_time = DateTime()
    provider_order_id = String(max_length=255)
    payment_method = String(max_length=50)
    email_address = String(max_length=255)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@storefront.entity(part_of="Order")
class OrderItem:
    """A line item. ``product_id`` names a primary product or an add-on."""

    product_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    quantity = Integer(required=True, min_value=1)
    price = Float(required=True, min_value=0.0)
    image = String(max_length=500)


@storefront.entity(part_of="Order")
class TrackingEvent:
    status = String(choices=TrackingStatus, required=True)
    message = String(max_length=500)
    location = String(max_length=255)
    timestamp = DateTime(required=True)
    updated_by = Identifier()


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@storefront.aggregate
class Order:
    customer_id = Identifier(required=True)
    items = HasMany(OrderItem)
    shipping_address = ValueObject(ShippingAddress)
    payment_method = String(choices=PaymentMethod, required=True)
    pricing = ValueObject(OrderPricing)
    customization = Text()
    is_paid = Boolean(default=False)
    paid_at = DateTime()
    payment_result = ValueObject(PaymentResult)
    is_delivered = Boolean(default=False)
    delivered_at = DateTime()
    tracking_status = String(choices=TrackingStatus, default=TrackingStatus.PENDING.value)
    tracking_history = HasMany(TrackingEvent)
    return_status = String(choices=ReturnStatus, default=ReturnStatus.NONE.value)
    return_reason = String(max_length=1000)
    return_admin_note = String(max_length=1000)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        customer_id,
        items_data,
        shipping_address,
        payment_method,
        pricing,
        customization=None,
    ):
        """Create a new order from checkout data.

        Args:
            customer_id: The user placing the order.
            items_data: List of dicts with product_id, name, quantity, price
                        and optionally image.
            shipping_address: Dict with address, city, postal_code, country.
            payment_method: A ``PaymentMethod`` or the raw checkout string.
            pricing: Dict with items_price, tax_price, shipping_price,
                     total_price.
        """
        if not items_data:
            raise ValidationError({"items": ["No order items"]})

        method = payment_method if isinstance(payment_method, PaymentMethod) else PaymentMethod.parse(payment_method)
        now = datetime.now(UTC)

        order = cls(
            customer_id=customer_id,
            items=[OrderItem(**item) for item in items_data],
            shipping_address=ShippingAddress(**shipping_address) if shipping_address else None,
            payment_method=method.value,
            pricing=OrderPricing(
                items_price=pricing.get("items_price", 0.0),
                tax_price=pricing.get("tax_price", 0.0),
                shipping_price=pricing.get("shipping_price", 0.0),
                total_price=pricing.get("total_price", 0.0),
            ),
            customization=customization,
            tracking_status=TrackingStatus.PENDING.value,
            return_status=ReturnStatus.NONE.value,
            created_at=now,
            updated_at=now,
        )

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                customer_id=str(customer_id),
                payment_method=method.value,
                total_price=order.pricing.total_price,
                item_count=len(order.items),
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    @property
    def short_ref(self) -> str:
        """The last eight characters of the id, as shown to people."""
        return str(self.id)[-8:]

    @property
    def is_online_payment(self) -> bool:
        return self.payment_method == PaymentMethod.ONLINE.value

    def is_owned_by(self, user_id) -> bool:
        return str(self.customer_id) == str(user_id)

    def _append_history(self, status, message, location=None, updated_by=None, timestamp=None):
        self.add_tracking_history(
            TrackingEvent(
                status=status,
                message=message,
                location=location,
                timestamp=timestamp or datetime.now(UTC),
                updated_by=updated_by,
            )
        )

    def _move_tracking(self, target, now):
        previous = self.tracking_status
        self.tracking_status = target.value
        self.updated_at = now
        if previous != target.value:
            self.raise_(
                TrackingStatusChanged(
                    order_id=str(self.id),
                    previous_status=previous,
                    new_status=target.value,
                    changed_at=now,
                )
            )

    # -------------------------------------------------------------------
    # Payment
    # -------------------------------------------------------------------
    def mark_paid(
        self,
        payment_id,
        status,
        update_time=None,
        provider_order_id=None,
        payment_method=None,
        email_address=None,
    ):
        """Stamp the order as paid with the provider's receipt."""
        now = datetime.now(UTC)
        self.is_paid = True
        self.paid_at = now
        self.payment_result = PaymentResult(
            payment_id=payment_id,
            status=status,
            update_time=update_time or now,
            provider_order_id=provider_order_id,
            payment_method=payment_method,
            email_address=email_address,
        )
        self.updated_at = now

        self.raise_(
            OrderPaid(
                order_id=str(self.id),
                customer_id=str(self.customer_id),
                payment_id=payment_id,
                payment_status=status,
                paid_at=now,
            )
        )

    def record_verified_payment(self, payment_id, provider_order_id):
        """Apply a client-confirmed payment. Returns False if already paid."""
        if self.is_paid:
            return False

        self.mark_paid(
            payment_id=payment_id,
            status="completed",
            provider_order_id=provider_order_id,
            payment_method="razorpay",
        )
        self._append_history(
            TrackingStatus.PENDING.value,
            "Order placed and payment received",
            location="Online",
        )
        return True

    def record_captured_payment(self, payment_id, provider_order_id):
        """Apply a webhook-confirmed capture. Returns False if already paid."""
        if self.is_paid:
            return False

        now = datetime.now(UTC)
        self.mark_paid(
            payment_id=payment_id,
            status="completed",
            provider_order_id=provider_order_id,
            payment_method="razorpay",
        )
        self._move_tracking(TrackingStatus.CONFIRMED, now)
        self._append_history(
            TrackingStatus.CONFIRMED.value,
            "Order confirmed via Webhook",
            location="Online",
            timestamp=now,
        )
        return True

    # -------------------------------------------------------------------
    # Cancellation
    # -------------------------------------------------------------------
    def cancel(self, cancelled_by=None):
        """Cancel the order. Paid orders are flagged for refund."""
        current = TrackingStatus(self.tracking_status)
        if current in _NON_CANCELLABLE_STATES:
            raise ValidationError({"tracking_status": [f"Cannot cancel order that is {current.value}"]})

        now = datetime.now(UTC)
        message = "Order cancelled by user"

        if self.is_paid:
            receipt = self.payment_result
            self.payment_result = PaymentResult(
                payment_id=receipt.payment_id if receipt else None,
                status="refund_pending",
                update_time=now,
                provider_order_id=receipt.provider_order_id if receipt else None,
                payment_method=receipt.payment_method if receipt else None,
                email_address=receipt.email_address if receipt else None,
            )
            message = "Order cancelled. Refund initiated to original payment source."

        self._move_tracking(TrackingStatus.CANCELLED, now)
        self._append_history(TrackingStatus.CANCELLED.value, message, updated_by=cancelled_by, timestamp=now)

        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                customer_id=str(self.customer_id),
                cancelled_by=cancelled_by,
                refund_pending=bool(self.is_paid),
                cancelled_at=now,
            )
        )

    def assert_can_be_abandoned(self):
        """Stock for a cancelled order is already back on the shelf."""
        if self.is_paid:
            raise ValidationError({"is_paid": ["Paid orders cannot be abandoned"]})
        if self.tracking_status == TrackingStatus.CANCELLED.value:
            raise ValidationError({"tracking_status": ["Cancelled orders cannot be abandoned"]})

    # -------------------------------------------------------------------
    # Fulfillment
    # -------------------------------------------------------------------
    def mark_delivered(self, updated_by=None):
        current = TrackingStatus(self.tracking_status)
        if current in (TrackingStatus.CANCELLED, TrackingStatus.RETURNED):
            raise ValidationError({"tracking_status": [f"Cannot deliver order that is {current.value}"]})

        now = datetime.now(UTC)
        self.is_delivered = True
        self.delivered_at = now
        self._move_tracking(TrackingStatus.DELIVERED, now)
        self._append_history(TrackingStatus.DELIVERED.value, "Order delivered", updated_by=updated_by, timestamp=now)

    def advance_tracking(self, status, message=None, location=None, updated_by=None):
        """Move the order forward along the fulfillment progression."""
        try:
            target = TrackingStatus(status)
        except ValueError:
            raise ValidationError({"tracking_status": [f"Unknown tracking status: {status}"]}) from None

        current = TrackingStatus(self.tracking_status)
        if current in _TERMINAL_STATES:
            raise ValidationError({"tracking_status": [f"Cannot update tracking of order that is {current.value}"]})
        if target not in _PROGRESSION or _PROGRESSION.index(target) <= _PROGRESSION.index(current):
            raise ValidationError({"tracking_status": [f"Cannot move from {current.value} to {target.value}"]})

        if target == TrackingStatus.DELIVERED:
            self.mark_delivered(updated_by=updated_by)
            return

        now = datetime.now(UTC)
        self._move_tracking(target, now)
        self._append_history(
            target.value,
            message or f"Order is {target.value.replace('_', ' ')}",
            location=location,
            updated_by=updated_by,
            timestamp=now,
        )

    def apply_bulk_status(self, status, now=None):
        """Apply one admin bulk-update target.

        Returns True when the document changed. Unrecognised targets leave
        the order untouched.
        """
        now = now or datetime.now(UTC)

        if status == TrackingStatus.DELIVERED.value:
            self.is_delivered = True
            self.delivered_at = now
            self._move_tracking(TrackingStatus.DELIVERED, now)
            return True

        if status == "paid":
            self.is_paid = True
            self.paid_at = now
            self.updated_at = now
            return True

        if status in _BULK_TRACKING_TARGETS:
            if self.tracking_status == status:
                return False
            self._move_tracking(TrackingStatus(status), now)
            return True

        return False

    # -------------------------------------------------------------------
    # Returns
    # -------------------------------------------------------------------
    def request_return(self, reason, now=None):
        """Open a return request within the return window after delivery."""
        if TrackingStatus(self.tracking_status) != TrackingStatus.DELIVERED:
            raise ValidationError({"tracking_status": ["Return can only be requested for delivered orders"]})

        now = now or datetime.now(UTC)
        if self.delivered_at:
            delivered_at = self.delivered_at
            if delivered_at.tzinfo is None:
                delivered_at = delivered_at.replace(tzinfo=UTC)
            elapsed_days = math.floor(abs((now - delivered_at).total_seconds()) / 86400)
            if elapsed_days > RETURN_WINDOW_DAYS:
                raise ValidationError(
                    {"delivered_at": [f"Return request can only be submitted within {RETURN_WINDOW_DAYS} days of delivery"]}
                )

        if self.return_status != ReturnStatus.NONE.value:
            raise ValidationError({"return_status": ["Return request already exists for this order"]})

        self.return_status = ReturnStatus.REQUESTED.value
        self.return_reason = reason
        self.updated_at = now

        self.raise_(
            ReturnRequested(
                order_id=str(self.id),
                customer_id=str(self.customer_id),
                reason=reason,
                requested_at=now,
            )
        )

    def update_return_status(self, status, reason=None, admin_note=None):
        """Set the return status. Completing a return marks the order returned."""
        try:
            target = ReturnStatus(status)
        except ValueError:
            raise ValidationError({"return_status": [f"Unknown return status: {status}"]}) from None

        now = datetime.now(UTC)
        previous = self.return_status
        self.return_status = target.value
        if reason:
            self.return_reason = reason
        if admin_note is not None:
            self.return_admin_note = admin_note
        self.updated_at = now

        if target == ReturnStatus.COMPLETED:
            self._move_tracking(TrackingStatus.RETURNED, now)

        self.raise_(
            ReturnStatusChanged(
                order_id=str(self.id),
                previous_status=previous,
                new_status=target.value,
                changed_at=now,
            )
        )


@storefront.repository(part_of=Order)
class OrderRepository:
    def find(self, order_id) -> Order | None:
        return self._dao.query.filter(id=str(order_id)).all().first

    def for_customer(self, customer_id) -> list[Order]:
        """A customer's visible orders: cash-on-delivery or paid, newest first."""
        orders = self._dao.query.filter(customer_id=str(customer_id)).all().items
        visible = [o for o in orders if o.payment_method == PaymentMethod.COD.value or o.is_paid]
        return sorted(visible, key=lambda o: o.created_at, reverse=True)

    def everything(self) -> list[Order]:
        return sorted(self._dao.query.all().items, key=lambda o: o.created_at, reverse=True)

    def with_ids(self, order_ids) -> list[Order]:
        return self._dao.query.filter(id__in=[str(i) for i in order_ids]).all().items

    def return_requests(self) -> list[Order]:
        orders = self._dao.query.filter(
            return_status__in=[
                ReturnStatus.REQUESTED.value,
                ReturnStatus.APPROVED.value,
                ReturnStatus.REJECTED.value,
                ReturnStatus.COMPLETED.value,
            ]
        ).all().items
        return sorted(orders, key=lambda o: o.updated_at, reverse=True)
