"""Payment reconciliation on the order — commands and handler.

Payment can be confirmed by the client after checkout (signature verified
against the key secret) or by the provider's ``payment.captured`` webhook.
Whichever arrives first marks the order paid and sends the notifications
that were held back when the online order was placed; the other finds the
order already paid and changes nothing.
"""

import structlog
from protean import handle
from protean.fields import DateTime, Identifier, String
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.errors import UpstreamError
from storefront.gateway import get_gateway
from storefront.notification import dispatcher
from storefront.order.order import Order

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Order")
class MarkOrderPaid:
    order_id = Identifier(required=True)
    payment_id = String(max_length=255)
    status = String(max_length=50)
    update_time = DateTime()
    email_address = String(max_length=255)


@storefront.command(part_of="Order")
class VerifyPayment:
    order_id = Identifier(required=True)
    provider_order_id = String(max_length=255)
    payment_id = String(max_length=255)
    signature = String(max_length=255)


@storefront.command(part_of="Order")
class ConfirmPaymentCapture:
    order_id = Identifier(required=True)
    payment_id = String(required=True, max_length=255)
    provider_order_id = String(max_length=255)


@storefront.command(part_of="Order")
class RecordPaymentFailure:
    order_id = Identifier(required=True)
    error = String(max_length=1000)


def _announce_payment(order):
    dispatcher.send_new_order_notifications(order)
    dispatcher.send_payment_notification(order, succeeded=True)
    dispatcher.send_order_confirmed_notification(order)


@storefront.command_handler(part_of=Order)
class PaymentHandler:
    @handle(MarkOrderPaid)
    def mark_paid(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.mark_paid(
            payment_id=command.payment_id,
            status=command.status,
            update_time=command.update_time,
            email_address=command.email_address,
        )
        repo.add(order)
        logger.info("Order marked paid", order_id=str(order.id), payment_id=command.payment_id)

    @handle(VerifyPayment)
    def verify_payment(self, command):
        """Check a client-confirmed payment and mark the order paid.

        Returns:
            True when this call marked the order paid, False when it was
            already paid.
        """
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)

        result = get_gateway().verify_payment(
            command.provider_order_id,
            command.payment_id,
            command.signature,
        )
        if not result.valid:
            logger.warning(
                "Payment signature rejected",
                order_id=str(order.id),
                provider_order_id=command.provider_order_id,
            )
            raise UpstreamError("Invalid payment signature", status_code=400)

        if not order.record_verified_payment(result.payment_id, command.provider_order_id):
            logger.info("Payment already recorded", order_id=str(order.id))
            return False

        repo.add(order)
        logger.info("Payment verified", order_id=str(order.id), payment_id=result.payment_id)
        _announce_payment(order)
        return True

    @handle(ConfirmPaymentCapture)
    def confirm_capture(self, command):
        """Apply a provider-confirmed capture.

        Returns:
            True when the order was marked paid, False when the order is
            unknown or already paid.
        """
        repo = current_domain.repository_for(Order)
        order = repo.find(command.order_id)
        if order is None:
            logger.warning("Captured payment for unknown order", order_id=str(command.order_id))
            return False

        if not order.record_captured_payment(command.payment_id, command.provider_order_id):
            logger.info("Capture already recorded", order_id=str(order.id))
            return False

        repo.add(order)
        logger.info("Payment captured", order_id=str(order.id), payment_id=command.payment_id)
        _announce_payment(order)
        return True

    @handle(RecordPaymentFailure)
    def record_failure(self, command):
        order = current_domain.repository_for(Order).get(command.order_id)
        logger.warning("Payment failed", order_id=str(order.id), error=command.error)
        dispatcher.send_payment_notification(order, succeeded=False)
