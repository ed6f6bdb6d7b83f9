"""Order cancellation and abandonment — commands and handler."""

import structlog
from protean import handle
from protean.fields import Boolean, Identifier
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.errors import AuthorizationError
from storefront.notification import dispatcher
from storefront.order.order import Order
from storefront.product import ledger

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    requested_by = Identifier(required=True)
    requested_by_admin = Boolean(default=False)


@storefront.command(part_of="Order")
class AbandonOrder:
    """Discard an unpaid online order whose checkout was never completed."""

    order_id = Identifier(required=True)
    requested_by = Identifier(required=True)
    requested_by_admin = Boolean(default=False)


def ensure_owner_or_admin(order, user_id, is_admin, message):
    if not (is_admin or order.is_owned_by(user_id)):
        raise AuthorizationError(message, status_code=401)


@storefront.command_handler(part_of=Order)
class CancelOrderHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        ensure_owner_or_admin(
            order,
            command.requested_by,
            command.requested_by_admin,
            "Not authorized to cancel this order",
        )

        order.cancel(cancelled_by=command.requested_by)
        for item in order.items:
            ledger.restore(item.product_id, item.quantity)
        repo.add(order)

        logger.info(
            "Order cancelled",
            order_id=str(order.id),
            cancelled_by=str(command.requested_by),
            refund_pending=bool(order.is_paid),
        )
        dispatcher.send_cancellation_notifications(order)

    @handle(AbandonOrder)
    def abandon_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        ensure_owner_or_admin(
            order,
            command.requested_by,
            command.requested_by_admin,
            "Not authorized to abandon this order",
        )
        order.assert_can_be_abandoned()

        for item in order.items:
            ledger.restore(item.product_id, item.quantity)
        repo._dao.delete(order)

        logger.info("Order abandoned", order_id=str(command.order_id))
