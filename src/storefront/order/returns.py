"""Return flow — customer request and admin status update."""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.errors import AuthorizationError
from storefront.notification import dispatcher
from storefront.order.order import Order

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Order")
class RequestReturn:
    order_id = Identifier(required=True)
    requested_by = Identifier(required=True)
    reason = String(required=True, max_length=1000)


@storefront.command(part_of="Order")
class UpdateReturnStatus:
    order_id = Identifier(required=True)
    status = String(required=True, max_length=50)
    reason = String(max_length=1000)
    admin_note = String(max_length=1000)


@storefront.command_handler(part_of=Order)
class ReturnsHandler:
    @handle(RequestReturn)
    def request_return(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        if not order.is_owned_by(command.requested_by):
            raise AuthorizationError("Not authorized", status_code=401)

        order.request_return(command.reason)
        repo.add(order)

        logger.info("Return requested", order_id=str(order.id))
        dispatcher.send_return_request_notifications(order)

    @handle(UpdateReturnStatus)
    def update_return_status(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.update_return_status(
            command.status,
            reason=command.reason,
            admin_note=command.admin_note,
        )
        repo.add(order)

        logger.info(
            "Return status updated",
            order_id=str(order.id),
            return_status=order.return_status,
            tracking_status=order.tracking_status,
        )
