"""Payment intent creation for an existing order."""

import structlog
from protean.utils.globals import current_domain

from storefront.config import PaymentSettings
from storefront.errors import AuthorizationError, InvalidRequestError, NotFoundError
from storefront.gateway import get_gateway
from storefront.order.order import Order

logger = structlog.get_logger(__name__)


def create_payment_order(order_id, amount, user_id) -> dict:
    """Open a provider order the client completes checkout against."""
    if not amount or not order_id:
        raise InvalidRequestError("Amount and order ID are required")

    order = current_domain.repository_for(Order).find(order_id)
    if order is None:
        raise NotFoundError("Order not found")
    if not order.is_owned_by(user_id):
        raise AuthorizationError("Not authorized")

    gateway = get_gateway()
    payment_order = gateway.create_order(amount, str(order.id))
    logger.info(
        "Payment order created",
        order_id=str(order.id),
        provider_order_id=payment_order.id,
        mode=gateway.mode,
    )

    response = {
        "success": True,
        "order_id": payment_order.id,
        "amount": payment_order.amount,
        "currency": payment_order.currency,
        "mode": gateway.mode,
    }
    if gateway.mode == "live":
        response["key"] = PaymentSettings.from_env().key_id
    return response
