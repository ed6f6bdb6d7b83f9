"""Order placement — command and handler.

Every line item is checked against the stock ledger before anything is
written. A single shortfall rejects the whole order. Cash-on-delivery
orders notify straight away; online orders wait for payment confirmation.
"""

import json

import structlog
from protean import handle
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.notification import dispatcher
from storefront.order.order import Order, PaymentMethod
from storefront.product import ledger

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Order")
class PlaceOrder:
    customer_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of item dicts
    shipping_address = Text()  # JSON: address dict
    payment_method = String(required=True, max_length=50)
    items_price = Float(default=0.0)
    tax_price = Float(default=0.0)
    shipping_price = Float(default=0.0)
    total_price = Float(default=0.0)
    customization = Text()


@storefront.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        items_data = json.loads(command.items) if isinstance(command.items, str) else command.items
        shipping_address = (
            json.loads(command.shipping_address)
            if isinstance(command.shipping_address, str)
            else command.shipping_address
        )
        payment_method = PaymentMethod.parse(command.payment_method)

        # All-or-nothing: no write happens until every item passes
        for item in items_data or []:
            ledger.check(item["product_id"], item["quantity"], label=item.get("name"))

        order = Order.create(
            customer_id=command.customer_id,
            items_data=items_data,
            shipping_address=shipping_address,
            payment_method=payment_method,
            pricing={
                "items_price": command.items_price or 0.0,
                "tax_price": command.tax_price or 0.0,
                "shipping_price": command.shipping_price or 0.0,
                "total_price": command.total_price or 0.0,
            },
            customization=command.customization,
        )
        current_domain.repository_for(Order).add(order)

        for item in order.items:
            ledger.reserve(item.product_id, item.quantity)

        logger.info(
            "Order placed",
            order_id=str(order.id),
            customer_id=str(order.customer_id),
            payment_method=order.payment_method,
            total_price=order.pricing.total_price,
        )

        if payment_method == PaymentMethod.COD:
            dispatcher.send_new_order_notifications(order)

        return str(order.id)
