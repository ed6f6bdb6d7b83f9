"""BDD tests for placing and cancelling orders."""

import json

from protean import current_domain
from pytest_bdd import parsers, scenarios, when
from storefront.errors import StorefrontError
from storefront.order.cancellation import CancelOrder
from storefront.order.creation import PlaceOrder

scenarios("features/order_placement.feature")


def _place(world, customer, lines, payment_method="COD"):
    try:
        world["order_id"] = current_domain.process(
            PlaceOrder(
                customer_id=str(customer.id),
                items=json.dumps(
                    [
                        {"product_id": str(product.id), "name": product.name, "quantity": quantity, "price": 500.0}
                        for product, quantity in lines
                    ]
                ),
                payment_method=payment_method,
                total_price=500.0 * sum(quantity for _, quantity in lines),
            ),
            asynchronous=False,
        )
    except StorefrontError as exc:
        world["error"] = exc


@when(parsers.cfparse('the customer orders {quantity:d} of "{name}" paying "{method}"'))
def _(world, customer, products, quantity, name, method):
    _place(world, customer, [(products[name], quantity)], payment_method=method)


@when(parsers.cfparse('the customer orders {first_qty:d} of "{first}" and {second_qty:d} of "{second}"'))
def _(world, customer, products, first_qty, first, second_qty, second):
    _place(world, customer, [(products[first], first_qty), (products[second], second_qty)])


@when("the customer cancels the order")
def _(world, customer):
    current_domain.process(
        CancelOrder(order_id=world["order_id"], requested_by=str(customer.id)),
        asynchronous=False,
    )
