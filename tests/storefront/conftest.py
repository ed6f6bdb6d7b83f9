"""Shared fixtures for the Storefront tests.

Factories persist aggregates through the repositories so that handlers see
the same state they would in production.
"""

import json

import pytest
from protean import current_domain
from storefront.identity.user import NotificationPreferences, Role, User
from storefront.notification.notification import Notification
from storefront.order.creation import PlaceOrder
from storefront.product.product import AddOnItem, Product

ADDRESS = {
    "address": "12 MG Road",
    "city": "Bengaluru",
    "postal_code": "560001",
    "country": "India",
}


@pytest.fixture()
def make_product():
    def _make(name="Chocolate Truffle Cake", count_in_stock=10, in_stock=True, price=450.0, add_ons=None):
        product = Product.create(
            name=name,
            count_in_stock=count_in_stock,
            in_stock=in_stock,
            price=price,
            add_on_items=[AddOnItem(**add_on) for add_on in (add_ons or [])],
        )
        current_domain.repository_for(Product).add(product)
        return product

    return _make


@pytest.fixture()
def make_user():
    def _make(name="Asha", role=Role.CUSTOMER.value, preferences=None):
        user = User.register(
            name=name,
            email=f"{name.lower()}@example.com",
            role=role,
            notification_preferences=NotificationPreferences(**preferences) if preferences is not None else None,
        )
        current_domain.repository_for(User).add(user)
        return user

    return _make


@pytest.fixture()
def customer(make_user):
    return make_user("Asha")


@pytest.fixture()
def admin(make_user):
    return make_user("Ravi", role=Role.ADMIN.value)


@pytest.fixture()
def place_order():
    """Place an order for ``(item_id, quantity)`` pairs and return its id."""

    def _place(customer_id, lines, payment_method="COD", total_price=900.0):
        items = [
            {"product_id": str(item_id), "name": f"Item {index}", "quantity": quantity, "price": 450.0}
            for index, (item_id, quantity) in enumerate(lines, start=1)
        ]
        return current_domain.process(
            PlaceOrder(
                customer_id=str(customer_id),
                items=json.dumps(items),
                shipping_address=json.dumps(ADDRESS),
                payment_method=payment_method,
                items_price=total_price,
                total_price=total_price,
            ),
            asynchronous=False,
        )

    return _place


@pytest.fixture()
def notifications_for():
    def _for(user_id):
        return current_domain.repository_for(Notification).for_user(user_id)

    return _for


@pytest.fixture()
def stock_of():
    def _stock(product_id, add_on_id=None):
        product = current_domain.repository_for(Product).get(product_id)
        if add_on_id is None:
            return product.count_in_stock
        return product.add_on(add_on_id).count_in_stock

    return _stock
