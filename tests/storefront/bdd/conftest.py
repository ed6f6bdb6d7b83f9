"""Shared BDD fixtures and step definitions for the Storefront."""

import pytest
from protean import current_domain
from pytest_bdd import given, parsers, then
from storefront.notification.notification import Notification
from storefront.order.order import Order


@pytest.fixture()
def world():
    """Scenario state: the order under test and any error raised."""
    return {"order_id": None, "error": None}


@pytest.fixture()
def products():
    return {}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given("a customer")
def _(customer):
    return customer


@given("an administrator")
def _(admin):
    return admin


@given(parsers.cfparse('a product "{name}" with {count:d} units in stock'))
def _(make_product, products, name, count):
    products[name] = make_product(name=name, count_in_stock=count)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
def _order(world):
    return current_domain.repository_for(Order).get(world["order_id"])


@then("the order is placed")
def _(world):
    assert world["error"] is None
    assert _order(world).tracking_status == "pending"


@then(parsers.cfparse('the order is "{status}"'))
def _(world, status):
    assert _order(world).tracking_status == status


@then("the order is paid")
def _(world):
    assert _order(world).is_paid is True


@then("the order is not paid")
def _(world):
    assert _order(world).is_paid is False


@then(parsers.cfparse("the order has {count:d} tracking entry"))
def _(world, count):
    assert len(_order(world).tracking_history) == count


@then(parsers.cfparse('the order is rejected with "{message}"'))
@then(parsers.cfparse('the payment is rejected with "{message}"'))
def _(world, message):
    assert world["error"] is not None
    assert world["error"].message == message


@then(parsers.cfparse('"{name}" has {count:d} units in stock'))
def _(products, stock_of, name, count):
    assert stock_of(products[name].id) == count


@then(parsers.cfparse('the customer has {count:d} notification titled "{title}"'))
def _(customer, notifications_for, count, title):
    assert [n.title for n in notifications_for(customer.id)].count(title) == count


@then(parsers.cfparse('the administrator has {count:d} notification titled "{title}"'))
def _(admin, notifications_for, count, title):
    assert [n.title for n in notifications_for(admin.id)].count(title) == count


@then("no notifications exist")
def _():
    assert current_domain.repository_for(Notification)._dao.query.all().items == []


@then("no orders exist")
def _():
    assert current_domain.repository_for(Order).everything() == []
