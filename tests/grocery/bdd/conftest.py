"""Shared BDD fixtures and step definitions for grocery fulfillment."""

import pytest
from grocery.order.labels import labels_for
from grocery.order.state_machine import OrderStatus, is_valid_path
from grocery.shared.errors import IllegalTransition
from grocery.workforce.worker import Worker
from protean import current_domain
from pytest_bdd import given, parsers, then


@pytest.fixture()
def failure():
    """Container for the error raised by the last When step, if any."""
    return {"exc": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given("an approved store with plantain, yam and palm oil", target_fixture="store")
def _(store):
    return store


@given("the customer ordered plantain x2, yam x1 and palm oil x1", target_fixture="order_id")
def _(three_item_order):
    return three_item_order


@given(parsers.cfparse('the order has reached "{status}"'))
def _(marketplace, order_id, status):
    marketplace.walk_to(order_id, OrderStatus(status))


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order status is "{status}"'))
def _(marketplace, order_id, status):
    assert marketplace.order(order_id).status == status


@then(parsers.cfparse('the customer sees "{label}"'))
def _(marketplace, order_id, label):
    assert labels_for(marketplace.order(order_id).status)["customer"] == label


@then(parsers.cfparse("the order total is {total:f}"))
def _(marketplace, order_id, total):
    assert marketplace.order(order_id).total == pytest.approx(total)


@then(parsers.cfparse("the event log has {count:d} entries"))
def _(marketplace, order_id, count):
    assert len(marketplace.order(order_id).event_log) == count


@then("the status history follows the transition table")
def _(marketplace, order_id):
    assert is_valid_path(marketplace.order(order_id).status_path())


@then("the action is refused as an illegal transition")
def _(failure):
    assert isinstance(failure["exc"], IllegalTransition), f"Expected IllegalTransition, got {failure['exc']!r}"


@then("no worker is holding the order")
def _(order_id):
    workers = current_domain.repository_for(Worker)._dao.query.all().items
    assert not [w for w in workers if order_id in w.active_orders]


@then(parsers.cfparse('the action fails with "{code}"'))
def _(failure, code):
    assert failure["exc"] is not None, "Expected the action to fail"
    assert failure["exc"].code == code
