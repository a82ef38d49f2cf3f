"""BDD tests for item substitutions and their timeout."""

import json
from datetime import UTC, datetime, timedelta

from grocery.order.order import ItemStatus
from grocery.order.state_machine import OrderStatus
from grocery.shared.errors import ProposalAlreadyResolved
from grocery.substitution.expiry import ExpireSubstitutions
from grocery.substitution.reporting import ReportItemIssue, substitution_timeout
from grocery.substitution.resolution import ResolveSubstitution
from protean import current_domain
from pytest_bdd import given, parsers, scenarios, then, when

scenarios("features/substitutions.feature")


def _process(command):
    return current_domain.process(command, asynchronous=False)


def _yam(marketplace, store, order_id):
    order = marketplace.order(order_id)
    return next(i for i in order.items if str(i.product_id) == store.products["yam"])


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given("the picker reports the yam out of stock offering cocoyam", target_fixture="proposal_id")
def _(marketplace, store, order_id):
    cocoyam = marketplace.product(store.vendor_id, "Cocoyam", "kg", 3.50)
    result = _process(
        ReportItemIssue(
            order_id=order_id,
            line_item_id=str(_yam(marketplace, store, order_id).id),
            issue_type="Out_Of_Stock",
            alternatives=json.dumps([{"product_id": cocoyam}]),
            actor_role="Picker",
            actor_id=store.picker_id,
        )
    )
    return result["proposal_id"]


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when("the customer approves the substitute", target_fixture="resolution")
def _(order_id, proposal_id):
    return _process(
        ResolveSubstitution(
            order_id=order_id,
            proposal_id=proposal_id,
            decision="Approve",
            actor_role="Customer",
            actor_id="cust-001",
        )
    )


@when("the substitution deadline passes without an answer")
def _():
    as_of = datetime.now(UTC) + substitution_timeout() + timedelta(seconds=1)
    _process(ExpireSubstitutions(as_of=as_of))


@when("the picker picks every item")
def _(marketplace, order_id):
    marketplace.pick_all(order_id)


@when("the picker completes picking")
def _(marketplace, order_id):
    marketplace.advance(order_id, OrderStatus.PICKED_COMPLETE)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then("the yam is marked out of stock")
def _(marketplace, store, order_id):
    assert _yam(marketplace, store, order_id).status == ItemStatus.OUT_OF_STOCK.value


@then(parsers.cfparse('the proposal was closed with reason "{reason_code}"'))
def _(marketplace, order_id, proposal_id, reason_code):
    proposal = marketplace.order(order_id).proposal(proposal_id)
    assert proposal.reason_code == reason_code


@then(parsers.cfparse('the customer is told the proposal was already "{decision}"'))
def _(resolution, decision):
    assert resolution["outcome"] == ProposalAlreadyResolved.code
    assert resolution["decision"] == decision
