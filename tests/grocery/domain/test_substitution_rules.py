"""Tests for substitution proposals on the Order aggregate."""

from datetime import UTC, datetime, timedelta

import pytest
from grocery.order.events import SubstitutionProposed, SubstitutionResolved
from grocery.order.order import ItemStatus, Order, SubstitutionDecision
from grocery.order.state_machine import OrderStatus
from grocery.shared.actors import ActorRole
from grocery.shared.errors import (
    AUTO_REJECTED_TIMEOUT,
    ORDER_CANCELLED,
    IllegalTransition,
    ProposalAlreadyResolved,
)
from protean.exceptions import ValidationError


def _picking_order():
    order = Order.place(
        customer_id="cust-001",
        vendor_id="vendor-001",
        lines=[
            {"product_id": "prod-yam", "product_name": "Puna Yam", "unit": "kg", "quantity": 2, "unit_price": 4.0},
            {"product_id": "prod-oil", "product_name": "Red Palm Oil", "unit": "bottle", "quantity": 1, "unit_price": 6.0},
        ],
    )
    order.accept(ActorRole.VENDOR, "vendor-001")
    order.assign_picker("picker-001")
    order.start_picking(ActorRole.PICKER, "picker-001")
    return order


def _yam(order):
    return next(i for i in order.items if i.product_id == "prod-yam")


def _alternative(alternative_id="alt-1", product_id="prod-cocoyam", unit_price=3.5, quantity=2):
    return {
        "alternative_id": alternative_id,
        "product_id": product_id,
        "product_name": "Cocoyam",
        "unit": "kg",
        "unit_price": unit_price,
        "quantity": quantity,
        "match_score": 0.9,
    }


def _report(order, alternatives=None, deadline=None):
    return order.report_issue(
        line_item_id=str(_yam(order).id),
        issue_type="Out_Of_Stock",
        alternatives=[_alternative()] if alternatives is None else alternatives,
        deadline=deadline or datetime.now(UTC) + timedelta(minutes=10),
        role=ActorRole.PICKER,
        actor_id="picker-001",
    )


class TestReportIssue:
    def test_report_puts_item_on_hold(self):
        order = _picking_order()
        proposal = _report(order)
        assert _yam(order).status == ItemStatus.SUBSTITUTION_PENDING.value
        assert proposal.is_open
        assert isinstance(order._events[-1], SubstitutionProposed)

    def test_report_does_not_change_status(self):
        order = _picking_order()
        _report(order)
        entry = order.latest_entry()
        assert order.status == OrderStatus.PICKING.value
        assert entry.from_status == entry.to_status == OrderStatus.PICKING.value

    def test_only_the_assigned_picker_reports(self):
        order = _picking_order()
        with pytest.raises(IllegalTransition):
            order.report_issue(
                line_item_id=str(_yam(order).id),
                issue_type="Quality",
                alternatives=[],
                deadline=datetime.now(UTC),
                role=ActorRole.PICKER,
                actor_id="picker-002",
            )

    def test_one_open_proposal_per_item(self):
        order = _picking_order()
        _report(order)
        with pytest.raises(IllegalTransition):
            _report(order)

    def test_pending_item_blocks_picking_completion(self):
        order = _picking_order()
        _report(order)
        oil = next(i for i in order.items if i.product_id == "prod-oil")
        order.mark_item_picked(str(oil.id), ActorRole.PICKER, "picker-001")
        with pytest.raises(IllegalTransition):
            order.complete_picking(ActorRole.PICKER, "picker-001")


class TestResolveSubstitution:
    def test_approving_a_different_product_replaces_the_line(self):
        order = _picking_order()
        proposal = _report(order)
        order.resolve_substitution(str(proposal.id), "Approved", ActorRole.CUSTOMER, "cust-001", "alt-1")

        yam = next(i for i in order.items if i.original_product_id == "prod-yam")
        assert yam.product_id == "prod-cocoyam"
        assert yam.status == ItemStatus.PICKED.value
        assert order.total == 13.0  # 2 x 3.5 + 6.0
        assert proposal.decision == SubstitutionDecision.APPROVED.value
        assert proposal.chosen_alternative_id == "alt-1"

    def test_approving_reduced_quantity_keeps_the_product(self):
        order = _picking_order()
        same = _alternative(alternative_id="alt-qty", product_id="prod-yam", unit_price=4.0, quantity=1)
        proposal = _report(order, alternatives=[same])
        order.resolve_substitution(str(proposal.id), "Approved", ActorRole.CUSTOMER, "cust-001")

        yam = _yam(order)
        assert yam.quantity == 1
        assert yam.status == ItemStatus.SUBSTITUTION_RESOLVED.value
        assert order.total == 10.0

    def test_rejecting_marks_item_out_of_stock(self):
        order = _picking_order()
        proposal = _report(order)
        order.resolve_substitution(str(proposal.id), "Rejected", ActorRole.CUSTOMER, "cust-001")

        assert _yam(order).status == ItemStatus.OUT_OF_STOCK.value
        assert order.total == 6.0
        assert isinstance(order._events[-1], SubstitutionResolved)

    def test_second_decision_is_refused(self):
        order = _picking_order()
        proposal = _report(order)
        order.resolve_substitution(str(proposal.id), "Rejected", ActorRole.CUSTOMER, "cust-001")
        entries = len(order.event_log)

        with pytest.raises(ProposalAlreadyResolved) as exc:
            order.resolve_substitution(str(proposal.id), "Approved", ActorRole.CUSTOMER, "cust-001", "alt-1")
        assert exc.value.decision == SubstitutionDecision.REJECTED.value
        assert len(order.event_log) == entries
        assert _yam(order).status == ItemStatus.OUT_OF_STOCK.value

    def test_picker_cannot_decide(self):
        order = _picking_order()
        proposal = _report(order)
        with pytest.raises(IllegalTransition):
            order.resolve_substitution(str(proposal.id), "Approved", ActorRole.PICKER, "picker-001", "alt-1")

    def test_other_customer_cannot_decide(self):
        order = _picking_order()
        proposal = _report(order)
        with pytest.raises(IllegalTransition):
            order.resolve_substitution(str(proposal.id), "Rejected", ActorRole.CUSTOMER, "cust-999")

    def test_approval_must_name_one_of_several_alternatives(self):
        order = _picking_order()
        proposal = _report(order, alternatives=[_alternative("alt-1"), _alternative("alt-2", "prod-sweet-potato")])
        with pytest.raises(ValidationError):
            order.resolve_substitution(str(proposal.id), "Approved", ActorRole.CUSTOMER, "cust-001")
        with pytest.raises(ValidationError):
            order.resolve_substitution(str(proposal.id), "Approved", ActorRole.CUSTOMER, "cust-001", "alt-9")

    def test_approval_without_alternatives_is_invalid(self):
        order = _picking_order()
        proposal = _report(order, alternatives=[])
        with pytest.raises(ValidationError):
            order.resolve_substitution(str(proposal.id), "Approved", ActorRole.CUSTOMER, "cust-001")

    def test_resolved_items_let_picking_complete(self):
        order = _picking_order()
        proposal = _report(order)
        order.resolve_substitution(str(proposal.id), "Rejected", ActorRole.CUSTOMER, "cust-001")
        oil = next(i for i in order.items if i.product_id == "prod-oil")
        order.mark_item_picked(str(oil.id), ActorRole.PICKER, "picker-001")
        order.complete_picking(ActorRole.PICKER, "picker-001")
        assert order.status == OrderStatus.PICKED_COMPLETE.value
        assert order.total == 6.0


class TestExpiry:
    def test_overdue_proposal_is_auto_rejected(self):
        order = _picking_order()
        deadline = datetime.now(UTC) + timedelta(minutes=10)
        proposal = _report(order, deadline=deadline)

        expired = order.expire_substitutions(deadline + timedelta(seconds=1))

        assert expired == [proposal]
        assert proposal.reason_code == AUTO_REJECTED_TIMEOUT
        assert proposal.resolved_by == ActorRole.SYSTEM.value
        assert _yam(order).status == ItemStatus.OUT_OF_STOCK.value
        assert order.latest_entry().reason_code == AUTO_REJECTED_TIMEOUT

    def test_proposal_within_deadline_is_left_open(self):
        order = _picking_order()
        deadline = datetime.now(UTC) + timedelta(minutes=10)
        proposal = _report(order, deadline=deadline)
        assert order.expire_substitutions(deadline - timedelta(minutes=1)) == []
        assert proposal.is_open

    def test_expiry_is_idempotent(self):
        order = _picking_order()
        deadline = datetime.now(UTC)
        _report(order, deadline=deadline)
        later = deadline + timedelta(minutes=1)
        order.expire_substitutions(later)
        entries = len(order.event_log)
        assert order.expire_substitutions(later) == []
        assert len(order.event_log) == entries

    def test_customer_decision_after_timeout_is_refused(self):
        order = _picking_order()
        deadline = datetime.now(UTC)
        proposal = _report(order, deadline=deadline)
        order.expire_substitutions(deadline + timedelta(minutes=1))
        with pytest.raises(ProposalAlreadyResolved):
            order.resolve_substitution(str(proposal.id), "Approved", ActorRole.CUSTOMER, "cust-001", "alt-1")


class TestCancellationClosesProposals:
    def test_open_proposals_are_rejected_on_cancel(self):
        order = _picking_order()
        proposal = _report(order)
        order.cancel(ActorRole.CUSTOMER, "cust-001", reason="Too slow")

        assert not proposal.is_open
        assert proposal.reason_code == ORDER_CANCELLED
        assert order.status == OrderStatus.CANCELLED.value
