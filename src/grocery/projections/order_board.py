"""Order board — dispatch's view of every order and who is working on it.

The maintenance sweeps pick their candidates from here: orders waiting on a
worker, and orders whose substitution deadlines have passed.
"""

import json
from datetime import UTC, datetime

from protean.core.projector import on
from protean.fields import DateTime, Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from grocery.domain import grocery
from grocery.order.events import (
    OrderAccepted,
    OrderCancelled,
    OrderDelivered,
    OrderPickedUp,
    OrderPlaced,
    OrderRejected,
    PickerAssigned,
    PickerReassigned,
    PickingCompleted,
    PickingStarted,
    RiderAssigned,
    RiderDeclined,
    RiderReassigned,
    SubstitutionProposed,
    SubstitutionResolved,
)
from grocery.order.order import Order
from grocery.order.state_machine import OrderStatus


@grocery.projection
class OrderBoardView:
    order_id = Identifier(identifier=True, required=True)
    customer_id = Identifier(required=True)
    vendor_id = Identifier(required=True)
    status = String(required=True)
    picker_id = Identifier()
    rider_id = Identifier()
    item_count = Integer(default=0)
    open_substitutions = Integer(default=0)
    substitution_deadlines = Text()  # JSON map of open proposal id to deadline
    total = Float(default=0.0)
    delivery_postcode = String()
    placed_at = DateTime()
    updated_at = DateTime()


@grocery.projector(projector_for=OrderBoardView, aggregates=[Order])
class OrderBoardProjector:
    def _update(self, order_id, at, **changes):
        repo = current_domain.repository_for(OrderBoardView)
        view = repo.get(order_id)
        for field, value in changes.items():
            setattr(view, field, value)
        view.updated_at = at
        repo.add(view)

    @on(OrderPlaced)
    def on_order_placed(self, event):
        current_domain.repository_for(OrderBoardView).add(
            OrderBoardView(
                order_id=event.order_id,
                customer_id=event.customer_id,
                vendor_id=event.vendor_id,
                status=OrderStatus.PLACED.value,
                item_count=event.item_count,
                total=event.total,
                delivery_postcode=event.delivery_postcode,
                placed_at=event.placed_at,
                updated_at=event.placed_at,
            )
        )

    @on(OrderAccepted)
    def on_order_accepted(self, event):
        self._update(event.order_id, event.accepted_at, status=OrderStatus.VENDOR_ACCEPTED.value)

    @on(OrderRejected)
    def on_order_rejected(self, event):
        self._update(event.order_id, event.rejected_at, status=OrderStatus.VENDOR_REJECTED.value)

    @on(PickerAssigned)
    def on_picker_assigned(self, event):
        self._update(
            event.order_id,
            event.assigned_at,
            status=OrderStatus.PICKER_ASSIGNED.value,
            picker_id=event.picker_id,
        )

    @on(PickingStarted)
    def on_picking_started(self, event):
        self._update(event.order_id, event.started_at, status=OrderStatus.PICKING.value)

    @on(PickingCompleted)
    def on_picking_completed(self, event):
        self._update(
            event.order_id,
            event.completed_at,
            status=OrderStatus.PICKED_COMPLETE.value,
            total=event.total,
        )

    @on(RiderAssigned)
    def on_rider_assigned(self, event):
        self._update(
            event.order_id,
            event.assigned_at,
            status=OrderStatus.RIDER_ASSIGNED.value,
            rider_id=event.rider_id,
        )

    @on(OrderPickedUp)
    def on_order_picked_up(self, event):
        self._update(event.order_id, event.picked_up_at, status=OrderStatus.IN_TRANSIT.value)

    @on(OrderDelivered)
    def on_order_delivered(self, event):
        self._update(event.order_id, event.delivered_at, status=OrderStatus.DELIVERED.value)

    @on(OrderCancelled)
    def on_order_cancelled(self, event):
        self._update(
            event.order_id,
            event.cancelled_at,
            status=OrderStatus.CANCELLED.value,
            total=event.total,
            open_substitutions=0,
            substitution_deadlines=None,
        )

    @on(PickerReassigned)
    def on_picker_reassigned(self, event):
        self._update(event.order_id, event.reassigned_at, picker_id=event.picker_id)

    @on(RiderReassigned)
    def on_rider_reassigned(self, event):
        self._update(event.order_id, event.reassigned_at, rider_id=event.rider_id)

    @on(RiderDeclined)
    def on_rider_declined(self, event):
        self._update(event.order_id, event.declined_at, rider_id=None)

    @on(SubstitutionProposed)
    def on_substitution_proposed(self, event):
        repo = current_domain.repository_for(OrderBoardView)
        view = repo.get(event.order_id)
        view.open_substitutions = (view.open_substitutions or 0) + 1
        deadlines = json.loads(view.substitution_deadlines or "{}")
        deadlines[str(event.proposal_id)] = event.deadline.isoformat()
        view.substitution_deadlines = json.dumps(deadlines)
        view.updated_at = event.proposed_at
        repo.add(view)

    @on(SubstitutionResolved)
    def on_substitution_resolved(self, event):
        repo = current_domain.repository_for(OrderBoardView)
        view = repo.get(event.order_id)
        view.open_substitutions = max((view.open_substitutions or 0) - 1, 0)
        deadlines = json.loads(view.substitution_deadlines or "{}")
        deadlines.pop(str(event.proposal_id), None)
        view.substitution_deadlines = json.dumps(deadlines)
        view.total = event.total
        view.updated_at = event.resolved_at
        repo.add(view)


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(UTC).replace(tzinfo=None)
    return value


def has_overdue_substitution(view: OrderBoardView, as_of: datetime) -> bool:
    """True when any open proposal on the order passed its deadline by `as_of`."""
    cutoff = _naive_utc(as_of)
    return any(
        _naive_utc(datetime.fromisoformat(deadline)) <= cutoff
        for deadline in json.loads(view.substitution_deadlines or "{}").values()
    )
