"""Notification dispatcher — tells each party about order events after commit.

Runs as an event handler, so the order transition is already durable when the
collaborator is called. Delivery failures are logged and never reach the
command that caused them.
"""

import structlog
from protean.utils.mixins import handle

from grocery.domain import grocery
from grocery.notifier import get_notifier
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
from grocery.shared.actors import ActorRole

logger = structlog.get_logger(__name__)


def _send(event, *recipients: ActorRole) -> None:
    event_type = event.__class__.__name__
    order_id = str(event.order_id)
    notifier = get_notifier()
    for recipient in recipients:
        try:
            notifier.notify(recipient.value, order_id, event_type)
        except Exception as e:
            logger.error(
                "Notification delivery failed",
                order_id=order_id,
                recipient_role=recipient.value,
                event_type=event_type,
                error=str(e),
            )


@grocery.event_handler(part_of=Order)
class OrderNotificationDispatcher:
    @handle(OrderPlaced)
    def on_order_placed(self, event: OrderPlaced) -> None:
        _send(event, ActorRole.VENDOR, ActorRole.CUSTOMER)

    @handle(OrderAccepted)
    def on_order_accepted(self, event: OrderAccepted) -> None:
        _send(event, ActorRole.CUSTOMER, ActorRole.DISPATCH)

    @handle(OrderRejected)
    def on_order_rejected(self, event: OrderRejected) -> None:
        _send(event, ActorRole.CUSTOMER)

    @handle(PickerAssigned)
    def on_picker_assigned(self, event: PickerAssigned) -> None:
        _send(event, ActorRole.PICKER, ActorRole.CUSTOMER)

    @handle(PickingStarted)
    def on_picking_started(self, event: PickingStarted) -> None:
        _send(event, ActorRole.CUSTOMER)

    @handle(PickingCompleted)
    def on_picking_completed(self, event: PickingCompleted) -> None:
        _send(event, ActorRole.CUSTOMER, ActorRole.DISPATCH)

    @handle(RiderAssigned)
    def on_rider_assigned(self, event: RiderAssigned) -> None:
        _send(event, ActorRole.RIDER, ActorRole.VENDOR, ActorRole.CUSTOMER)

    @handle(OrderPickedUp)
    def on_order_picked_up(self, event: OrderPickedUp) -> None:
        _send(event, ActorRole.CUSTOMER)

    @handle(OrderDelivered)
    def on_order_delivered(self, event: OrderDelivered) -> None:
        _send(event, ActorRole.CUSTOMER, ActorRole.VENDOR)

    @handle(OrderCancelled)
    def on_order_cancelled(self, event: OrderCancelled) -> None:
        recipients = [ActorRole.CUSTOMER, ActorRole.VENDOR]
        if event.picker_id:
            recipients.append(ActorRole.PICKER)
        if event.rider_id:
            recipients.append(ActorRole.RIDER)
        _send(event, *recipients)

    @handle(PickerReassigned)
    def on_picker_reassigned(self, event: PickerReassigned) -> None:
        _send(event, ActorRole.PICKER)

    @handle(RiderReassigned)
    def on_rider_reassigned(self, event: RiderReassigned) -> None:
        _send(event, ActorRole.RIDER)

    @handle(RiderDeclined)
    def on_rider_declined(self, event: RiderDeclined) -> None:
        _send(event, ActorRole.DISPATCH)

    @handle(SubstitutionProposed)
    def on_substitution_proposed(self, event: SubstitutionProposed) -> None:
        _send(event, ActorRole.CUSTOMER)

    @handle(SubstitutionResolved)
    def on_substitution_resolved(self, event: SubstitutionResolved) -> None:
        _send(event, ActorRole.PICKER, ActorRole.CUSTOMER)
