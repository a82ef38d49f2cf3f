"""Order domain events — immutable facts about order state changes.

All events are past tense, versioned, and carry enough data for the
projectors, the worker-release handler and the notification dispatcher.
"""

from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String, Text

from grocery.domain import grocery


@grocery.event(part_of="Order")
class OrderPlaced:
    """A customer placed an order against an approved vendor."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    vendor_id = Identifier(required=True)
    items = Text(required=True)  # JSON list of snapshot lines
    item_count = Integer(required=True)
    total = Float(required=True)
    currency = String(max_length=3)
    payment_ref = String()
    delivery_postcode = String()
    placed_at = DateTime(required=True)


@grocery.event(part_of="Order")
class OrderAccepted:
    """The vendor accepted the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    vendor_id = Identifier(required=True)
    accepted_at = DateTime(required=True)


@grocery.event(part_of="Order")
class OrderRejected:
    """The vendor turned the order down."""

    __version__ = 1

    order_id = Identifier(required=True)
    vendor_id = Identifier(required=True)
    reason = Text()
    rejected_at = DateTime(required=True)


@grocery.event(part_of="Order")
class PickerAssigned:
    __version__ = 1

    order_id = Identifier(required=True)
    vendor_id = Identifier(required=True)
    picker_id = Identifier(required=True)
    assigned_at = DateTime(required=True)


@grocery.event(part_of="Order")
class PickingStarted:
    __version__ = 1

    order_id = Identifier(required=True)
    picker_id = Identifier(required=True)
    started_at = DateTime(required=True)


@grocery.event(part_of="Order")
class ItemPicked:
    """A single line item was collected from the shelf."""

    __version__ = 1

    order_id = Identifier(required=True)
    line_item_id = Identifier(required=True)
    picked_at = DateTime(required=True)


@grocery.event(part_of="Order")
class PickingCompleted:
    """Every line item is picked, resolved or acknowledged out of stock."""

    __version__ = 1

    order_id = Identifier(required=True)
    picker_id = Identifier(required=True)
    total = Float(required=True)
    completed_at = DateTime(required=True)


@grocery.event(part_of="Order")
class RiderAssigned:
    __version__ = 1

    order_id = Identifier(required=True)
    rider_id = Identifier(required=True)
    assigned_at = DateTime(required=True)


@grocery.event(part_of="Order")
class OrderPickedUp:
    """The rider collected the order from the store and is on the way."""

    __version__ = 1

    order_id = Identifier(required=True)
    rider_id = Identifier(required=True)
    picked_up_at = DateTime(required=True)


@grocery.event(part_of="Order")
class OrderDelivered:
    __version__ = 1

    order_id = Identifier(required=True)
    rider_id = Identifier(required=True)
    total = Float(required=True)
    delivered_at = DateTime(required=True)


@grocery.event(part_of="Order")
class OrderCancelled:
    """The order was cancelled. `late` marks an override cancellation after rider assignment."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    reason = Text()
    reason_code = String()
    late = Boolean(default=False)
    picker_id = Identifier()
    rider_id = Identifier()
    total = Float(required=True)
    cancelled_by = String(required=True)
    cancelled_at = DateTime(required=True)


@grocery.event(part_of="Order")
class PickerReassigned:
    __version__ = 1

    order_id = Identifier(required=True)
    previous_picker_id = Identifier(required=True)
    picker_id = Identifier(required=True)
    reason_code = String(required=True)
    reassigned_at = DateTime(required=True)


@grocery.event(part_of="Order")
class RiderReassigned:
    __version__ = 1

    order_id = Identifier(required=True)
    previous_rider_id = Identifier(required=True)
    rider_id = Identifier(required=True)
    reason_code = String(required=True)
    reassigned_at = DateTime(required=True)


@grocery.event(part_of="Order")
class RiderDeclined:
    """The assigned rider turned the delivery down and is no longer attached."""

    __version__ = 1

    order_id = Identifier(required=True)
    rider_id = Identifier(required=True)
    reason_code = String(required=True)
    declined_at = DateTime(required=True)


@grocery.event(part_of="Order")
class SubstitutionProposed:
    """A picker reported an item issue; the customer has until `deadline` to decide."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    proposal_id = Identifier(required=True)
    line_item_id = Identifier(required=True)
    issue_type = String(required=True)
    alternatives = Text()  # JSON list of ranked alternatives
    deadline = DateTime(required=True)
    proposed_at = DateTime(required=True)


@grocery.event(part_of="Order")
class SubstitutionResolved:
    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    proposal_id = Identifier(required=True)
    line_item_id = Identifier(required=True)
    decision = String(required=True)
    alternative_id = String()
    reason_code = String()
    total = Float(required=True)
    resolved_at = DateTime(required=True)
