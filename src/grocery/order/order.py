"""Order aggregate (CQRS) — the single writer of an order's fulfillment state.

Every status change goes through `_transition()`, which asks the state machine
whether the acting role may take the edge and then appends exactly one entry
to the order's event log. Entries are only ever appended. Actions that do not
move the status (substitution decisions, reassignments) append an entry whose
from and to statuses are equal, so the log stays a complete audit trail while
`status_path()` still yields a walk through the transition table.

Picker, rider and vendor commands are bound: the acting id must be the worker
or vendor attached to the order.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, Text

from grocery.domain import grocery
from grocery.order.events import (
    ItemPicked,
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
from grocery.order.labels import labels_for
from grocery.order.state_machine import OrderStatus, authorize, is_terminal
from grocery.shared.actors import ActorRole
from grocery.shared.errors import (
    AUTO_REJECTED_TIMEOUT,
    CUSTOMER_DECISION,
    LATE_CANCELLATION_OVERRIDE,
    ORDER_CANCELLED,
    RIDER_DECLINED,
    WORKER_UNAVAILABLE,
    AlreadyAssigned,
    IllegalTransition,
    ProposalAlreadyResolved,
)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class ItemStatus(Enum):
    UNPICKED = "Unpicked"
    PICKED = "Picked"
    SUBSTITUTION_PENDING = "Substitution_Pending"
    SUBSTITUTION_RESOLVED = "Substitution_Resolved"
    OUT_OF_STOCK = "Out_Of_Stock"


class IssueType(Enum):
    OUT_OF_STOCK = "Out_Of_Stock"
    QUALITY = "Quality"
    WRONG_ITEM = "Wrong_Item"
    PARTIAL_QUANTITY = "Partial_Quantity"


class SubstitutionDecision(Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


# Items in these states no longer block completion of picking
_SETTLED_ITEM_STATUSES = {
    ItemStatus.PICKED.value,
    ItemStatus.SUBSTITUTION_RESOLVED.value,
    ItemStatus.OUT_OF_STOCK.value,
}

# Statuses that may only be held once picking is over
_POST_PICKING_STATUSES = {
    OrderStatus.PICKED_COMPLETE.value,
    OrderStatus.RIDER_ASSIGNED.value,
    OrderStatus.IN_TRANSIT.value,
    OrderStatus.DELIVERED.value,
}

# Stages in which the attached worker can still be swapped out
REASSIGNABLE_STAGES = {
    ActorRole.PICKER: {OrderStatus.PICKER_ASSIGNED, OrderStatus.PICKING},
    ActorRole.RIDER: {OrderStatus.RIDER_ASSIGNED},
}

# Roles that may decide on a substitution proposal
_SUBSTITUTION_DECIDERS = {ActorRole.CUSTOMER, ActorRole.ADMIN, ActorRole.SYSTEM}


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(UTC).replace(tzinfo=None)
    return value


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@grocery.entity(part_of="Order")
class LineItem:
    """An ordered line, copied from the catalog snapshot at placement."""

    product_id = Identifier(required=True)
    product_name = String(required=True, max_length=200)
    unit = String(required=True, max_length=30)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    status = String(max_length=30, choices=ItemStatus, default=ItemStatus.UNPICKED.value)
    original_product_id = Identifier()  # set when a substitute replaced the ordered product

    @property
    def line_total(self) -> float:
        return self.quantity * self.unit_price


@grocery.entity(part_of="Order")
class SubstitutionProposal:
    """A picker's proposal to replace an item that cannot be supplied as ordered."""

    line_item_id = Identifier(required=True)
    original_product_id = Identifier(required=True)
    issue_type = String(required=True, max_length=30, choices=IssueType)
    alternatives = Text()  # JSON list of ranked alternatives
    decision = String(max_length=20, choices=SubstitutionDecision, default=SubstitutionDecision.PENDING.value)
    chosen_alternative_id = String(max_length=50)
    reason_code = String(max_length=50)
    deadline = DateTime(required=True)
    proposed_at = DateTime(required=True)
    resolved_at = DateTime()
    resolved_by = String(max_length=20)

    @property
    def is_open(self) -> bool:
        return self.decision == SubstitutionDecision.PENDING.value

    def alternative_list(self) -> list[dict]:
        return json.loads(self.alternatives) if self.alternatives else []

    def is_overdue(self, as_of: datetime) -> bool:
        return self.is_open and _naive_utc(self.deadline) <= _naive_utc(as_of)


@grocery.entity(part_of="Order")
class LogEntry:
    """One append-only record in the order's audit trail."""

    sequence = Integer(required=True, min_value=1)
    occurred_at = DateTime(required=True)
    actor_role = String(required=True, max_length=20)
    actor_id = String(max_length=50)
    from_status = String(max_length=30)
    to_status = String(required=True, max_length=30)
    note = Text()
    reason_code = String(max_length=50)

    def as_dict(self) -> dict:
        return {
            "sequence": self.sequence,
            "occurred_at": self.occurred_at.isoformat() if self.occurred_at else None,
            "actor_role": self.actor_role,
            "actor_id": self.actor_id,
            "from_status": self.from_status,
            "to_status": self.to_status,
            "note": self.note,
            "reason_code": self.reason_code,
        }


# ---------------------------------------------------------------------------
# Aggregate Root (CQRS)
# ---------------------------------------------------------------------------
@grocery.aggregate
class Order:
    customer_id = Identifier(required=True)
    vendor_id = Identifier(required=True)
    status = String(max_length=30, choices=OrderStatus, default=OrderStatus.PLACED.value)
    items = HasMany(LineItem)
    picker_id = Identifier()
    rider_id = Identifier()
    total = Float(default=0.0)
    currency = String(max_length=3, default="GBP")
    payment_ref = String(max_length=100)
    delivery_postcode = String(max_length=20)
    substitutions = HasMany(SubstitutionProposal)
    event_log = HasMany(LogEntry)
    cancellation_reason = Text()
    placed_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Invariants
    # -------------------------------------------------------------------
    @invariant.post
    def items_settled_once_picking_is_complete(self):
        if self.status in _POST_PICKING_STATUSES:
            blocking = [i for i in (self.items or []) if i.status not in _SETTLED_ITEM_STATUSES]
            if blocking:
                raise ValidationError({"items": [f"{len(blocking)} item(s) are still unpicked or awaiting a decision"]})

    @invariant.post
    def one_open_proposal_per_item(self):
        open_items = [p.line_item_id for p in (self.substitutions or []) if p.is_open]
        if len(open_items) != len(set(open_items)):
            raise ValidationError({"substitutions": ["A line item can have only one open substitution proposal"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        customer_id: str,
        vendor_id: str,
        lines: list[dict],
        payment_ref: str | None = None,
        delivery_postcode: str | None = None,
        currency: str = "GBP",
    ):
        """Create an order in Placed from snapshot lines; the log starts here."""
        if not lines:
            raise ValidationError({"items": ["An order needs at least one available line item"]})

        now = datetime.now(UTC)
        order = cls(
            customer_id=customer_id,
            vendor_id=vendor_id,
            status=OrderStatus.PLACED.value,
            payment_ref=payment_ref,
            delivery_postcode=delivery_postcode,
            currency=currency,
            placed_at=now,
            updated_at=now,
        )
        for line in lines:
            order.add_items(LineItem(**line))
        order.total = order.compute_total()
        order._append_log("", OrderStatus.PLACED.value, ActorRole.CUSTOMER, customer_id, now, note="Order placed")
        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                customer_id=customer_id,
                vendor_id=vendor_id,
                items=json.dumps(lines),
                item_count=len(lines),
                total=order.total,
                currency=currency,
                payment_ref=payment_ref or "",
                delivery_postcode=delivery_postcode or "",
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def compute_total(self) -> float:
        """Sum of line totals, excluding items acknowledged out of stock."""
        return round(
            sum(i.line_total for i in (self.items or []) if i.status != ItemStatus.OUT_OF_STOCK.value),
            2,
        )

    def history(self) -> list[LogEntry]:
        return sorted(self.event_log or [], key=lambda entry: entry.sequence)

    def latest_entry(self) -> LogEntry | None:
        entries = self.history()
        return entries[-1] if entries else None

    def status_path(self) -> list[OrderStatus]:
        """Statuses the order has moved through, in order, ignoring in-place entries."""
        return [
            OrderStatus(entry.to_status) for entry in self.history() if entry.from_status != entry.to_status
        ]

    def item(self, line_item_id: str) -> LineItem:
        found = next((i for i in (self.items or []) if str(i.id) == str(line_item_id)), None)
        if found is None:
            raise ValidationError({"line_item_id": ["Line item not found in this order"]})
        return found

    def proposal(self, proposal_id: str) -> SubstitutionProposal:
        found = next((p for p in (self.substitutions or []) if str(p.id) == str(proposal_id)), None)
        if found is None:
            raise ValidationError({"proposal_id": ["Substitution proposal not found in this order"]})
        return found

    def result(self, entry: LogEntry | None, outcome: str = "TRANSITIONED") -> dict:
        """What a command reports back: the status, its labels and the log entry it wrote."""
        return {
            "outcome": outcome,
            "order_id": str(self.id),
            "status": self.status,
            "labels": labels_for(self.status),
            "entry": entry.as_dict() if entry else None,
        }

    def active_worker(self, role: ActorRole) -> str | None:
        """The picker or rider currently attached, or None once the order is terminal."""
        if is_terminal(OrderStatus(self.status)):
            return None
        worker_id = self.picker_id if role == ActorRole.PICKER else self.rider_id
        return str(worker_id) if worker_id else None

    def open_proposals(self) -> list[SubstitutionProposal]:
        return [p for p in (self.substitutions or []) if p.is_open]

    def _append_log(
        self,
        from_status: str,
        to_status: str,
        role: ActorRole,
        actor_id: str | None,
        at: datetime,
        note: str | None = None,
        reason_code: str | None = None,
    ) -> LogEntry:
        entry = LogEntry(
            sequence=len(self.event_log or []) + 1,
            occurred_at=at,
            actor_role=role.value,
            actor_id=str(actor_id) if actor_id else None,
            from_status=from_status,
            to_status=to_status,
            note=note,
            reason_code=reason_code,
        )
        self.add_event_log(entry)
        return entry

    def _assert_bound(self, role: ActorRole, actor_id: str | None) -> None:
        """Pickers, riders, vendors and customers may only act on their own orders."""
        bound = {
            ActorRole.PICKER: self.picker_id,
            ActorRole.RIDER: self.rider_id,
            ActorRole.VENDOR: self.vendor_id,
            ActorRole.CUSTOMER: self.customer_id,
        }
        if role not in bound:
            return
        if not bound[role] or str(actor_id) != str(bound[role]):
            raise IllegalTransition({"actor_id": [f"This {role.value.lower()} is not assigned to the order"]})

    def _transition(
        self,
        target: OrderStatus,
        role: ActorRole,
        actor_id: str | None = None,
        note: str | None = None,
        reason_code: str | None = None,
        override_reason: str | None = None,
    ) -> LogEntry:
        current = OrderStatus(self.status)
        authorize(current, target, role, override_reason)
        now = datetime.now(UTC)
        self.status = target.value
        self.updated_at = now
        return self._append_log(current.value, target.value, role, actor_id, now, note, reason_code)

    def _assert_picker(self, role: ActorRole, actor_id: str | None, action: str) -> None:
        if role != ActorRole.PICKER:
            raise IllegalTransition({"actor_role": [f"Only the assigned picker may {action}"]})
        self._assert_bound(role, actor_id)

    def _assert_status(self, expected: OrderStatus, action: str) -> None:
        if OrderStatus(self.status) != expected:
            raise IllegalTransition({"status": [f"Cannot {action} while the order is {self.status}"]})

    # -------------------------------------------------------------------
    # Vendor decision
    # -------------------------------------------------------------------
    def accept(self, role: ActorRole, actor_id: str, note: str | None = None) -> LogEntry:
        self._assert_bound(role, actor_id)
        entry = self._transition(OrderStatus.VENDOR_ACCEPTED, role, actor_id, note=note)
        self.raise_(OrderAccepted(order_id=str(self.id), vendor_id=str(self.vendor_id), accepted_at=entry.occurred_at))
        return entry

    def reject(self, role: ActorRole, actor_id: str, reason: str | None = None) -> LogEntry:
        self._assert_bound(role, actor_id)
        entry = self._transition(OrderStatus.VENDOR_REJECTED, role, actor_id, note=reason)
        self.raise_(
            OrderRejected(
                order_id=str(self.id),
                vendor_id=str(self.vendor_id),
                reason=reason,
                rejected_at=entry.occurred_at,
            )
        )
        return entry

    # -------------------------------------------------------------------
    # Picking
    # -------------------------------------------------------------------
    def assign_picker(self, picker_id: str) -> LogEntry:
        """Attach a picker. A second assignment reports the picker already attached."""
        existing = self.active_worker(ActorRole.PICKER)
        if existing:
            raise AlreadyAssigned({"picker_id": ["Order already has a picker"]}, worker_id=existing)

        entry = self._transition(OrderStatus.PICKER_ASSIGNED, ActorRole.DISPATCH, note=f"Picker {picker_id} assigned")
        self.picker_id = picker_id
        self.raise_(
            PickerAssigned(
                order_id=str(self.id),
                vendor_id=str(self.vendor_id),
                picker_id=picker_id,
                assigned_at=entry.occurred_at,
            )
        )
        return entry

    def start_picking(self, role: ActorRole, actor_id: str) -> LogEntry:
        self._assert_bound(role, actor_id)
        entry = self._transition(OrderStatus.PICKING, role, actor_id)
        self.raise_(PickingStarted(order_id=str(self.id), picker_id=str(self.picker_id), started_at=entry.occurred_at))
        return entry

    def mark_item_picked(self, line_item_id: str, role: ActorRole, actor_id: str) -> LineItem:
        self._assert_picker(role, actor_id, "pick items")
        self._assert_status(OrderStatus.PICKING, "pick items")

        item = self.item(line_item_id)
        if item.status != ItemStatus.UNPICKED.value:
            raise IllegalTransition({"line_item_id": [f"Item is {item.status} and cannot be picked"]})

        now = datetime.now(UTC)
        item.status = ItemStatus.PICKED.value
        self.updated_at = now
        self.raise_(ItemPicked(order_id=str(self.id), line_item_id=str(item.id), picked_at=now))
        return item

    def complete_picking(self, role: ActorRole, actor_id: str) -> LogEntry:
        self._assert_bound(role, actor_id)
        self._assert_status(OrderStatus.PICKING, "complete picking")

        blocking = [i for i in (self.items or []) if i.status not in _SETTLED_ITEM_STATUSES]
        if blocking:
            raise IllegalTransition(
                {"items": [f"{len(blocking)} item(s) are still unpicked or awaiting a substitution decision"]}
            )

        self.total = self.compute_total()
        entry = self._transition(OrderStatus.PICKED_COMPLETE, role, actor_id)
        self.raise_(
            PickingCompleted(
                order_id=str(self.id),
                picker_id=str(self.picker_id),
                total=self.total,
                completed_at=entry.occurred_at,
            )
        )
        return entry

    # -------------------------------------------------------------------
    # Delivery
    # -------------------------------------------------------------------
    def assign_rider(self, rider_id: str) -> LogEntry:
        existing = self.active_worker(ActorRole.RIDER)
        if existing:
            raise AlreadyAssigned({"rider_id": ["Order already has a rider"]}, worker_id=existing)

        entry = self._transition(OrderStatus.RIDER_ASSIGNED, ActorRole.DISPATCH, note=f"Rider {rider_id} assigned")
        self.rider_id = rider_id
        self.raise_(RiderAssigned(order_id=str(self.id), rider_id=rider_id, assigned_at=entry.occurred_at))
        return entry

    def confirm_pickup(self, role: ActorRole, actor_id: str) -> LogEntry:
        self._assert_bound(role, actor_id)
        entry = self._transition(OrderStatus.IN_TRANSIT, role, actor_id)
        self.raise_(OrderPickedUp(order_id=str(self.id), rider_id=str(self.rider_id), picked_up_at=entry.occurred_at))
        return entry

    def confirm_delivery(self, role: ActorRole, actor_id: str) -> LogEntry:
        self._assert_bound(role, actor_id)
        entry = self._transition(OrderStatus.DELIVERED, role, actor_id)
        self.raise_(
            OrderDelivered(
                order_id=str(self.id),
                rider_id=str(self.rider_id),
                total=self.total,
                delivered_at=entry.occurred_at,
            )
        )
        return entry

    # -------------------------------------------------------------------
    # Reassignment
    # -------------------------------------------------------------------
    def reassign_picker(self, picker_id: str, reason_code: str = WORKER_UNAVAILABLE) -> LogEntry:
        current = OrderStatus(self.status)
        if current not in REASSIGNABLE_STAGES[ActorRole.PICKER]:
            raise IllegalTransition({"status": [f"Cannot reassign the picker while the order is {current.value}"]})
        if str(picker_id) == str(self.picker_id):
            raise ValidationError({"picker_id": ["Picker is already assigned to this order"]})

        previous = str(self.picker_id)
        now = datetime.now(UTC)
        self.picker_id = picker_id
        self.updated_at = now
        entry = self._append_log(
            current.value,
            current.value,
            ActorRole.DISPATCH,
            None,
            now,
            note=f"Picker {previous} replaced by {picker_id}",
            reason_code=reason_code,
        )
        self.raise_(
            PickerReassigned(
                order_id=str(self.id),
                previous_picker_id=previous,
                picker_id=picker_id,
                reason_code=reason_code,
                reassigned_at=now,
            )
        )
        return entry

    def reassign_rider(self, rider_id: str, reason_code: str = WORKER_UNAVAILABLE) -> LogEntry:
        """Swap the rider, or attach one to an order whose rider declined it."""
        current = OrderStatus(self.status)
        if current not in REASSIGNABLE_STAGES[ActorRole.RIDER]:
            raise IllegalTransition({"status": [f"Cannot reassign the rider while the order is {current.value}"]})
        if str(rider_id) == str(self.rider_id):
            raise ValidationError({"rider_id": ["Rider is already assigned to this order"]})

        previous = str(self.rider_id) if self.rider_id else None
        now = datetime.now(UTC)
        self.rider_id = rider_id
        self.updated_at = now
        entry = self._append_log(
            current.value,
            current.value,
            ActorRole.DISPATCH,
            None,
            now,
            note=f"Rider {previous} replaced by {rider_id}" if previous else f"Rider {rider_id} assigned",
            reason_code=reason_code,
        )
        if previous is None:
            self.raise_(RiderAssigned(order_id=str(self.id), rider_id=rider_id, assigned_at=now))
        else:
            self.raise_(
                RiderReassigned(
                    order_id=str(self.id),
                    previous_rider_id=previous,
                    rider_id=rider_id,
                    reason_code=reason_code,
                    reassigned_at=now,
                )
            )
        return entry

    def decline_rider(
        self,
        role: ActorRole,
        actor_id: str,
        reason_code: str = RIDER_DECLINED,
        note: str | None = None,
    ) -> LogEntry:
        """The assigned rider turns the delivery down. The order keeps its status
        with no rider attached until dispatch finds another one."""
        if role != ActorRole.RIDER:
            raise IllegalTransition({"actor_role": ["Only the assigned rider may decline a delivery"]})
        self._assert_bound(role, actor_id)
        self._assert_status(OrderStatus.RIDER_ASSIGNED, "decline the delivery")

        rider_id = str(self.rider_id)
        now = datetime.now(UTC)
        self.rider_id = None
        self.updated_at = now
        entry = self._append_log(
            self.status,
            self.status,
            ActorRole.RIDER,
            rider_id,
            now,
            note=note or f"Rider {rider_id} declined the delivery",
            reason_code=reason_code,
        )
        self.raise_(RiderDeclined(order_id=str(self.id), rider_id=rider_id, reason_code=reason_code, declined_at=now))
        return entry

    def declined_riders(self) -> set[str]:
        """Riders who turned this order down; dispatch does not offer it to them again."""
        return {
            entry.actor_id
            for entry in (self.event_log or [])
            if entry.actor_role == ActorRole.RIDER.value
            and entry.from_status == entry.to_status == OrderStatus.RIDER_ASSIGNED.value
            and entry.actor_id
        }

    # -------------------------------------------------------------------
    # Cancellation
    # -------------------------------------------------------------------
    def cancel(
        self,
        role: ActorRole,
        actor_id: str | None = None,
        reason: str | None = None,
        override_reason: str | None = None,
    ) -> LogEntry | None:
        """Cancel the order. Returns None when it was already cancelled."""
        current = OrderStatus(self.status)
        if current == OrderStatus.CANCELLED:
            return None

        self._assert_bound(role, actor_id)
        edge = authorize(current, OrderStatus.CANCELLED, role, override_reason)

        now = datetime.now(UTC)
        for proposal in self.open_proposals():
            self._close_proposal(proposal, SubstitutionDecision.REJECTED, None, ORDER_CANCELLED, role, now, actor_id)

        reason_code = LATE_CANCELLATION_OVERRIDE if edge.requires_override else None
        note = reason
        if edge.requires_override:
            note = f"{reason or 'Cancelled'} (override: {override_reason})"

        self.cancellation_reason = reason or override_reason
        self.total = self.compute_total()
        entry = self._transition(OrderStatus.CANCELLED, role, actor_id, note, reason_code, override_reason)
        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                previous_status=current.value,
                reason=self.cancellation_reason,
                reason_code=reason_code,
                late=edge.requires_override,
                picker_id=str(self.picker_id) if self.picker_id else None,
                rider_id=str(self.rider_id) if self.rider_id else None,
                total=self.total,
                cancelled_by=role.value,
                cancelled_at=entry.occurred_at,
            )
        )
        return entry

    # -------------------------------------------------------------------
    # Substitutions
    # -------------------------------------------------------------------
    def report_issue(
        self,
        line_item_id: str,
        issue_type: str,
        alternatives: list[dict],
        deadline: datetime,
        role: ActorRole,
        actor_id: str,
    ) -> SubstitutionProposal:
        """Put an item on hold and open a proposal for the customer to decide on."""
        self._assert_picker(role, actor_id, "report item issues")
        self._assert_status(OrderStatus.PICKING, "report an item issue")

        item = self.item(line_item_id)
        if item.status != ItemStatus.UNPICKED.value:
            raise IllegalTransition({"line_item_id": [f"Cannot report an issue for an item that is {item.status}"]})

        now = datetime.now(UTC)
        proposal = SubstitutionProposal(
            line_item_id=str(item.id),
            original_product_id=str(item.product_id),
            issue_type=IssueType(issue_type).value,
            alternatives=json.dumps(alternatives),
            decision=SubstitutionDecision.PENDING.value,
            deadline=deadline,
            proposed_at=now,
        )
        self.add_substitutions(proposal)
        item.status = ItemStatus.SUBSTITUTION_PENDING.value
        self.updated_at = now
        self._append_log(
            self.status,
            self.status,
            ActorRole.PICKER,
            actor_id,
            now,
            note=f"{issue_type} reported for {item.product_name}",
        )
        self.raise_(
            SubstitutionProposed(
                order_id=str(self.id),
                customer_id=str(self.customer_id),
                proposal_id=str(proposal.id),
                line_item_id=str(item.id),
                issue_type=proposal.issue_type,
                alternatives=proposal.alternatives,
                deadline=deadline,
                proposed_at=now,
            )
        )
        return proposal

    def resolve_substitution(
        self,
        proposal_id: str,
        decision: str,
        role: ActorRole,
        actor_id: str | None = None,
        alternative_id: str | None = None,
        reason_code: str = CUSTOMER_DECISION,
    ) -> SubstitutionProposal:
        """Apply the customer's decision. A proposal is decided exactly once."""
        proposal = self.proposal(proposal_id)
        if not proposal.is_open:
            raise ProposalAlreadyResolved(
                {"proposal_id": [f"Proposal was already {proposal.decision.lower()}"]},
                decision=proposal.decision,
            )
        if role not in _SUBSTITUTION_DECIDERS:
            raise IllegalTransition({"actor_role": [f"{role.value} may not decide on a substitution"]})
        self._assert_bound(role, actor_id)

        target = SubstitutionDecision(decision)
        if target == SubstitutionDecision.PENDING:
            raise ValidationError({"decision": ["Decision must be Approved or Rejected"]})

        self._close_proposal(proposal, target, alternative_id, reason_code, role, datetime.now(UTC), actor_id)
        return proposal

    def expire_substitutions(self, as_of: datetime) -> list[SubstitutionProposal]:
        """Reject every open proposal whose deadline has passed. Safe to repeat."""
        expired = [p for p in self.open_proposals() if p.is_overdue(as_of)]
        now = datetime.now(UTC)
        for proposal in expired:
            self._close_proposal(
                proposal,
                SubstitutionDecision.REJECTED,
                None,
                AUTO_REJECTED_TIMEOUT,
                ActorRole.SYSTEM,
                now,
            )
        return expired

    def _close_proposal(
        self,
        proposal: SubstitutionProposal,
        decision: SubstitutionDecision,
        alternative_id: str | None,
        reason_code: str,
        role: ActorRole,
        at: datetime,
        actor_id: str | None = None,
    ) -> None:
        item = self.item(proposal.line_item_id)

        if decision == SubstitutionDecision.APPROVED:
            alternative = self._chosen_alternative(proposal, alternative_id)
            if str(alternative["product_id"]) == str(item.product_id):
                # Same product at a reduced quantity
                item.quantity = int(alternative["quantity"])
                item.status = ItemStatus.SUBSTITUTION_RESOLVED.value
            else:
                item.original_product_id = str(item.product_id)
                item.product_id = str(alternative["product_id"])
                item.product_name = alternative["product_name"]
                item.unit = alternative["unit"]
                item.unit_price = float(alternative["unit_price"])
                item.quantity = int(alternative["quantity"])
                item.status = ItemStatus.PICKED.value
            proposal.chosen_alternative_id = alternative["alternative_id"]
            note = f"Substitute approved for {proposal.original_product_id}: {alternative['product_name']}"
        else:
            item.status = ItemStatus.OUT_OF_STOCK.value
            note = f"Substitution rejected; {item.product_name} marked out of stock"

        proposal.decision = decision.value
        proposal.reason_code = reason_code
        proposal.resolved_at = at
        proposal.resolved_by = role.value

        self.total = self.compute_total()
        self.updated_at = at
        self._append_log(self.status, self.status, role, actor_id, at, note=note, reason_code=reason_code)
        self.raise_(
            SubstitutionResolved(
                order_id=str(self.id),
                customer_id=str(self.customer_id),
                proposal_id=str(proposal.id),
                line_item_id=str(item.id),
                decision=decision.value,
                alternative_id=proposal.chosen_alternative_id,
                reason_code=reason_code,
                total=self.total,
                resolved_at=at,
            )
        )

    @staticmethod
    def _chosen_alternative(proposal: SubstitutionProposal, alternative_id: str | None) -> dict:
        alternatives = proposal.alternative_list()
        if not alternatives:
            raise ValidationError({"alternative_id": ["The proposal has no alternatives to approve"]})
        if alternative_id is None:
            if len(alternatives) > 1:
                raise ValidationError({"alternative_id": ["Choose one of the proposed alternatives"]})
            return alternatives[0]
        chosen = next((a for a in alternatives if a["alternative_id"] == alternative_id), None)
        if chosen is None:
            raise ValidationError({"alternative_id": ["Alternative is not part of this proposal"]})
        return chosen
